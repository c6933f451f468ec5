from __future__ import annotations

import re
from typing import Any, Iterator, NamedTuple

from .errors import InvalidPosition, InvalidRotation

COORD_MIN = -128
COORD_MAX = 127
ROTATIONS = (0, 90, 180, 270)
COORD_RE = re.compile(r"-?[0-9]+")


class Position(NamedTuple):
    x: int
    y: int
    z: int

    def __add__(self, other: Any) -> "Position":  # type: ignore[override]
        if not isinstance(other, Position):
            return NotImplemented
        return add(self, other)

    def __str__(self) -> str:
        return f"{self.x},{self.y},{self.z}"


def parse_position(text: Any) -> Position:
    if not isinstance(text, str):
        raise InvalidPosition(f"position must be a string like 'x,y,z', got: {text!r}")
    parts = text.split(",")
    if len(parts) != 3:
        raise InvalidPosition(f"invalid position string: {text!r}")
    out: list[int] = []
    for part in parts:
        part = part.strip()
        if not COORD_RE.fullmatch(part):
            raise InvalidPosition(f"invalid position string: {text!r}")
        out.append(int(part))
    return Position(out[0], out[1], out[2])


def add(a: Position, b: Position) -> Position:
    return Position(a.x + b.x, a.y + b.y, a.z + b.z)


def rotate(pos: Position, degrees: int) -> Position:
    """Rotate ``pos`` about the Y axis by a multiple of 90 degrees."""
    x, y, z = pos
    if degrees == 0:
        return Position(x, y, z)
    if degrees == 90:
        return Position(-z, y, x)
    if degrees == 180:
        return Position(-x, y, -z)
    if degrees == 270:
        return Position(z, y, -x)
    raise InvalidRotation(f"unsupported rotation {degrees}")


def in_bounds(pos: Position) -> bool:
    return all(COORD_MIN <= v <= COORD_MAX for v in pos)


def normalize_box(a: Position, b: Position) -> tuple[Position, Position]:
    lo = Position(min(a.x, b.x), min(a.y, b.y), min(a.z, b.z))
    hi = Position(max(a.x, b.x), max(a.y, b.y), max(a.z, b.z))
    return lo, hi


def iter_box(a: Position, b: Position) -> Iterator[Position]:
    lo, hi = normalize_box(a, b)
    for x in range(lo.x, hi.x + 1):
        for y in range(lo.y, hi.y + 1):
            for z in range(lo.z, hi.z + 1):
                yield Position(x, y, z)
