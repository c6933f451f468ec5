from __future__ import annotations

import logging
import struct
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterable, Sequence

from .errors import MalformedStream, PaletteOverflow
from .position import Position
from .world import AreaInstance, World

LOG = logging.getLogger("worldgen.codec")

SCHEMA_VERSION = 1
# Upper bounds follow the width of each count field in the header.
MAX_BLOCK_PALETTE = 0xFF
MAX_AREA_PALETTE = 0xFFFF
MAX_BLOCK_ID = 0xFFFF
MAX_AREAS_PER_WORLD = 0xFF
MAX_AREA_NAME_BYTES = 0xFF
MAX_U32 = 0xFFFFFFFF


@dataclass(frozen=True)
class DecodedStream:
    schema_version: int
    worlds: list[World]


def build_block_palette(worlds: Iterable[World]) -> list[int]:
    ids: set[int] = set()
    for world in worlds:
        ids.update(world.blocks.values())
    ids.discard(0)
    bad = sorted(i for i in ids if i < 1 or i > MAX_BLOCK_ID)
    if bad:
        raise PaletteOverflow(f"block id {bad[0]} does not fit in 16 bits")
    if len(ids) > MAX_BLOCK_PALETTE:
        raise PaletteOverflow(f"{len(ids)} distinct block ids exceed the palette limit of {MAX_BLOCK_PALETTE}")
    return sorted(ids)


def build_area_palette(worlds: Iterable[World]) -> list[AreaInstance]:
    index: dict[AreaInstance, int] = {}
    for world in worlds:
        for area in world.areas:
            if area not in index:
                index[area] = len(index)
                if len(index) > MAX_AREA_PALETTE:
                    raise PaletteOverflow(f"area palette exceeds {MAX_AREA_PALETTE} entries")
    return list(index)


def _enc_u8(v: int) -> bytes:
    return struct.pack("<B", v)


def _enc_u16(v: int) -> bytes:
    return struct.pack("<H", v)


def _enc_u32(v: int) -> bytes:
    return struct.pack("<I", v)


def _enc_coords(*values: int) -> bytes:
    return bytes(v & 0xFF for v in values)


def _enc_area_name(name: str) -> bytes:
    raw = name.encode("utf-8", errors="strict")
    if len(raw) > MAX_AREA_NAME_BYTES:
        raise PaletteOverflow(f"area name too long ({len(raw)} bytes): {name[:32]!r}")
    return _enc_u8(len(raw)) + raw


def iter_encoded(worlds: Sequence[World]) -> Iterable[bytes]:
    """Yield the uncompressed stream in order, one section at a time."""
    if len(worlds) > MAX_U32:
        raise PaletteOverflow(f"too many worlds: {len(worlds)}")
    blocks = build_block_palette(worlds)
    areas = build_area_palette(worlds)
    block_index = {block_id: i for i, block_id in enumerate(blocks)}
    area_index = {area: i for i, area in enumerate(areas)}

    yield _enc_u32(SCHEMA_VERSION) + _enc_u32(len(worlds))

    yield _enc_u8(len(blocks)) + b"".join(_enc_u16(b) for b in blocks)

    pieces = [_enc_u16(len(areas))]
    for area in areas:
        pieces.append(_enc_area_name(area.name))
        pieces.append(_enc_coords(*area.start, *area.end))
    yield b"".join(pieces)

    for world in worlds:
        if len(world.areas) > MAX_AREAS_PER_WORLD:
            raise PaletteOverflow(f"world has {len(world.areas)} areas, limit is {MAX_AREAS_PER_WORLD}")
        pieces = [_enc_u32(len(world.blocks)), _enc_u8(len(world.areas))]
        for pos, block_id in world.blocks.items():
            pieces.append(_enc_coords(*pos))
            pieces.append(_enc_u8(block_index[block_id]))
        for area in world.areas:
            pieces.append(_enc_u16(area_index[area]))
        yield b"".join(pieces)


def encode(worlds: Sequence[World]) -> bytes:
    return b"".join(iter_encoded(worlds))


def export(worlds: Sequence[World], sink: BinaryIO, *, level: int = 9) -> int:
    """Compress and write the stream to ``sink``; returns compressed bytes written."""
    compressor = zlib.compressobj(level)
    written = 0
    for chunk in iter_encoded(worlds):
        out = compressor.compress(chunk)
        if out:
            sink.write(out)
            written += len(out)
    tail = compressor.flush()
    sink.write(tail)
    written += len(tail)
    sink.flush()
    return written


def export_file(worlds: Sequence[World], path: Path, *, level: int = 9) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with path.open("wb") as fh:
            written = export(worlds, fh, level=level)
    except BaseException:
        path.unlink(missing_ok=True)
        raise
    LOG.info("wrote %d world(s) to %s (%d bytes)", len(worlds), path, written)
    return written


class _Buf:
    __slots__ = ("b", "o")

    def __init__(self, b: bytes):
        self.b = b
        self.o = 0

    def read(self, n: int) -> bytes:
        if self.o + n > len(self.b):
            raise MalformedStream(f"unexpected end of stream at offset {self.o} (wanted {n} bytes)")
        out = self.b[self.o : self.o + n]
        self.o += n
        return out

    def read_u8(self) -> int:
        return self.read(1)[0]

    def read_i8(self) -> int:
        return struct.unpack("<b", self.read(1))[0]

    def read_u16(self) -> int:
        return struct.unpack("<H", self.read(2))[0]

    def read_u32(self) -> int:
        return struct.unpack("<I", self.read(4))[0]

    def read_pos(self) -> Position:
        return Position(self.read_i8(), self.read_i8(), self.read_i8())

    def remaining(self) -> int:
        return len(self.b) - self.o


def decompress(data: bytes) -> bytes:
    try:
        return zlib.decompress(data)
    except zlib.error as exc:
        raise MalformedStream(f"failed to decompress stream: {exc}") from exc


def decode_body(body: bytes) -> DecodedStream:
    buf = _Buf(body)
    version = buf.read_u32()
    if version != SCHEMA_VERSION:
        raise MalformedStream(f"unsupported schema version {version}")
    world_count = buf.read_u32()

    blocks = [buf.read_u16() for _ in range(buf.read_u8())]

    areas: list[AreaInstance] = []
    for _ in range(buf.read_u16()):
        raw_name = buf.read(buf.read_u8())
        try:
            name = raw_name.decode("utf-8", errors="strict")
        except UnicodeDecodeError as exc:
            raise MalformedStream(f"area name is not valid UTF-8: {raw_name!r}") from exc
        start = buf.read_pos()
        end = buf.read_pos()
        areas.append(AreaInstance(name=name, start=start, end=end))

    worlds: list[World] = []
    for w in range(world_count):
        block_count = buf.read_u32()
        area_count = buf.read_u8()
        # Each block record is four bytes; reject impossible counts before looping.
        if block_count * 4 > buf.remaining():
            raise MalformedStream(f"world {w}: declared {block_count} blocks but stream is too short")
        world = World(rotation=None)
        for _ in range(block_count):
            pos = buf.read_pos()
            idx = buf.read_u8()
            if idx >= len(blocks):
                raise MalformedStream(f"world {w}: block palette index {idx} out of range ({len(blocks)} entries)")
            if pos in world.blocks:
                raise MalformedStream(f"world {w}: duplicate block at {pos}")
            world.blocks[pos] = blocks[idx]
        for _ in range(area_count):
            idx = buf.read_u16()
            if idx >= len(areas):
                raise MalformedStream(f"world {w}: area palette index {idx} out of range ({len(areas)} entries)")
            world.areas.append(areas[idx])
        worlds.append(world)

    if buf.remaining():
        raise MalformedStream(f"{buf.remaining()} trailing byte(s) after last world")
    return DecodedStream(schema_version=version, worlds=worlds)


def decode(data: bytes) -> DecodedStream:
    return decode_body(decompress(data))


def import_file(path: Path) -> DecodedStream:
    return decode(path.read_bytes())


def same_content(a: World, b: World) -> bool:
    """True when both worlds hold the same blocks and the same ordered areas."""
    return a.blocks == b.blocks and a.areas == b.areas
