from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Optional

from .config import GenerationConfig
from .content import resolve
from .errors import InvalidRotation
from .position import ROTATIONS, Position, in_bounds, iter_box, normalize_box, rotate

LOG = logging.getLogger("worldgen.world")


@dataclass(frozen=True)
class AreaInstance:
    name: str
    start: Position
    end: Position


@dataclass
class World:
    """One generated instance: sparse non-air blocks in rotated space plus its areas."""

    rotation: Optional[int] = 0
    blocks: dict[Position, int] = field(default_factory=dict)
    areas: list[AreaInstance] = field(default_factory=list)

    def _rotation(self) -> int:
        if self.rotation is None:
            raise InvalidRotation("world has no rotation (decoded worlds are read-only)")
        return self.rotation

    def set_block(self, pos: Position, block_id: int) -> None:
        rotated = rotate(pos, self._rotation())
        if block_id != 0 and in_bounds(rotated):
            self.blocks[rotated] = block_id

    def add_area(self, name: str, start: Position, end: Position) -> None:
        rot = self._rotation()
        lo, hi = normalize_box(rotate(start, rot), rotate(end, rot))
        self.areas.append(AreaInstance(name=name, start=lo, end=hi))


def build_world(config: GenerationConfig, rng: random.Random) -> World:
    world = World(rotation=ROTATIONS[rng.randrange(4)])

    for layer in config.layers:
        for pos in iter_box(layer.start, layer.end):
            resolve(layer.contents, world, pos, rng, config.structures)

    for area in config.areas:
        world.add_area(area.name, area.start, area.end)

    LOG.debug("built world rotation=%s blocks=%d areas=%d", world.rotation, len(world.blocks), len(world.areas))
    return world
