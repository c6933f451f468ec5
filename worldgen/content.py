from __future__ import annotations

import random
from typing import TYPE_CHECKING, Mapping

from .config import BlockId, ContentExpression, StructureRef, WeightedChoice
from .errors import InvalidPercentageSum, UnknownStructure
from .position import Position

if TYPE_CHECKING:
    from .world import World

StructureTable = Mapping[str, "tuple[tuple[Position, ContentExpression], ...]"]


def resolve(
    expr: ContentExpression,
    world: "World",
    pos: Position,
    rng: random.Random,
    structures: StructureTable,
) -> None:
    """Write the blocks ``expr`` produces at ``pos`` into ``world``.

    Structure references recurse with no cycle guard, so a structure that
    reaches itself again exhausts the stack.
    """
    if isinstance(expr, BlockId):
        world.set_block(pos, expr.block_id)
    elif isinstance(expr, StructureRef):
        structure = structures.get(expr.name)
        if structure is None:
            raise UnknownStructure(f"unknown structure: {expr.name}")
        for rel, sub in structure:
            resolve(sub, world, pos + rel, rng, structures)
    elif isinstance(expr, WeightedChoice):
        total = expr.total
        if total != 100:
            raise InvalidPercentageSum(f"percentage sum must be 100%, got {total}%")
        roll = rng.randrange(100)
        cumulative = 0
        for weight, sub in expr.choices:
            cumulative += weight
            if roll < cumulative:
                resolve(sub, world, pos, rng, structures)
                break
    else:
        raise TypeError(f"unsupported content expression: {expr!r}")
