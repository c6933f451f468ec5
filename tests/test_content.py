from __future__ import annotations

import pytest

from worldgen.config import BlockId, StructureRef, WeightedChoice, compile_content
from worldgen.content import resolve
from worldgen.errors import InvalidPercentageSum, UnknownStructure
from worldgen.position import Position
from worldgen.world import World

ORIGIN = Position(0, 0, 0)


def test_block_id_is_written_and_last_write_wins(scripted_random):
    world = World(rotation=0)
    rng = scripted_random()
    resolve(BlockId(3), world, Position(1, 2, 3), rng, {})
    resolve(BlockId(8), world, Position(1, 2, 3), rng, {})
    assert world.blocks == {Position(1, 2, 3): 8}


def test_air_never_stored_and_does_not_erase(scripted_random):
    world = World(rotation=0)
    resolve(BlockId(0), world, ORIGIN, scripted_random(), {})
    assert world.blocks == {}
    world.blocks[ORIGIN] = 2
    resolve(BlockId(0), world, ORIGIN, scripted_random(), {})
    assert world.blocks == {ORIGIN: 2}


def test_out_of_bounds_block_is_dropped(scripted_random):
    world = World(rotation=0)
    resolve(BlockId(1), world, Position(128, 0, 0), scripted_random(), {})
    assert world.blocks == {}


def test_block_is_rotated_before_storing(scripted_random):
    world = World(rotation=90)
    resolve(BlockId(1), world, Position(2, 0, 0), scripted_random(), {})
    assert world.blocks == {Position(0, 0, 2): 1}


def test_structure_placed_at_origin(scripted_random):
    structures = {"that_structure": ((Position(0, 0, 0), BlockId(5)),)}
    world = World(rotation=0)
    resolve(StructureRef("that_structure"), world, Position(2, 3, 4), scripted_random(), structures)
    assert world.blocks == {Position(2, 3, 4): 5}


def test_nested_structures_accumulate_offsets(scripted_random):
    structures = {
        "outer": ((Position(1, 0, 0), StructureRef("inner")), (Position(0, 0, 0), BlockId(1))),
        "inner": ((Position(0, 1, 0), BlockId(2)),),
    }
    world = World(rotation=0)
    resolve(StructureRef("outer"), world, Position(10, 10, 10), scripted_random(), structures)
    assert world.blocks == {Position(11, 11, 10): 2, Position(10, 10, 10): 1}


def test_unknown_structure(scripted_random):
    with pytest.raises(UnknownStructure, match="ghost"):
        resolve(StructureRef("ghost"), World(rotation=0), ORIGIN, scripted_random(), {})


@pytest.mark.parametrize("roll,expected", [(0, 1), (29, 1), (30, 2), (99, 2)])
def test_weighted_choice_cumulative_boundaries(scripted_random, roll, expected):
    expr = compile_content({"30%": 1, "70%": 2})
    world = World(rotation=0)
    rng = scripted_random(roll)
    resolve(expr, world, ORIGIN, rng, {})
    assert world.blocks == {ORIGIN: expected}
    assert rng.calls == [100]


def test_zero_weight_choice_is_never_selected(scripted_random):
    expr = compile_content({"0%": 9, "100%": 4})
    world = World(rotation=0)
    resolve(expr, world, ORIGIN, scripted_random(0), {})
    assert world.blocks == {ORIGIN: 4}


def test_nested_choices_draw_once_per_level(scripted_random):
    expr = compile_content({"50%": {"50%": 1, "50%_b": 2}, "50%_b": 3})
    world = World(rotation=0)
    rng = scripted_random(10, 75)
    resolve(expr, world, ORIGIN, rng, {})
    assert world.blocks == {ORIGIN: 2}
    assert rng.calls == [100, 100]


@pytest.mark.parametrize("tree", [{"99%": 1}, {"50%": 1, "51%": 2}, {"60%": 1, "41%_x": 2}])
def test_bad_percentage_sum_fails_before_any_write(scripted_random, tree):
    expr = compile_content(tree)
    world = World(rotation=0)
    rng = scripted_random()
    with pytest.raises(InvalidPercentageSum):
        resolve(expr, world, ORIGIN, rng, {})
    assert world.blocks == {}
    assert rng.calls == []


def test_choice_can_select_structure(scripted_random):
    structures = {"pair": ((Position(0, 0, 0), BlockId(6)), (Position(0, 0, 1), BlockId(6)))}
    expr = WeightedChoice(((100, StructureRef("pair")),))
    world = World(rotation=0)
    resolve(expr, world, ORIGIN, scripted_random(42), structures)
    assert world.blocks == {Position(0, 0, 0): 6, Position(0, 0, 1): 6}


def test_cyclic_structure_exhausts_the_stack(scripted_random):
    structures = {"loop": ((Position(0, 0, 0), StructureRef("loop")),)}
    with pytest.raises(RecursionError):
        resolve(StructureRef("loop"), World(rotation=0), ORIGIN, scripted_random(), structures)
