from __future__ import annotations

import logging
import random
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

from .codec import export_file
from .config import GenerationConfig, Settings, load_config_file
from .world import World, build_world

LOG = logging.getLogger("worldgen.generator")


def world_rng(seed: Optional[int], index: int) -> random.Random:
    """Random source for the ``index``-th world; independent of worker count."""
    if seed is None:
        return random.Random()
    return random.Random(f"{seed}:{index}")


def generate_worlds(
    config: GenerationConfig,
    count: int,
    *,
    seed: Optional[int] = None,
    workers: int = 1,
) -> list[World]:
    if count < 0:
        raise ValueError("world count must be >= 0")
    LOG.info("generating %d world(s) with %d worker(s)", count, workers)
    started = time.monotonic()

    def _build(index: int) -> World:
        world = build_world(config, world_rng(seed, index))
        LOG.debug("world %d/%d done (%d blocks)", index + 1, count, len(world.blocks))
        return world

    if workers <= 1 or count <= 1:
        worlds = [_build(i) for i in range(count)]
    else:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="worldgen") as pool:
            # map() yields in submission order and re-raises the first failure.
            worlds = list(pool.map(_build, range(count)))

    LOG.info("completed generation of %d world(s) in %.2fs", count, time.monotonic() - started)
    return worlds


def run(config_path: Path, output_path: Path, count: int, settings: Settings) -> list[World]:
    LOG.info("loading configuration from %s", config_path)
    config = load_config_file(config_path)
    LOG.info(
        "configuration has %d layer(s), %d structure(s), %d area(s)",
        len(config.layers),
        len(config.structures),
        len(config.areas),
    )
    worlds = generate_worlds(config, count, seed=settings.seed, workers=settings.workers)
    export_file(worlds, output_path, level=settings.compression_level)
    return worlds
