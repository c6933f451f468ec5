from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Optional

from .codec import import_file, same_content
from .config import Settings
from .errors import WorldgenError
from .generator import run

LOG = logging.getLogger("worldgen.cli")


def _non_negative_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got {raw!r}") from exc
    if value < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {value}")
    return value


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        self.exit(1, f"[error] {message}\n")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    ap = _ArgumentParser(
        prog="worldgen",
        description="Generate randomized voxel worlds from a JSON config and export them as one compressed palette stream",
    )
    ap.add_argument("config", help="Path to the JSON configuration")
    ap.add_argument("output", help="Path of the binary output file")
    ap.add_argument("world_count", type=_non_negative_int, help="Number of worlds to generate")
    ap.add_argument("--seed", type=int, help="Seed for reproducible output (env: WORLDGEN_SEED)")
    ap.add_argument("--workers", type=int, help="Worker threads for generation (env: WORLDGEN_WORKERS, default: 1)")
    ap.add_argument(
        "--log-level",
        choices=("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"),
        help="Logging level (env: WORLDGEN_LOG_LEVEL, default: INFO)",
    )
    ap.add_argument(
        "--compression-level",
        type=int,
        help="zlib compression level 0-9 (env: WORLDGEN_COMPRESSION_LEVEL, default: 9)",
    )
    ap.add_argument("--verify", action="store_true", help="Decode the written file and compare it with the generated worlds")
    return ap.parse_args(argv)


def _settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    overrides = {
        "seed": args.seed,
        "workers": args.workers,
        "log_level": args.log_level,
        "compression_level": args.compression_level,
    }
    return dataclasses.replace(settings, **{k: v for k, v in overrides.items() if v is not None})


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    try:
        settings = _settings(args)
    except WorldgenError as e:
        print(f"[error] {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    config_path = Path(args.config)
    output_path = Path(args.output)
    try:
        worlds = run(config_path, output_path, args.world_count, settings)
        if args.verify:
            decoded = import_file(output_path)
            if len(decoded.worlds) != len(worlds) or not all(
                same_content(a, b) for a, b in zip(worlds, decoded.worlds)
            ):
                print(f"[error] verification failed for {output_path}", file=sys.stderr)
                return 1
            LOG.info("verified %d world(s) in %s", len(decoded.worlds), output_path)
    except WorldgenError as e:
        print(f"[error] {e}", file=sys.stderr)
        return 1
    except RecursionError:
        print("[error] structure nesting too deep (is a structure referencing itself?)", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"[error] {e}", file=sys.stderr)
        return 1
    print(f"[done] generated {args.world_count} world(s) and saved to {output_path}")
    return 0
