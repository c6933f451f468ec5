from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import ConfigError, InvalidPercentageKey
from .position import Position, parse_position

PERCENT_KEY_RE = re.compile(r"^([0-9]+)%")
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass(frozen=True)
class BlockId:
    block_id: int


@dataclass(frozen=True)
class StructureRef:
    name: str


@dataclass(frozen=True)
class WeightedChoice:
    choices: tuple[tuple[int, "ContentExpression"], ...]

    @property
    def total(self) -> int:
        return sum(weight for weight, _ in self.choices)


ContentExpression = Union[BlockId, StructureRef, WeightedChoice]


@dataclass(frozen=True)
class Layer:
    start: Position
    end: Position
    contents: ContentExpression


@dataclass(frozen=True)
class AreaDefinition:
    name: str
    start: Position
    end: Position


@dataclass(frozen=True)
class GenerationConfig:
    layers: tuple[Layer, ...]
    structures: Mapping[str, tuple[tuple[Position, ContentExpression], ...]]
    areas: tuple[AreaDefinition, ...]


class RawLayer(BaseModel):
    model_config = ConfigDict(extra="forbid")

    start: str
    end: str
    contents: Any


class RawArea(BaseModel):
    model_config = ConfigDict(extra="forbid")

    start: str
    end: str


class RawConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    layers: list[RawLayer]
    structures: dict[str, dict[str, Any]] = {}
    areas: dict[str, RawArea] = {}


def parse_percentage_key(key: str) -> int:
    m = PERCENT_KEY_RE.match(key)
    if not m:
        raise InvalidPercentageKey(f"invalid percentage key: {key!r}")
    return int(m.group(1))


def compile_content(value: Any) -> ContentExpression:
    """Turn one parsed JSON content value into its expression variant.

    Integers are block ids, strings name a structure and objects are weighted
    choices keyed by ``"<weight>%<suffix>"``. Weight totals are checked when the
    choice is resolved, not here.
    """
    if isinstance(value, bool):
        raise ConfigError(f"invalid content value type: {value!r}")
    if isinstance(value, int):
        return BlockId(value)
    if isinstance(value, str):
        return StructureRef(value)
    if isinstance(value, dict):
        choices = tuple((parse_percentage_key(str(k)), compile_content(v)) for k, v in value.items())
        return WeightedChoice(choices)
    raise ConfigError(f"invalid content value type: {value!r}")


def load_config(tree: Any) -> GenerationConfig:
    try:
        raw = RawConfig.model_validate(tree)
    except ValidationError as exc:
        raise ConfigError(f"invalid configuration: {exc}") from exc

    structures: dict[str, tuple[tuple[Position, ContentExpression], ...]] = {}
    for name, definition in raw.structures.items():
        structures[name] = tuple(
            (parse_position(pos_str), compile_content(value)) for pos_str, value in definition.items()
        )

    layers = tuple(
        Layer(
            start=parse_position(layer.start),
            end=parse_position(layer.end),
            contents=compile_content(layer.contents),
        )
        for layer in raw.layers
    )
    areas = tuple(
        AreaDefinition(name=name, start=parse_position(area.start), end=parse_position(area.end))
        for name, area in raw.areas.items()
    )
    return GenerationConfig(layers=layers, structures=structures, areas=areas)


def load_config_file(path: Path) -> GenerationConfig:
    try:
        tree = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"cannot read configuration {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"failed to parse configuration {path}: {exc}") from exc
    return load_config(tree)


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    workers: int = 1
    seed: Optional[int] = None
    compression_level: int = 9

    def __post_init__(self) -> None:
        if self.log_level not in _LOG_LEVELS:
            raise ConfigError(f"unknown log level {self.log_level!r}")
        if self.workers < 1:
            raise ConfigError("workers must be >= 1")
        if not 0 <= self.compression_level <= 9:
            raise ConfigError("compression level must be between 0 and 9")

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            log_level=os.environ.get("WORLDGEN_LOG_LEVEL", "INFO").strip().upper(),
            workers=_env_int("WORLDGEN_WORKERS", 1),
            seed=_env_int("WORLDGEN_SEED", None),
            compression_level=_env_int("WORLDGEN_COMPRESSION_LEVEL", 9),
        )
