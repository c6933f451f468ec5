from __future__ import annotations


class WorldgenError(Exception):
    """Base class for every failure that aborts a generation or export run."""


class ConfigError(WorldgenError):
    pass


class InvalidPosition(WorldgenError):
    pass


class InvalidRotation(WorldgenError):
    pass


class UnknownStructure(WorldgenError):
    pass


class InvalidPercentageSum(WorldgenError):
    pass


class InvalidPercentageKey(WorldgenError):
    pass


class PaletteOverflow(WorldgenError):
    pass


class MalformedStream(WorldgenError):
    pass
