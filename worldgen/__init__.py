"""Procedural voxel world generation and palette stream export."""

__version__ = "0.1.0"
