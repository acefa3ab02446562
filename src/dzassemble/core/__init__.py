"""Core data model for dzassemble."""

from .types import (
    CompositionTarget,
    Layer,
    PyramidDescriptor,
    TileGrid,
    layer_scale_factor,
)

__all__ = [
    "CompositionTarget",
    "Layer",
    "PyramidDescriptor",
    "TileGrid",
    "layer_scale_factor",
]
