"""Centralized configuration for dzassemble.

All fixed conventions of the descriptor and tile layout are defined here.
There are no environment-variable overrides: a run is configured entirely
through the command line.
"""

from __future__ import annotations


# =============================================================================
# Input Layout
# =============================================================================

#: Extension of pyramid descriptor files inside the event directory
DESCRIPTOR_EXTENSION: str = ".dzi"

#: Suffix joined to a tile reference to locate its image under the tile root
TILE_EXTENSION: str = ".png"

#: Separator between tokens on size, header and tile-row lines
DESCRIPTOR_FIELD_SEPARATOR: str = ","


# =============================================================================
# Pyramid Convention
# =============================================================================

#: Per-layer scale base; layer i is scaled by LAYER_SCALE_BASE ** (i - 1)
LAYER_SCALE_BASE: float = 0.5

#: Layers below this index are always composited, even with lower layers off
ALWAYS_PROCESSED_LAYERS: int = 2


# =============================================================================
# Output
# =============================================================================

#: File name of one composited layer inside its group directory
LAYER_FILE_TEMPLATE: str = "layer_{index}.png"

#: Canvas fill for cells without a tile (fully transparent)
TRANSPARENT_RGBA: tuple[int, int, int, int] = (0, 0, 0, 0)

#: Alpha written for tiles that carry no alpha band of their own
OPAQUE_ALPHA: int = 255


# =============================================================================
# Processing
# =============================================================================

#: Default number of descriptors composited concurrently (1 = sequential)
DEFAULT_PARALLEL_GROUPS: int = 1
