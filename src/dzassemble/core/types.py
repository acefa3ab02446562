"""Shared type definitions for the dzassemble data model."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, NamedTuple, Sequence

from dzassemble.config import LAYER_SCALE_BASE


def layer_scale_factor(layer_index: int) -> float:
    """Scale of a layer relative to the descriptor's full-resolution size.

    Layer 1 is native resolution and layer 0 is doubled; every layer after
    layer 1 halves the previous one.

    Args:
        layer_index: Index of the layer in declaration order

    Returns:
        ``LAYER_SCALE_BASE ** (layer_index - 1)``
    """
    return LAYER_SCALE_BASE ** (layer_index - 1)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded towards +inf."""
    return int(math.floor(value + 0.5))


class TileGrid:
    """Sparse row-major grid of tile references.

    The shape is taken from the data: ``rows`` is the number of row entries
    and ``cols`` is the length of the first row. Cells holding an empty
    reference, and cells past the end of a short row, are absent.
    """

    __slots__ = ("_cells",)

    def __init__(self, cells: Sequence[Sequence[str]] = ()) -> None:
        self._cells: tuple[tuple[str, ...], ...] = tuple(
            tuple(token.strip() for token in row) for row in cells
        )

    @property
    def rows(self) -> int:
        return len(self._cells)

    @property
    def cols(self) -> int:
        return len(self._cells[0]) if self._cells else 0

    @property
    def is_empty(self) -> bool:
        """True when the grid has no rows or its first row has no columns."""
        return self.rows == 0 or self.cols == 0

    def _check_bounds(self, row: int, col: int) -> None:
        if not (0 <= row < self.rows and 0 <= col < self.cols):
            raise IndexError(
                f"Cell ({row}, {col}) is outside the {self.rows}x{self.cols} tile grid"
            )

    def get(self, row: int, col: int) -> str | None:
        """Return the tile reference at a cell, or None if the cell is absent.

        Raises:
            IndexError: If the cell lies outside the grid
        """
        self._check_bounds(row, col)
        cells = self._cells[row]
        if col >= len(cells) or not cells[col]:
            return None
        return cells[col]

    def is_present(self, row: int, col: int) -> bool:
        return self.get(row, col) is not None

    def iter_present(self) -> Iterator[tuple[int, int, str]]:
        """Yield ``(row, col, reference)`` for every present cell, row-major."""
        for row in range(self.rows):
            for col in range(self.cols):
                ref = self.get(row, col)
                if ref is not None:
                    yield row, col, ref

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TileGrid):
            return NotImplemented
        return self._cells == other._cells

    def __repr__(self) -> str:
        return f"TileGrid(rows={self.rows}, cols={self.cols})"


@dataclass(frozen=True)
class Layer:
    """One resolution level of a pyramid.

    Attributes:
        index: Position in the descriptor (drives scale and output name)
        tiles: Tile grid of this layer
        rows: Row count declared in the block header
        cols: Column count declared in the block header
    """

    index: int
    tiles: TileGrid
    rows: int
    cols: int


@dataclass(frozen=True)
class PyramidDescriptor:
    """Parsed content of one descriptor file.

    Attributes:
        path: Descriptor file the content was read from
        format_tag: First line of the file, kept verbatim
        width: Full-resolution image width in pixels
        height: Full-resolution image height in pixels
        layers: Layers in declaration order
    """

    path: Path
    format_tag: str
    width: int
    height: int
    layers: tuple[Layer, ...] = field(default_factory=tuple)

    @property
    def group_name(self) -> str:
        """Descriptor file name with its extension removed."""
        return self.path.stem


class CompositionTarget(NamedTuple):
    """Where and how large one layer's composite is written.

    Attributes:
        group_name: Output group (descriptor name without extension)
        layer_index: Layer index in the descriptor
        target_width: Expected output width before clamping to the canvas
        target_height: Expected output height before clamping to the canvas
    """

    group_name: str
    layer_index: int
    target_width: int
    target_height: int

    @classmethod
    def for_layer(
        cls, group_name: str, layer_index: int, width: int, height: int
    ) -> CompositionTarget:
        """Derive a layer's target size from the full-resolution size."""
        scale = layer_scale_factor(layer_index)
        return cls(
            group_name=group_name,
            layer_index=layer_index,
            target_width=max(1, round_half_up(width * scale)),
            target_height=max(1, round_half_up(height * scale)),
        )
