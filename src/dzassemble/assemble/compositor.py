"""Composition of one pyramid layer from its tile grid."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from dzassemble.config import LAYER_FILE_TEMPLATE, TILE_EXTENSION
from dzassemble.core.types import CompositionTarget, Layer, TileGrid

from .backends import VIPSBackend, get_backend

logger = logging.getLogger(__name__)


class TileMetadataError(RuntimeError):
    """The tile used to size a layer is absent or has no usable dimensions."""


def tile_path(tex_dir: Path, reference: str) -> Path:
    """Resolve a tile reference to its image file under the tile root."""
    return Path(tex_dir) / f"{reference}{TILE_EXTENSION}"


def layer_output_path(output_dir: Path, group_name: str, layer_index: int) -> Path:
    """Path of a layer composite: ``<output_dir>/<group>/layer_<index>.png``."""
    return Path(output_dir) / group_name / LAYER_FILE_TEMPLATE.format(index=layer_index)


class LayerCompositor:
    """Stitches a layer's tiles into one image and writes it as PNG.

    Args:
        tex_dir: Root directory tile references are resolved against
        output_dir: Root directory that receives one folder per group
        backend: Image backend (defaults to the PyVIPS backend)
    """

    def __init__(
        self,
        tex_dir: Path,
        output_dir: Path,
        backend: type[VIPSBackend] | None = None,
    ) -> None:
        self.tex_dir = Path(tex_dir)
        self.output_dir = Path(output_dir)
        self._backend = backend if backend is not None else get_backend()

    def compose(self, layer: Layer, target: CompositionTarget) -> Path | None:
        """Compose one layer at its target size.

        Returns:
            Path of the written PNG, or None for an empty grid
        """
        return self.compose_grid(
            layer.tiles, target.group_name, target.layer_index,
            target.target_width, target.target_height,
        )

    def compose_grid(
        self,
        tiles: TileGrid,
        group_name: str,
        layer_index: int,
        target_width: int,
        target_height: int,
    ) -> Path | None:
        """Compose a tile grid, crop it to the target size and save it.

        An empty grid is a no-op. Tile size comes from the first cell and
        the present tiles are joined in one pass at their grid-aligned
        offsets; absent cells stay transparent. The canvas is
        cropped from the top-left corner and never enlarged.

        Args:
            tiles: Grid of tile references
            group_name: Output group directory name
            layer_index: Index used in the output file name
            target_width: Expected output width
            target_height: Expected output height

        Returns:
            Path of the written PNG, or None if the grid is empty

        Raises:
            TileMetadataError: If the first cell is absent or unreadable
            FileNotFoundError: If a referenced tile file does not exist
        """
        if tiles.is_empty:
            logger.debug("Layer %d of %s has no tiles, nothing to compose", layer_index, group_name)
            return None

        tile_w, tile_h = self._probe_tile_size(tiles)
        composed_w = tiles.cols * tile_w
        composed_h = tiles.rows * tile_h

        cells: list[Any] = [None] * (tiles.rows * tiles.cols)
        placed = 0
        for row, col, ref in tiles.iter_present():
            cells[row * tiles.cols + col] = self._backend.load_tile(tile_path(self.tex_dir, ref))
            placed += 1
        canvas = self._backend.join_grid(cells, tiles.cols, tile_w, tile_h)

        crop_w = min(target_width, composed_w)
        crop_h = min(target_height, composed_h)

        out_file = layer_output_path(self.output_dir, group_name, layer_index)
        out_file.parent.mkdir(parents=True, exist_ok=True)
        self._backend.save_png(self._backend.crop(canvas, crop_w, crop_h), out_file)

        logger.info(
            "Composed %s (%d tile(s), %dx%d from %dx%d canvas)",
            out_file, placed, crop_w, crop_h, composed_w, composed_h,
        )
        return out_file

    def _probe_tile_size(self, tiles: TileGrid) -> tuple[int, int]:
        """Determine the pixel size shared by every tile of a grid."""
        first_ref = tiles.get(0, 0)
        if first_ref is None:
            raise TileMetadataError(
                "Cannot get the tile size: cell (0, 0) of the tile grid is empty"
            )

        first_path = tile_path(self.tex_dir, first_ref)
        try:
            tile_w, tile_h = self._backend.probe_size(first_path)
        except Exception as e:
            raise TileMetadataError(f"Cannot get the tile size: {first_path}: {e}") from e

        if not tile_w or not tile_h:
            raise TileMetadataError(f"Cannot get the tile size: {first_path}")

        logger.debug("Tile size %dx%d from %s", tile_w, tile_h, first_path)
        return tile_w, tile_h


def compose_layer(
    tiles: TileGrid,
    group_name: str,
    layer_index: int,
    output_dir: Path,
    target_width: int,
    target_height: int,
    tex_dir: Path,
    backend: Any = None,
) -> Path | None:
    """Compose one layer's tile grid into ``<output_dir>/<group>/layer_<i>.png``.

    Convenience wrapper around LayerCompositor.

    Returns:
        Path of the written PNG, or None if the grid is empty
    """
    compositor = LayerCompositor(tex_dir, output_dir, backend=backend)
    return compositor.compose_grid(tiles, group_name, layer_index, target_width, target_height)
