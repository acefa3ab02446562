"""Image backend using PyVIPS.

All pixel work of the compositor goes through this module: header probes,
tile decoding, canvas creation, grid joining, cropping and PNG output.

Usage:
    from dzassemble.assemble.backends import get_backend

    backend = get_backend()
    tile = backend.load_tile(Path("tile.png"))
    canvas = backend.join_grid([tile, None], across=2, tile_width=256, tile_height=256)
    backend.save_png(backend.crop(canvas, 300, 200), Path("out.png"))
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from dzassemble.config import OPAQUE_ALPHA, TRANSPARENT_RGBA

# pyvips is imported quietly in dzassemble/__init__.py first
_HAS_VIPS = False
_vips_import_error: str | None = None
pyvips: Any = None

try:
    import pyvips
    _HAS_VIPS = True
except (ImportError, OSError) as e:
    _vips_import_error = str(e)


def is_vips_available() -> bool:
    """Check if PyVIPS is available.

    Returns:
        True if pyvips is installed and working
    """
    return _HAS_VIPS


def _require_vips() -> None:
    if not _HAS_VIPS:
        raise RuntimeError(f"PyVIPS is not available: {_vips_import_error}")


class VIPSBackend:
    """PyVIPS-based compositing backend.

    Every image handed back is 8-bit, four band sRGB (RGBA), so that tiles
    of any PNG flavour can be joined into the same canvas.
    """

    @staticmethod
    def probe_size(path: Path) -> tuple[int, int]:
        """Read an image's dimensions from its header.

        Args:
            path: Path to the image file

        Returns:
            (width, height) in pixels

        Raises:
            pyvips.Error: If the file cannot be opened as an image
        """
        _require_vips()
        header = pyvips.Image.new_from_file(str(path))
        return header.width, header.height

    @staticmethod
    def to_rgba(img: "pyvips.Image") -> "pyvips.Image":
        """Normalize an image to 8-bit RGBA.

        Greyscale is expanded to three bands and an opaque alpha band is
        added when the image has none. No colour management is applied.
        """
        if img.bands < 3:
            # grey and grey+alpha; colourspace keeps an existing alpha band
            img = img.colourspace("srgb")
        if img.format != "uchar":
            if img.format == "ushort":
                img = img >> 8
            img = img.cast("uchar")
        if img.bands == 3:
            img = img.bandjoin(OPAQUE_ALPHA)
        return img.copy(interpretation="srgb")

    @staticmethod
    def load_tile(path: Path) -> "pyvips.Image":
        """Read a tile fully into memory and decode it as RGBA.

        Args:
            path: Path to the tile image

        Returns:
            pyvips.Image with four uchar bands

        Raises:
            FileNotFoundError: If the tile file does not exist
        """
        _require_vips()
        data = Path(path).read_bytes()
        return VIPSBackend.to_rgba(pyvips.Image.new_from_buffer(data, ""))

    @staticmethod
    def new_transparent(width: int, height: int) -> "pyvips.Image":
        """Create a fully transparent RGBA canvas.

        Args:
            width: Canvas width
            height: Canvas height

        Returns:
            pyvips.Image with every pixel set to TRANSPARENT_RGBA
        """
        _require_vips()
        canvas = pyvips.Image.black(width, height, bands=4) + list(TRANSPARENT_RGBA)
        return canvas.cast("uchar").copy(interpretation="srgb")

    @staticmethod
    def join_grid(
        cells: list["pyvips.Image | None"],
        across: int,
        tile_width: int,
        tile_height: int,
    ) -> "pyvips.Image":
        """Join row-major cells into one canvas using vips arrayjoin.

        Args:
            cells: Tiles in row-major order; None entries stay transparent
            across: Number of cells per row
            tile_width: Width of every cell in pixels
            tile_height: Height of every cell in pixels

        Returns:
            pyvips.Image of size (across * tile_width, rows * tile_height)
        """
        _require_vips()
        blank = VIPSBackend.new_transparent(tile_width, tile_height)

        resolved = []
        for tile in cells:
            if tile is None:
                resolved.append(blank)
                continue
            # Clip oversized tiles and pad undersized ones to the cell size
            if tile.width != tile_width or tile.height != tile_height:
                tile = tile.crop(
                    0, 0, min(tile.width, tile_width), min(tile.height, tile_height)
                ).embed(
                    0, 0, tile_width, tile_height,
                    extend="background", background=list(TRANSPARENT_RGBA),
                )
            resolved.append(tile)

        # arrayjoin expects tiles in row-major order
        return pyvips.Image.arrayjoin(resolved, across=across)

    @staticmethod
    def crop(img: "pyvips.Image", width: int, height: int) -> "pyvips.Image":
        """Crop an image from its top-left corner."""
        return img.crop(0, 0, width, height)

    @staticmethod
    def save_png(img: "pyvips.Image", path: Path) -> None:
        """Save an image as PNG.

        Args:
            img: pyvips.Image to save
            path: Output path
        """
        img.pngsave(str(path))


def get_backend() -> type[VIPSBackend]:
    """Get the image processing backend.

    Returns:
        VIPSBackend class

    Raises:
        RuntimeError: If PyVIPS is not available
    """
    if not _HAS_VIPS:
        raise RuntimeError(
            f"PyVIPS is required but not available: {_vips_import_error}\n"
            "Install pyvips with its bundled libvips: pip install 'pyvips[binary]'"
        )
    return VIPSBackend

