"""Test fixtures for dzassemble tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Callable, Generator, Sequence

import numpy as np
import pytest
from PIL import Image

TILE_SIZE = 32


def write_tile(
    path: Path,
    color: tuple[int, ...],
    size: tuple[int, int] = (TILE_SIZE, TILE_SIZE),
    mode: str = "RGBA",
) -> Path:
    """Write a solid-color PNG tile, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new(mode, size, color).save(path)
    return path


def write_descriptor(
    path: Path,
    width: int,
    height: int,
    layers: Sequence[Sequence[Sequence[str]]],
    newline: str = "\n",
    format_tag: str = "malie-dzi",
) -> Path:
    """Write a descriptor file; each layer's header uses its first row's length."""
    lines = [format_tag, f"{width},{height}"]
    for rows in layers:
        cols = len(rows[0]) if rows else 0
        lines.append(f"{cols},{len(rows)}")
        lines.extend(",".join(row) for row in rows)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes((newline.join(lines) + newline).encode("utf-8"))
    return path


def read_rgba(path: Path) -> np.ndarray:
    """Load a PNG as an (H, W, 4) uint8 array."""
    with Image.open(path) as img:
        assert img.mode == "RGBA"
        return np.asarray(img).copy()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that's cleaned up after tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def tex_dir(temp_dir: Path) -> Path:
    tex = temp_dir / "tex"
    tex.mkdir()
    return tex


@pytest.fixture
def event_dir(temp_dir: Path) -> Path:
    event = temp_dir / "event"
    event.mkdir()
    return event


@pytest.fixture
def make_grid(tex_dir: Path) -> Callable[..., list[list[str]]]:
    """Write a grid of distinct solid tiles and return its references.

    Cells listed in ``absent`` get an empty reference and no file.
    """

    def _make(
        prefix: str,
        rows: int,
        cols: int,
        absent: Sequence[tuple[int, int]] = (),
        size: tuple[int, int] = (TILE_SIZE, TILE_SIZE),
    ) -> list[list[str]]:
        grid = []
        for r in range(rows):
            row = []
            for c in range(cols):
                if (r, c) in absent:
                    row.append("")
                    continue
                ref = f"{prefix}/tile_{r}_{c}"
                write_tile(tex_dir / f"{ref}.png", (10 + 40 * r, 10 + 40 * c, 200, 255), size)
                row.append(ref)
            grid.append(row)
        return grid

    return _make


@pytest.fixture
def sample_pyramid(event_dir: Path, make_grid) -> Path:
    """Four-layer 100x60 descriptor with 32px tiles.

    Expected outputs (target vs canvas):
        layer_0: 200x120 vs 128x64 -> 128x64
        layer_1: 100x60  vs 128x64 -> 100x60
        layer_2: 50x30   vs 64x32  -> 50x30
        layer_3: 25x15   vs 32x32  -> 25x15
    """
    layers = [
        make_grid("cg/l0", 2, 4),
        make_grid("cg/l1", 2, 4),
        make_grid("cg/l2", 1, 2),
        make_grid("cg/l3", 1, 1),
    ]
    return write_descriptor(event_dir / "cg01.dzi", 100, 60, layers)
