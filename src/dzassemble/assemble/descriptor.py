"""Parsing of line-based pyramid descriptor files."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from dzassemble.config import DESCRIPTOR_EXTENSION, DESCRIPTOR_FIELD_SEPARATOR
from dzassemble.core.types import Layer, PyramidDescriptor, TileGrid

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r?\n")


class DescriptorError(ValueError):
    """A descriptor file does not follow the expected grammar."""

    def __init__(self, path: Path | str, message: str) -> None:
        super().__init__(str(path), message)
        self.path = Path(path)
        self.message = message

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


def is_descriptor_file(path: Path) -> bool:
    """Check if a path names a descriptor file."""
    return path.is_file() and path.suffix == DESCRIPTOR_EXTENSION


def find_descriptor_files(event_dir: Path) -> list[Path]:
    """Find the descriptor files directly inside a directory.

    Anything that is not a descriptor is ignored. The result is sorted by
    file name so repeated runs see the same order.

    Raises:
        FileNotFoundError: If the directory does not exist
        NotADirectoryError: If the path is not a directory
    """
    event_dir = Path(event_dir)
    return sorted(
        (entry for entry in event_dir.iterdir() if is_descriptor_file(entry)),
        key=lambda entry: entry.name,
    )


def _parse_int_pair(
    path: Path, line: str, line_no: int, what: str
) -> tuple[int, int]:
    parts = [part.strip() for part in line.split(DESCRIPTOR_FIELD_SEPARATOR)]
    if len(parts) != 2:
        raise DescriptorError(
            path, f"line {line_no}: expected {what} as two comma-separated integers, got {line!r}"
        )
    try:
        first, second = int(parts[0]), int(parts[1])
    except ValueError:
        raise DescriptorError(
            path, f"line {line_no}: {what} is not numeric: {line!r}"
        ) from None
    return first, second


def parse_descriptor_text(text: str, path: Path | str = "<memory>") -> PyramidDescriptor:
    """Parse descriptor content already read into memory.

    Args:
        text: Full descriptor content
        path: Source path, used for error messages and the group name

    Returns:
        PyramidDescriptor with one Layer per block

    Raises:
        DescriptorError: If the content does not follow the grammar
    """
    path = Path(path)
    lines = _LINE_BREAK.split(text.strip())
    if len(lines) < 2:
        raise DescriptorError(path, "missing format or size line")

    format_tag = lines[0].strip()
    width, height = _parse_int_pair(path, lines[1], 2, "image size")
    if width <= 0 or height <= 0:
        raise DescriptorError(path, f"line 2: image size must be positive, got {width}x{height}")

    body = lines[2:]
    layers: list[Layer] = []
    i = 0
    while i < len(body):
        layer_index = len(layers)
        header_no = i + 3
        cols, rows = _parse_int_pair(
            path, body[i], header_no, f"layer {layer_index} header (cols,rows)"
        )
        if cols < 0 or rows < 0:
            raise DescriptorError(
                path, f"line {header_no}: layer {layer_index} has negative grid size {cols}x{rows}"
            )
        i += 1

        remaining = len(body) - i
        if rows > remaining:
            raise DescriptorError(
                path,
                f"layer {layer_index} declares {rows} rows but only {remaining} "
                f"line(s) remain after line {header_no}",
            )

        cells = []
        for r in range(rows):
            row_cells = body[i + r].split(DESCRIPTOR_FIELD_SEPARATOR)
            # only empty tokens may follow the declared columns
            if any(token.strip() for token in row_cells[cols:]):
                raise DescriptorError(
                    path,
                    f"line {header_no + 1 + r}: layer {layer_index} row {r} has "
                    f"{len(row_cells)} tiles but the header declares {cols} columns "
                    f"and {rows} rows (line {header_no})",
                )
            cells.append(row_cells)
        i += rows

        layers.append(Layer(index=layer_index, tiles=TileGrid(cells), rows=rows, cols=cols))

    return PyramidDescriptor(
        path=path,
        format_tag=format_tag,
        width=width,
        height=height,
        layers=tuple(layers),
    )


def parse_descriptor(path: Path | str) -> PyramidDescriptor:
    """Read and parse one descriptor file.

    The grammar is line based: a format tag, a ``width,height`` line, then
    blocks made of a ``cols,rows`` header followed by ``rows`` lines of
    comma-separated tile references (empty references mark absent tiles).
    Trailing blank lines and CRLF line endings are accepted.

    Raises:
        DescriptorError: If the file does not follow the grammar
        OSError: If the file cannot be read
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8-sig")
    descriptor = parse_descriptor_text(text, path)
    logger.debug(
        "Parsed %s: %dx%d, %d layer(s)",
        path.name, descriptor.width, descriptor.height, len(descriptor.layers),
    )
    return descriptor


def format_descriptor_shape(descriptor: PyramidDescriptor) -> str:
    """Re-serialize the structure of a descriptor without its tile references.

    Emits the size line and the ``cols,rows`` header of every layer, one per
    line, which is enough to compare the declared shape across a parse.
    """
    lines = [f"{descriptor.width},{descriptor.height}"]
    lines.extend(f"{layer.cols},{layer.rows}" for layer in descriptor.layers)
    return "\n".join(lines)
