"""Tests for descriptor parsing."""

from __future__ import annotations

import pickle
from pathlib import Path

import pytest

from dzassemble.assemble.descriptor import (
    DescriptorError,
    find_descriptor_files,
    format_descriptor_shape,
    parse_descriptor,
    parse_descriptor_text,
)
from dzassemble.core.types import TileGrid

from conftest import write_descriptor

SAMPLE = "\n".join([
    "malie-dzi",
    "1280,720",
    "2,1",
    "a/0_0,a/0_1",
    "3,2",
    "b/0_0,,b/0_2",
    "b/1_0,b/1_1,b/1_2",
    "0,0",
])


class TestParseDescriptor:
    """Tests for the descriptor grammar."""

    def test_header_fields(self):
        descriptor = parse_descriptor_text(SAMPLE, "ev/cg01.dzi")
        assert descriptor.format_tag == "malie-dzi"
        assert (descriptor.width, descriptor.height) == (1280, 720)
        assert descriptor.group_name == "cg01"

    def test_layers_in_declaration_order(self):
        descriptor = parse_descriptor_text(SAMPLE)
        assert [layer.index for layer in descriptor.layers] == [0, 1, 2]
        assert [(layer.cols, layer.rows) for layer in descriptor.layers] == [(2, 1), (3, 2), (0, 0)]

    def test_tile_grid_contents(self):
        layer = parse_descriptor_text(SAMPLE).layers[1]
        assert layer.tiles == TileGrid([["b/0_0", "", "b/0_2"], ["b/1_0", "b/1_1", "b/1_2"]])
        assert layer.tiles.get(0, 1) is None
        assert layer.tiles.get(1, 2) == "b/1_2"

    def test_empty_layer_block(self):
        layer = parse_descriptor_text(SAMPLE).layers[2]
        assert layer.tiles.is_empty

    def test_crlf_and_trailing_blank_lines(self, temp_dir: Path):
        path = temp_dir / "crlf.dzi"
        path.write_bytes((SAMPLE.replace("\n", "\r\n") + "\r\n\r\n\r\n").encode("utf-8"))
        descriptor = parse_descriptor(path)
        assert len(descriptor.layers) == 3
        assert descriptor.layers[0].tiles.get(0, 1) == "a/0_1"

    def test_utf8_bom_is_ignored(self, temp_dir: Path):
        path = temp_dir / "bom.dzi"
        path.write_bytes(b"\xef\xbb\xbf" + SAMPLE.encode("utf-8"))
        assert parse_descriptor(path).format_tag == "malie-dzi"

    def test_tokens_are_trimmed(self):
        descriptor = parse_descriptor_text("tag\n 10 , 20 \n1,1\n  t/a  ")
        assert (descriptor.width, descriptor.height) == (10, 20)
        assert descriptor.layers[0].tiles.get(0, 0) == "t/a"

    def test_no_layers(self):
        assert parse_descriptor_text("tag\n10,20\n").layers == ()

    def test_shape_round_trip(self, temp_dir: Path):
        layers = [
            [["a", "b", "c"]],
            [["a", "", "c"], ["d", "e", "f"]],
            [["x"]] * 4,
        ]
        path = write_descriptor(temp_dir / "shape.dzi", 300, 200, layers)
        expected = "300,200\n3,1\n3,2\n1,4"
        assert format_descriptor_shape(parse_descriptor(path)) == expected


class TestParseDescriptorErrors:
    """Malformed descriptors must fail fast with context."""

    def test_missing_rows_names_file_and_layer(self, temp_dir: Path):
        path = temp_dir / "short.dzi"
        path.write_text("tag\n64,64\n1,1\na\n2,3\nb,c\nd,e\n")
        with pytest.raises(DescriptorError) as excinfo:
            parse_descriptor(path)
        message = str(excinfo.value)
        assert "short.dzi" in message
        assert "layer 1" in message
        assert "3 rows" in message

    def test_short_block_followed_by_header_is_rejected(self, temp_dir: Path):
        # layer 1 declares 3 rows but only 2 follow before the next header
        path = temp_dir / "short_block.dzi"
        path.write_text("tag\n64,64\n1,1\na\n1,3\nb\nc\n0,0\n")
        with pytest.raises(DescriptorError) as excinfo:
            parse_descriptor(path)
        message = str(excinfo.value)
        assert "short_block.dzi" in message
        assert "line 8" in message
        assert "layer 1 row 2" in message

    def test_row_wider_than_header_is_rejected(self):
        with pytest.raises(DescriptorError, match="layer 0 row 0 has 3 tiles"):
            parse_descriptor_text("tag\n64,64\n2,1\na,b,c\n")

    def test_trailing_empty_tokens_are_tolerated(self):
        descriptor = parse_descriptor_text("tag\n64,64\n1,2\na,\nb, ,\n")
        layer = descriptor.layers[0]
        assert (layer.cols, layer.rows) == (1, 2)
        assert [ref for _, _, ref in layer.tiles.iter_present()] == ["a", "b"]

    def test_missing_size_line(self):
        with pytest.raises(DescriptorError, match="missing format or size line"):
            parse_descriptor_text("tag-only\n")

    @pytest.mark.parametrize("size_line", ["abc,10", "10", "10,20,30", ""])
    def test_bad_size_line(self, size_line: str):
        with pytest.raises(DescriptorError, match="line 2"):
            parse_descriptor_text(f"tag\n{size_line}\n1,1\na")

    def test_non_positive_size(self):
        with pytest.raises(DescriptorError, match="must be positive"):
            parse_descriptor_text("tag\n0,10\n")

    def test_bad_layer_header(self):
        with pytest.raises(DescriptorError, match="layer 1 header"):
            parse_descriptor_text("tag\n10,10\n1,1\na\nx,y\n")

    def test_negative_layer_header(self):
        with pytest.raises(DescriptorError, match="negative"):
            parse_descriptor_text("tag\n10,10\n-1,1\na\n")

    def test_error_is_picklable(self):
        err = DescriptorError(Path("ev/a.dzi"), "layer 0 declares 3 rows")
        restored = pickle.loads(pickle.dumps(err))
        assert str(restored) == str(err)
        assert restored.path == Path("ev/a.dzi")

    def test_error_is_value_error(self):
        assert issubclass(DescriptorError, ValueError)


class TestFindDescriptorFiles:
    """Tests for descriptor enumeration."""

    def test_filters_and_sorts(self, event_dir: Path):
        for name in ("b.dzi", "a.dzi", "c.DZI", "d.Dzi", "notes.txt", "a.dzi.bak"):
            (event_dir / name).write_text("tag\n1,1\n")
        (event_dir / "dir.dzi").mkdir()
        found = [p.name for p in find_descriptor_files(event_dir)]
        # the extension match is exact
        assert found == ["a.dzi", "b.dzi"]

    def test_missing_directory(self, temp_dir: Path):
        with pytest.raises(FileNotFoundError):
            find_descriptor_files(temp_dir / "missing")
