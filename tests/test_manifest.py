"""
Unit tests for the vtkMultiBlockDataSet manifest writer.
"""

import io

import pytest

from drishya.manifest import write_manifest, write_vtm

from helpers import parse


def render(prefix, nblocks):
    stream = io.StringIO()
    write_vtm(stream, prefix, nblocks)
    return stream.getvalue()


def test_references_blocks_in_order():
    """N=3 with prefix 'out_' lists out_0, out_1, out_2 in that order."""
    root = parse(render("out_", 3))
    datasets = root.find("vtkMultiBlockDataSet").findall("DataSet")

    assert [d.get("index") for d in datasets] == ["0", "1", "2"]
    assert [d.get("file") for d in datasets] == ["out_0.vtr", "out_1.vtr", "out_2.vtr"]


def test_exact_text():
    assert render("b", 2) == (
        '<VTKFile type="vtkMultiBlockDataSet" version="1.0">\n'
        "<vtkMultiBlockDataSet>\n"
        '<DataSet index="0" file="b0.vtr"/>\n'
        '<DataSet index="1" file="b1.vtr"/>\n'
        "</vtkMultiBlockDataSet>\n"
        "</VTKFile>"
    )


def test_zero_blocks():
    root = parse(render("out_", 0))
    assert root.find("vtkMultiBlockDataSet").findall("DataSet") == []


def test_negative_count():
    with pytest.raises(ValueError):
        render("out_", -1)


def test_write_manifest_does_not_check_files(tmp_path):
    """The manifest is written even though none of the block files exist."""
    out = write_manifest(tmp_path / "sub" / "blocks", "out_", 3)
    assert out == tmp_path / "sub" / "blocks.vtm"
    assert out.read_text() == render("out_", 3)
