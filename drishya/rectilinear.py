# -*- coding: utf-8 -*-

"""

──────────────────────────────────────────────────────────────────────────────
Per-block RectilinearGrid (.vtr) writer
──────────────────────────────────────────────────────────────────────────────
A block of degree p with (nx, ny, nz) cells is written as a rectilinear grid
of (p+1)*nx by (p+1)*ny by (p+1)*nz sub-cells: every cell is split into p+1
node intervals per axis, so cell data arrays hold one value per sub-cell.

The writer is a stream in three separable calls, so callers decide which
fields to emit without the writer looking at them:

    stream = io.StringIO()
    write_vtr_start(stream, block, time, step)
    write_field(stream, "density", rho)
    write_field(stream, "velocity", vel)
    write_vtr_end(stream)

Block metadata (time, step, tree position, id, owner) goes into FieldData as
plain ASCII; coordinates and cell data are zlib/base64 binary arrays.

"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Mapping, TextIO

import numpy as np

from .encoding import ArrayLike, write_binary_array
from .errors import UnsupportedDegreeError
from .files import PathLike, with_suffix, write_stream
from .mesh import DIMS, GridBlock

logger = logging.getLogger("drishya")

AXIS_NAMES = ("x", "y", "z")

MAX_DEGREE = 2

# Node offsets within a cell, in units of the node spacing, per degree and local node.
NODE_OFFSETS = np.array(
    [
        [0.0, 0.0, 0.0],
        [0.0, 0.0, 0.0],
        [0.0, -2.0 / 9.0, 2.0 / 9.0],
    ]
)


def _check_degree(block: GridBlock) -> int:
    p = block.degree
    if not 0 <= p <= MAX_DEGREE:
        raise UnsupportedDegreeError(
            f"No node offset table for degree {p} (supported: 0..{MAX_DEGREE})",
            {"block_id": block.id},
        )
    return p


def whole_extent(block: GridBlock):
    """Sub-cell counts per axis: (p+1) * cells."""
    p = _check_degree(block)
    return tuple((p + 1) * n for n in block.cells)


def _extent_attr(block: GridBlock) -> str:
    n = whole_extent(block)
    return f"0 {n[0]} 0 {n[1]} 0 {n[2]}"


def coordinate_axis(block: GridBlock, axis: int) -> np.ndarray:
    """
    Node coordinates along one axis as float32.

    Point i lies at lower + i*h + NODE_OFFSETS[p][i % (p+1)]*h with
    h = dx[axis] / (p+1).

    Raises:
        UnsupportedDegreeError: for degrees without an offset table.
    """
    p = _check_degree(block)
    num_pts = (p + 1) * block.cells[axis] + 1
    o = block.domain.lower[axis]
    h = block.dx[axis] / (p + 1)

    i = np.arange(num_pts)
    coord = o + i * h + NODE_OFFSETS[p][i % (p + 1)] * h
    return coord.astype(np.float32)


def write_vtr_header(stream: TextIO) -> None:
    stream.write(
        '<VTKFile type="RectilinearGrid" version="1.0" '
        'compressor="vtkZLibDataCompressor" header_type="UInt64">\n'
    )


def write_fdata_start(stream: TextIO, type_name: str, name: str, ntuples: int) -> None:
    stream.write(
        f'<DataArray type="{type_name}" Name="{name}" '
        f'NumberOfTuples="{ntuples}" format="ascii">\n'
    )


def _write_ascii(stream: TextIO, type_name: str, name: str, text: str, ntuples: int = 1) -> None:
    write_fdata_start(stream, type_name, name, ntuples)
    stream.write(text + "\n")
    stream.write("</DataArray>\n")


def write_vtr_field_data(stream: TextIO, block: GridBlock, time: float, step: int) -> None:
    i, j, k = block.point.ijk
    stream.write("<FieldData>\n")
    _write_ascii(stream, "Float64", "TIME", f"{float(time):.12e}")
    _write_ascii(stream, "Int32", "STEP", str(int(step)))
    _write_ascii(stream, "Int32", "block_depth", str(block.point.depth))
    _write_ascii(stream, "Int32", "block_ijk", f"{i} {j} {k}", ntuples=DIMS)
    _write_ascii(stream, "Int32", "block_id", str(block.id))
    _write_ascii(stream, "Int32", "block_owner", str(block.owner))
    stream.write("</FieldData>\n")


def write_coordinates(stream: TextIO, block: GridBlock) -> None:
    coords = [coordinate_axis(block, axis) for axis in range(DIMS)]
    stream.write("<Coordinates>\n")
    for name, coord in zip(AXIS_NAMES, coords):
        write_binary_array(stream, name, coord, copy=False)
    stream.write("</Coordinates>\n")


def write_vtr_start(stream: TextIO, block: GridBlock, time: float, step: int) -> None:
    """
    Emit everything up to and including the opening ``<CellData>`` tag.

    Raises:
        UnsupportedDegreeError: before anything is written, for degrees outside 0..2.
    """
    extent = _extent_attr(block)
    write_vtr_header(stream)
    stream.write(f'<RectilinearGrid WholeExtent="{extent}">\n')
    write_vtr_field_data(stream, block, time, step)
    stream.write(f'<Piece Extent="{extent}">\n')
    write_coordinates(stream, block)
    stream.write("<CellData>\n")


def write_field(stream: TextIO, name: str, array: ArrayLike) -> None:
    """
    Emit one cell-data array, syncing a DualArray's host copy first.

    The component count comes from the array's second dimension.
    """
    write_binary_array(stream, name, array, copy=True)


def write_vtr_end(stream: TextIO) -> None:
    stream.write("</CellData>\n")
    stream.write("</Piece>\n")
    stream.write("</RectilinearGrid>\n")
    stream.write("</VTKFile>\n")


def write_block(
    path: PathLike,
    block: GridBlock,
    fields: Mapping[str, ArrayLike],
    time: float = 0.0,
    step: int = 0,
) -> Path:
    """
    Write one block with its cell fields to ``path`` (``.vtr`` appended if missing).

    The whole file is assembled in memory first; nothing reaches disk unless
    every array encoded.
    """
    stream = io.StringIO()
    write_vtr_start(stream, block, time, step)
    for name, array in fields.items():
        write_field(stream, name, array)
    write_vtr_end(stream)

    out = write_stream(with_suffix(path, ".vtr"), stream.getvalue())
    logger.debug("Block %d: %d field(s) -> %s", block.id, len(fields), out)
    return out
