# -*- coding: utf-8 -*-

"""

──────────────────────────────────────────────────────────────────────────────
Tree skeleton UnstructuredGrid (.vtu) writer
──────────────────────────────────────────────────────────────────────────────
Every leaf of the refinement tree becomes one quad (2-D) or hexahedron (3-D)
cell with its own 2**dim corner points; neighbouring leaves do not share
points. Cell data carries each leaf's depth and ijk position.

The leaves are collected once and every array below (types, offsets,
connectivity, coordinates, depth, ijk) is built from that one list, so
row i of each array describes the same leaf.

"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import List, TextIO

import numpy as np

from .encoding import write_binary_array
from .files import PathLike, with_suffix, write_stream
from .mesh import DIMS, Box, Point, Tree, TreeNode, get_block_domain

logger = logging.getLogger("drishya")

# VTK_VERTEX, VTK_LINE, VTK_QUAD, VTK_HEXAHEDRON indexed by dimension
CELL_TYPES = np.array([1, 3, 9, 12], dtype=np.int8)

# VTK corner ordering; a dim-D cell uses the first 2**dim rows
CORNERS = np.array(
    [
        [0, 0, 0],
        [1, 0, 0],
        [1, 1, 0],
        [0, 1, 0],
        [0, 0, 1],
        [1, 0, 1],
        [1, 1, 1],
        [0, 1, 1],
    ],
    dtype=np.float64,
)


def write_vtu_header(stream: TextIO) -> None:
    stream.write(
        '<VTKFile type="UnstructuredGrid" header_type="UInt64" '
        'compressor="vtkZLibDataCompressor">\n'
    )


def tree_types(dim: int, nleaves: int) -> np.ndarray:
    return np.full(nleaves, CELL_TYPES[dim], dtype=np.int8)


def tree_offsets(nleaves: int, ncorners: int) -> np.ndarray:
    return (np.arange(1, nleaves + 1, dtype=np.int32) * ncorners).astype(np.int32)


def tree_connectivity(npoints: int) -> np.ndarray:
    return np.arange(npoints, dtype=np.int32)


def tree_coordinates(base: Point, leaves: List[TreeNode], domain: Box, dim: int) -> np.ndarray:
    """Corner points of every leaf box, (nleaves * 2**dim, 3), leaf-major."""
    ncorners = 2 ** dim
    coords = np.zeros((len(leaves) * ncorners, DIMS), dtype=np.float64)
    corners = CORNERS[:ncorners]

    idx = 0
    for leaf in leaves:
        box = get_block_domain(base, leaf.point, domain, dim)
        o = np.asarray(box.lower)
        dx = np.asarray(box.extents)
        coords[idx:idx + ncorners] = o + dx * corners
        idx += ncorners
    return coords


def leaf_depths(leaves: List[TreeNode]) -> np.ndarray:
    return np.array([leaf.point.depth for leaf in leaves], dtype=np.int32)


def leaf_ijks(leaves: List[TreeNode], dim: int) -> np.ndarray:
    ijks = np.zeros((len(leaves), dim), dtype=np.int32)
    for i, leaf in enumerate(leaves):
        ijks[i] = leaf.point.ijk[:dim]
    return ijks


def write_tree_stream(stream: TextIO, tree: Tree, domain: Box) -> None:
    """Emit the complete .vtu document for ``tree`` covering ``domain``."""
    leaves = tree.collect_leaves()
    dim = tree.dim
    nleaves = len(leaves)
    ncorners = 2 ** dim
    npoints = nleaves * ncorners

    # Encode everything up front so a failure leaves the stream untouched.
    body = io.StringIO()
    body.write("<Cells>\n")
    write_binary_array(body, "types", tree_types(dim, nleaves), copy=False)
    write_binary_array(body, "offsets", tree_offsets(nleaves, ncorners), copy=False)
    write_binary_array(body, "connectivity", tree_connectivity(npoints), copy=False)
    body.write("</Cells>\n")
    body.write("<Points>\n")
    write_binary_array(body, "coordinates", tree_coordinates(tree.base, leaves, domain, dim), copy=False)
    body.write("</Points>\n")
    body.write("<CellData>\n")
    write_binary_array(body, "depth", leaf_depths(leaves), copy=False)
    write_binary_array(body, "ijk", leaf_ijks(leaves, dim), copy=False)
    body.write("</CellData>\n")

    write_vtu_header(stream)
    stream.write("<UnstructuredGrid>\n")
    stream.write(f'<Piece NumberOfPoints="{npoints}" NumberOfCells="{nleaves}">\n')
    stream.write(body.getvalue())
    stream.write("<PointData>\n")
    stream.write("</PointData>\n")
    stream.write("</Piece>\n")
    stream.write("</UnstructuredGrid>\n")
    stream.write("</VTKFile>\n")

    logger.debug("Tree: %d leaves, %d points (dim=%d)", nleaves, npoints, dim)


def write_tree(path: PathLike, tree: Tree, domain: Box) -> Path:
    """Write the tree skeleton to ``path`` (``.vtu`` appended if missing)."""
    stream = io.StringIO()
    write_tree_stream(stream, tree, domain)
    return write_stream(with_suffix(path, ".vtu"), stream.getvalue())
