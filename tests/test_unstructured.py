"""
Unit tests for the tree skeleton UnstructuredGrid writer.

These tests verify that:
1. types/offsets/connectivity describe one unshared quad or hex per leaf
2. Corner coordinates come from each leaf's physical box
3. depth and ijk cell data follow the same leaf order as the coordinates
4. The file layout and piece counts are right

"""

import io

import numpy as np
import pytest

from drishya.mesh import Box, Point, Tree, build_tree, get_block_domain
from drishya.unstructured import CORNERS, write_tree, write_tree_stream

from helpers import data_arrays, parse, read_binary

# ──────────────────────────────────────────────────────────────
# Configuration
# ──────────────────────────────────────────────────────────────

DOMAIN = Box((-1.0, 0.0, 2.0), (2.0, 1.0, 4.0))


def render(tree, domain=DOMAIN):
    stream = io.StringIO()
    write_tree_stream(stream, tree, domain)
    return stream.getvalue()


def arrays(tree, domain=DOMAIN):
    root = parse(render(tree, domain))
    return root, {name: read_binary(elem) for name, elem in data_arrays(root).items()}


# ──────────────────────────────────────────────────────────────
# Cells
# ──────────────────────────────────────────────────────────────

def test_3d_cells():
    """L hexahedra: offsets end at 8L, connectivity is 0..8L-1, 8L points."""
    tree = build_tree(3, depth=1, refine_corner=1)
    nleaves = len(tree.collect_leaves())
    assert nleaves == 15

    root, a = arrays(tree)
    assert a["types"].dtype == np.int8
    np.testing.assert_array_equal(a["types"].ravel(), np.full(nleaves, 12))
    np.testing.assert_array_equal(a["offsets"].ravel(), 8 * np.arange(1, nleaves + 1))
    assert a["offsets"].ravel()[-1] == 8 * nleaves
    np.testing.assert_array_equal(a["connectivity"].ravel(), np.arange(8 * nleaves))
    assert a["coordinates"].shape == (8 * nleaves, 3)

    piece = root.find("UnstructuredGrid").find("Piece")
    assert piece.get("NumberOfPoints") == str(8 * nleaves)
    assert piece.get("NumberOfCells") == str(nleaves)


def test_2d_cells_are_quads():
    tree = build_tree(2, depth=2)
    _, a = arrays(tree)
    np.testing.assert_array_equal(a["types"].ravel(), np.full(16, 9))
    np.testing.assert_array_equal(a["offsets"].ravel(), 4 * np.arange(1, 17))
    assert a["coordinates"].shape == (64, 3)
    assert a["ijk"].shape == (16, 2)


def test_single_leaf_tree():
    _, a = arrays(Tree(3))
    np.testing.assert_array_equal(a["offsets"].ravel(), [8])
    np.testing.assert_array_equal(a["depth"].ravel(), [0])


# ──────────────────────────────────────────────────────────────
# Geometry & ordering
# ──────────────────────────────────────────────────────────────

def test_root_corners_are_domain_corners():
    _, a = arrays(Tree(3))
    lower = np.asarray(DOMAIN.lower)
    ext = np.asarray(DOMAIN.extents)
    np.testing.assert_array_equal(a["coordinates"], lower + ext * CORNERS)


def test_coordinates_depth_and_ijk_share_leaf_order():
    """Row i of coordinates, depth and ijk all describe leaf i of the traversal."""
    tree = build_tree(3, depth=1, refine_corner=2)
    leaves = tree.collect_leaves()
    _, a = arrays(tree)

    coords = a["coordinates"].reshape(len(leaves), 8, 3)
    for i, leaf in enumerate(leaves):
        box = get_block_domain(tree.base, leaf.point, DOMAIN, 3)
        np.testing.assert_allclose(coords[i, 0], box.lower)
        np.testing.assert_allclose(coords[i, 6], box.upper)
        assert a["depth"][i, 0] == leaf.point.depth
        assert tuple(a["ijk"][i]) == leaf.point.ijk


def test_neighbouring_leaves_do_not_share_points():
    tree = build_tree(2, depth=1)
    _, a = arrays(tree)
    # leaves 0 and 1 touch along x = 0.0; the shared corner is stored twice
    coords = a["coordinates"]
    assert tuple(coords[1]) == tuple(coords[4])
    assert a["connectivity"][1, 0] != a["connectivity"][4, 0]


def test_offset_base():
    """A tree whose root sits deeper on the lattice still spans the domain."""
    tree = Tree(3, base=Point(1, (1, 1, 0)))
    tree.root.split()
    _, a = arrays(tree, Box.unit())
    assert a["coordinates"].min() == 0.0
    assert a["coordinates"].max() == 1.0
    assert a["depth"].ravel().tolist() == [2] * 8
    assert tuple(a["ijk"][7]) == (3, 3, 1)


# ──────────────────────────────────────────────────────────────
# Layout & files
# ──────────────────────────────────────────────────────────────

def test_layout():
    text = render(Tree(2))
    assert text.startswith(
        '<VTKFile type="UnstructuredGrid" header_type="UInt64" '
        'compressor="vtkZLibDataCompressor">\n<UnstructuredGrid>\n'
    )
    root = parse(text)
    piece = root.find("UnstructuredGrid").find("Piece")
    assert [child.tag for child in piece] == ["Cells", "Points", "CellData", "PointData"]
    assert list(data_arrays(piece, "Cells")) == ["types", "offsets", "connectivity"]
    assert list(data_arrays(piece, "CellData")) == ["depth", "ijk"]
    assert len(piece.find("PointData")) == 0


def test_write_tree_file(tmp_path):
    tree = build_tree(3, depth=1)
    out = write_tree(tmp_path / "tree", tree, DOMAIN)
    assert out.name == "tree.vtu"
    assert out.read_text() == render(tree)


def test_deterministic(tmp_path):
    tree = build_tree(3, depth=1, refine_corner=1)
    a = write_tree(tmp_path / "a", tree, DOMAIN).read_bytes()
    b = write_tree(tmp_path / "b", tree, DOMAIN).read_bytes()
    assert a == b


def test_leaf_outside_domain_lattice():
    """A node position that does not belong to the base fails loudly."""
    tree = Tree(3, base=Point(1, (1, 0, 0)))
    tree.root.point = Point(1, (0, 0, 0))
    with pytest.raises(ValueError):
        render(tree)
