# -*- coding: utf-8 -*-

"""

──────────────────────────────────────────────────────────────────────────────
Mesh views consumed by the writers
──────────────────────────────────────────────────────────────────────────────
- Point:     tree position (depth, integer ijk) on the refinement lattice.
- Box:       axis-aligned physical box (lower corner + extents).
- GridBlock: read-only view of one block (degree, cell grid, box, position).
- TreeNode / Tree: adaptive quadtree/octree whose leaves are the blocks.

Tree positions are absolute: a node at depth d sits on a lattice with
2**d cells per refined axis, and the tree's ``base`` point is the lattice
position of its root. ``get_block_domain`` maps a position back to physics
coordinates inside the tree's domain.

"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

DIMS = 3


@dataclass(frozen=True)
class Point:
    depth: int
    ijk: Tuple[int, int, int]

    def __post_init__(self):
        if len(self.ijk) != DIMS:
            raise ValueError(f"ijk must have {DIMS} entries, got {self.ijk!r}")
        object.__setattr__(self, "ijk", tuple(int(v) for v in self.ijk))


@dataclass(frozen=True)
class Box:
    lower: Tuple[float, float, float]
    extents: Tuple[float, float, float]

    def __post_init__(self):
        if len(self.lower) != DIMS or len(self.extents) != DIMS:
            raise ValueError("Box lower and extents must be 3-vectors")
        object.__setattr__(self, "lower", tuple(float(v) for v in self.lower))
        object.__setattr__(self, "extents", tuple(float(v) for v in self.extents))

    @classmethod
    def unit(cls) -> "Box":
        return cls((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))

    @property
    def upper(self) -> Tuple[float, float, float]:
        return tuple(lo + ex for lo, ex in zip(self.lower, self.extents))


@dataclass(frozen=True)
class GridBlock:
    """
    One block of the spatial decomposition.

    Attributes:
        degree: polynomial degree p of the block's basis.
        cells: number of cells per axis (nx, ny, nz), each >= 1.
        domain: physical box covered by the block.
        point: tree position of the leaf that owns the block.
        id: globally unique block id.
        owner: rank that owns the block.
    """

    degree: int
    cells: Tuple[int, int, int]
    domain: Box
    point: Point
    id: int
    owner: int = 0

    def __post_init__(self):
        if len(self.cells) != DIMS or any(int(n) < 1 for n in self.cells):
            raise ValueError(f"cells must be three positive integers, got {self.cells!r}")
        object.__setattr__(self, "cells", tuple(int(n) for n in self.cells))

    @property
    def dx(self) -> np.ndarray:
        """Cell spacing per axis."""
        return np.asarray(self.domain.extents) / np.asarray(self.cells)

    @property
    def num_cells(self) -> int:
        nx, ny, nz = self.cells
        return nx * ny * nz


class TreeNode:
    """A node of the refinement tree; it has either no children or 2**dim."""

    def __init__(self, point: Point, dim: int = DIMS):
        self.point = point
        self.dim = dim
        self.children: List["TreeNode"] = []

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def split(self) -> List["TreeNode"]:
        """
        Refine a leaf into 2**dim children, ordered so child c is offset by
        (c >> axis) & 1 along each refined axis.
        """
        if not self.is_leaf:
            raise ValueError(f"Node {self.point} is already refined")

        depth = self.point.depth + 1
        for c in range(2 ** self.dim):
            ijk = list(self.point.ijk)
            for axis in range(self.dim):
                ijk[axis] = 2 * ijk[axis] + ((c >> axis) & 1)
            self.children.append(TreeNode(Point(depth, tuple(ijk)), self.dim))
        return self.children

    def __repr__(self) -> str:
        return f"TreeNode({self.point.depth}, {self.point.ijk}, leaf={self.is_leaf})"


class Tree:
    """
    Adaptive quadtree (dim=2) or octree (dim=3) with a lattice base offset.

    Args:
        dim: number of refined axes, 1 to 3.
        base: lattice position of the root. Defaults to depth 0, ijk (0, 0, 0).
    """

    def __init__(self, dim: int = DIMS, base: Optional[Point] = None):
        if dim not in (1, 2, 3):
            raise ValueError(f"Tree dimension must be 1, 2 or 3, got {dim}")
        self.dim = dim
        self.base = base if base is not None else Point(0, (0, 0, 0))
        self.root = TreeNode(self.base, dim)

    def iter_leaves(self) -> Iterator[TreeNode]:
        """Depth-first preorder walk, children in split order."""
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node.is_leaf:
                yield node
            else:
                stack.extend(reversed(node.children))

    def collect_leaves(self) -> List[TreeNode]:
        return list(self.iter_leaves())

    def refine_uniform(self, levels: int) -> None:
        for _ in range(levels):
            for leaf in self.collect_leaves():
                leaf.split()


def get_block_domain(base: Point, point: Point, domain: Box, dim: int = DIMS) -> Box:
    """
    Physical box of the tree node at ``point``.

    The tree rooted at ``base`` covers ``domain``. Along each refined axis
    (axis < dim) the domain holds 2**(point.depth - base.depth) blocks;
    unrefined axes span the whole domain.

    Raises:
        ValueError: if ``point`` is not inside the tree rooted at ``base``.
    """
    rel = point.depth - base.depth
    if rel < 0:
        raise ValueError(f"Point {point} is above the tree base {base}")

    nblocks = 2 ** rel
    lower = list(domain.lower)
    extents = list(domain.extents)
    for axis in range(dim):
        idx = point.ijk[axis] - base.ijk[axis] * nblocks
        if not 0 <= idx < nblocks:
            raise ValueError(f"Point {point} lies outside the tree based at {base}")
        width = domain.extents[axis] / nblocks
        lower[axis] = domain.lower[axis] + idx * width
        extents[axis] = width
    return Box(tuple(lower), tuple(extents))


def build_tree(dim: int = DIMS, depth: int = 0, refine_corner: int = 0, base: Optional[Point] = None) -> Tree:
    """
    Build a tree refined uniformly to ``depth`` levels below the root, then
    refined ``refine_corner`` more times toward the tree's lower corner.
    """
    tree = Tree(dim, base)
    tree.refine_uniform(depth)

    node = tree.root
    while not node.is_leaf:
        node = node.children[0]
    for _ in range(refine_corner):
        node = node.split()[0]
    return tree


def make_leaf_blocks(
    tree: Tree,
    domain: Box,
    degree: int,
    cells: Union[int, Sequence[int]],
    owner: int = 0,
) -> List[GridBlock]:
    """
    Create one GridBlock per tree leaf, ids following the leaf traversal order.

    An integer ``cells`` applies to every refined axis; unrefined axes get a
    single cell.
    """
    if isinstance(cells, int):
        cells = tuple(cells if axis < tree.dim else 1 for axis in range(DIMS))

    blocks = []
    for block_id, leaf in enumerate(tree.iter_leaves()):
        box = get_block_domain(tree.base, leaf.point, domain, tree.dim)
        blocks.append(GridBlock(degree, tuple(cells), box, leaf.point, block_id, owner))
    return blocks
