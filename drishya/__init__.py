# -*- coding: utf-8 -*-

"""

Drishya: VTK XML export for block-structured, tree-refined simulations
=====================================================================

──────────────────────────────────────────────────────────────────────────────
Description
──────────────────────────────────────────────────────────────────────────────
Drishya writes the state of a high-order, block-structured simulation into
the VTK XML file family that ParaView and other VTK-based tools read:

- one RectilinearGrid (.vtr) file per block, with degree-aware node
  coordinates and binary cell data;
- one vtkMultiBlockDataSet (.vtm) manifest tying the blocks together;
- one UnstructuredGrid (.vtu) snapshot of the refinement tree's leaves.

──────────────────────────────────────────────────────────────────────────────
WHY THIS EXISTS
──────────────────────────────────────────────────────────────────────────────
- A degree-p block holds p+1 nodes per cell and axis, at non-uniform
  positions for p=2; a plain cell-centered dump loses that structure.
- Binary arrays use VTK's zlib/base64 layout with 64-bit headers, so large
  blocks stay compact and load without conversion.

"""

from .dual import DualArray

from .errors import (
    DrishyaError,
    CompressionError,
    UnsupportedDegreeError,
    ExportError,
)

from .mesh import (
    Point,
    Box,
    GridBlock,
    TreeNode,
    Tree,
    get_block_domain,
    build_tree,
    make_leaf_blocks,
)

from .encoding import encode_array, vtk_type_name

from .rectilinear import (
    coordinate_axis,
    write_vtr_start,
    write_field,
    write_vtr_end,
    write_block,
)

from .manifest import write_vtm, write_manifest

from .unstructured import write_tree, write_tree_stream

from .logs import setup_logging

from .exporter import ExportResult, VtkExporter, run_parallel_export

from .parallel import process_single_block, export_blocks

__version__ = "1.0.0"
