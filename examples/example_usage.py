#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""

─────────────────────────────────────────────────────────────
Example Usage of Drishya
─────────────────────────────────────────────────────────────

This script demonstrates how a simulation hands its state to
drishya at an output event.

Features demonstrated:
1. Building a refined octree and one block per leaf
2. Keeping a field on a (mock) device with DualArray
3. Streaming a single block with start/field/end calls
4. Exporting a whole output event (blocks + manifest + tree)

Note: The output directory is created automatically if it does
not already exist.

─────────────────────────────────────────────────────────────

"""

import io

import numpy as np

from drishya import (
    Box,
    DualArray,
    VtkExporter,
    build_tree,
    make_leaf_blocks,
    setup_logging,
    write_field,
    write_vtr_end,
    write_vtr_start,
)

# ──────────────────────────────────────────────────────────────
# Configuration
# ──────────────────────────────────────────────────────────────

OUTPUT_DIR = "vtk_outputs"

DOMAIN = Box((0.0, 0.0, 0.0), (2.0, 1.0, 1.0))

DEGREE = 2

CELLS = 4

DRY_RUN = False


# ──────────────────────────────────────────────────────────────
# Helper Functions
# ──────────────────────────────────────────────────────────────


def make_pressure(block) -> DualArray:
    """Pretend the solver left pressure on the device after its last kernel."""
    n = block.num_cells * (block.degree + 1) ** 3
    device = np.linspace(0.0, 1.0, n).reshape(-1, 1) + block.id
    pressure = DualArray(np.zeros((n, 1)), device=device)
    pressure.modify_device()
    return pressure


# ──────────────────────────────────────────────────────────────
# Main Example Workflow
# ──────────────────────────────────────────────────────────────

def main():

    setup_logging(verbose=True)

    tree = build_tree(dim=3, depth=1, refine_corner=1)
    blocks = make_leaf_blocks(tree, DOMAIN, DEGREE, CELLS)
    print(f"Tree has {len(blocks)} leaves")

    # One block by hand: the caller decides which fields go in.
    stream = io.StringIO()
    write_vtr_start(stream, blocks[0], time=0.0, step=0)
    write_field(stream, "pressure", make_pressure(blocks[0]))
    write_vtr_end(stream)
    print(f"Block 0 document: {len(stream.getvalue())} characters")

    # A whole output event.
    fields = [{"pressure": make_pressure(block)} for block in blocks]
    exporter = VtkExporter(OUTPUT_DIR, dry_run=DRY_RUN)
    result = exporter.export_step(step=1, time=0.1, blocks=blocks, fields=fields, tree=tree, domain=DOMAIN)

    if DRY_RUN:
        print("Dry run finished; set DRY_RUN = False to write files.")
    else:
        print(f"Open {result.manifest} and {result.tree} in ParaView.")


# ──────────────────────────────────────────────────────────────
# Entry Point
# ──────────────────────────────────────────────────────────────

if __name__ == "__main__":
    main()
