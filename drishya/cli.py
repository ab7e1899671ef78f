#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""

──────────────────────────────────────────────────────────────────────────────
CLI QUICK START (copy–paste, then tweak)
──────────────────────────────────────────────────────────────────────────────
Builds a synthetic refined mesh over the unit cube, fills every block with a
smooth density blob and a swirling velocity, and writes one output event:

    python3 -m drishya.cli \
        --output-dir ./viz \
        --dim 3 --degree 2 --cells 4 \
        --depth 1 --refine-corner 2 \
        --step 10 --time 0.25 \
        --nproc 4 --verbose

Open ``viz/step_00010/blocks.vtm`` and ``viz/step_00010/tree.vtu`` in ParaView.

Required args:

    --output-dir       Root directory for the output event.

Optional args:

    --dim              Tree dimension, 2 or 3 (default: 3)
    --degree           Polynomial degree of every block, 0..2 (default: 1)
    --cells            Cells per refined axis per block (default: 4)
    --depth            Uniform refinement levels below the root (default: 1)
    --refine-corner    Extra levels refined toward the lower corner (default: 0)
    --step / --time    Step number and simulation time written into the files
    --block-prefix     Block file prefix (default: block_)
    --nproc            Worker processes for block files (default: 1)
    --dry-run          Run everything except the actual write step
    --verbose          step-by-step narration

"""


import argparse
import logging
from typing import Dict, List, Optional

import numpy as np

from .logs import setup_logging
from .mesh import Box, GridBlock, build_tree, make_leaf_blocks
from .exporter import VtkExporter
from .rectilinear import coordinate_axis

logger = logging.getLogger("drishya")


def non_negative_int(val: str) -> int:
    try:
        iv = int(val)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid integer value: {val}")
    if iv < 0:
        raise argparse.ArgumentTypeError(f"Invalid value: {val}. Must be non-negative.")
    return iv


def synthetic_fields(block: GridBlock) -> Dict[str, np.ndarray]:
    """
    Sample a Gaussian density and a rotating velocity at sub-cell centers.

    Arrays are ordered x fastest, as VTK expects for cell data.
    """
    centers = []
    for axis in range(3):
        x = coordinate_axis(block, axis).astype(np.float64)
        centers.append(0.5 * (x[:-1] + x[1:]))

    X, Y, Z = np.meshgrid(*centers, indexing="ij")
    X, Y, Z = (a.ravel(order="F") for a in (X, Y, Z))

    r2 = (X - 0.5) ** 2 + (Y - 0.5) ** 2 + (Z - 0.5) ** 2
    density = np.exp(-r2 / 0.05).reshape(-1, 1)
    velocity = np.column_stack([-(Y - 0.5), X - 0.5, np.zeros_like(X)]).astype(np.float32)
    return {"density": density, "velocity": velocity}


def main(argv: Optional[List[str]] = None) -> None:

    """
    Parse CLI args and write one synthetic output event.
    """

    parser = argparse.ArgumentParser(description="VTK XML export of a synthetic block/tree mesh")

    parser.add_argument("--output-dir", type=str, required=True, help="Root output directory (REQUIRED)")

    # Mesh
    parser.add_argument("--dim", type=int, choices=(2, 3), default=3, help="Tree dimension (default: 3)")
    parser.add_argument("--degree", type=non_negative_int, default=1, help="Polynomial degree of the blocks (default: 1)")
    parser.add_argument("--cells", type=non_negative_int, default=4, help="Cells per refined axis per block (default: 4)")
    parser.add_argument("--depth", type=non_negative_int, default=1, help="Uniform refinement depth (default: 1)")
    parser.add_argument("--refine-corner", type=non_negative_int, default=0, help="Extra refinement toward the lower corner (default: 0)")

    # Output event
    parser.add_argument("--step", type=non_negative_int, default=0, help="Step number (default: 0)")
    parser.add_argument("--time", type=float, default=0.0, help="Simulation time (default: 0.0)")
    parser.add_argument("--block-prefix", default="block_", help="Block file prefix (default: block_)")
    parser.add_argument("--nproc", type=int, default=None, help="Worker processes for block files (default: serial)")

    # Utility flags
    parser.add_argument("--dry-run", action="store_true", help="Print plan without writing files.")
    parser.add_argument("--verbose", action="store_true", help="Verbose logging.")

    args = parser.parse_args(argv)

    # Configure logging early
    setup_logging(args.verbose)

    if args.cells < 1:
        parser.error("--cells must be at least 1.")

    domain = Box.unit()
    tree = build_tree(args.dim, args.depth, args.refine_corner)
    blocks = make_leaf_blocks(tree, domain, args.degree, args.cells)
    logger.info("Built %d-D tree with %d leaves", args.dim, len(blocks))

    try:
        fields = [synthetic_fields(block) for block in blocks]
        conv = VtkExporter(
            output_directory=args.output_dir,
            block_prefix=args.block_prefix,
            nproc=args.nproc,
            dry_run=args.dry_run,
            verbose=args.verbose,
        )
        result = conv.export_step(args.step, args.time, blocks, fields, tree, domain)
    except Exception as e:
        logger.exception("FATAL: Unexpected error: %s", e)
        raise

    if args.dry_run:
        print(f"Dry run: {len(blocks)} block(s) planned, nothing written.")
    else:
        print(f"Completed: {len(result.block_files)} block(s), manifest {result.manifest}, tree {result.tree}")


if __name__ == "__main__":
    main()
