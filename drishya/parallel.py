#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""

Parallel execution utilities for drishya.

Blocks of one output event touch only their own arrays and their own file,
so they are written by independent worker processes. The manifest and the
tree snapshot are written afterwards by the exporter in the calling process.

"""

from __future__ import annotations

from concurrent.futures.process import BrokenProcessPool
from functools import partial
from pathlib import Path
from typing import Dict, List, Mapping, Sequence, Tuple

import logging
import time as _time
import concurrent.futures

import numpy as np

from .encoding import ArrayLike, host_view
from .logs import setup_logging
from .mesh import GridBlock
from .rectilinear import write_block

logger = logging.getLogger("drishya")


def process_single_block(
    path: Path,
    block: GridBlock,
    fields: Dict[str, np.ndarray],
    step: int,
    time: float,
    verbose: bool,
) -> Path:
    """
    Worker function executed in each process. It configures logging and writes
    a single block file.

    Args:
        path: destination of the block file.
        block: block to write.
        fields: host-resident cell arrays of the block.
        step: output step number.
        time: simulation time.
        verbose: Flag for verbose logging.

    Returns:
        Path of the written file. Exceptions propagate to the parent.
    """
    setup_logging(verbose)
    return write_block(path, block, fields, time, step)


def _host_fields(fields: Sequence[Mapping[str, ArrayLike]]) -> List[Dict[str, np.ndarray]]:
    # Device data never crosses the process boundary: sync here, ship numpy.
    return [{name: host_view(arr, copy=True) for name, arr in fs.items()} for fs in fields]


def export_blocks(
    paths: Sequence[Path],
    blocks: Sequence[GridBlock],
    fields: Sequence[Mapping[str, ArrayLike]],
    step: int,
    time: float,
    nworkers: int,
    verbose: bool = False,
) -> List[Tuple[int, BaseException]]:
    """
    Write every block of an output event with worker processes.

    Parameters:
    - paths: destination of each block, aligned with blocks.
    - blocks: local blocks of the event.
    - fields: per-block {name: array} mappings aligned with blocks.
    - step, time: step number and simulation time of the event.
    - nworkers: size of the process pool.
    - verbose: Enable detailed logging in the workers.

    Behavior:
    - Per-block failures are collected, never retried.
    - If the process pool itself breaks, falls back to serial processing.

    Returns:
    - (block id, exception) for every block that failed.
    """

    field_sets = _host_fields(fields)

    logger.info("Starting on %d worker(s) for %d block(s) of step %s", nworkers, len(blocks), step)
    t0 = _time.time()

    worker = partial(process_single_block, step=step, time=time, verbose=verbose)
    failures: List[Tuple[int, BaseException]] = []

    try:
        with concurrent.futures.ProcessPoolExecutor(max_workers=nworkers) as ex:
            futures = [
                ex.submit(worker, path, block, fs)
                for path, block, fs in zip(paths, blocks, field_sets)
            ]
            for block, fut in zip(blocks, futures):
                err = fut.exception()
                if isinstance(err, BrokenProcessPool):
                    raise err
                if err is not None:
                    logger.error("Block %s failed: %s", block.id, err)
                    failures.append((block.id, err))
    except (BrokenProcessPool, OSError) as e:
        logger.error("Parallel execution failed: %s", e)
        logger.info("Falling back to serial execution...")

        failures = []
        for path, block, fs in zip(paths, blocks, field_sets):
            try:
                worker(path, block, fs)
            except Exception as ew:
                logger.exception("Serial worker failed for block %s: %s", block.id, ew)
                failures.append((block.id, ew))

    logger.info("Blocks elapsed: %.2fs", _time.time() - t0)
    return failures
