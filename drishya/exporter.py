#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""

──────────────────────────────────────────────────────────────────────────────
Description
──────────────────────────────────────────────────────────────────────────────
Output-event orchestration: one call writes every local block of a step as a
.vtr file, ties them together with a .vtm manifest and snapshots the
refinement tree as a .vtu file.

Layout of one output event (defaults):

    <output_directory>/step_00042/
        block_0.vtr ... block_<N-1>.vtr
        blocks.vtm
        tree.vtu

──────────────────────────────────────────────────────────────────────────────
FAILURE MODEL
──────────────────────────────────────────────────────────────────────────────
- Every file is assembled in memory and moved into place atomically.
- A block that fails to export is logged and reported; the remaining blocks
  are still written.
- If any block failed, the manifest is not written (it must never reference
  a missing or partial file) and ExportError is raised.
- A manifest left by an earlier export of the same step is removed when a
  re-export fails, so it never mixes old and new blocks.

"""

from __future__ import annotations

import logging
import time as _time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .encoding import ArrayLike
from .errors import ExportError
from .files import with_suffix
from .manifest import write_manifest
from .mesh import Box, GridBlock, Tree
from .parallel import export_blocks
from .rectilinear import write_block
from .unstructured import write_tree

FieldSet = Mapping[str, ArrayLike]

logger = logging.getLogger("drishya")


@dataclass
class ExportResult:
    """Files produced by one output event (empty in dry-run mode)."""

    step_directory: Path
    block_files: List[Path] = field(default_factory=list)
    manifest: Optional[Path] = None
    tree: Optional[Path] = None


class VtkExporter:
    """
    Write simulation output events as VTK XML files.

    Args:
        output_directory: root directory; each step gets its own subdirectory.
        block_prefix: block i is written to ``<block_prefix><i>.vtr``.
        manifest_name: manifest file name without extension.
        tree_name: tree snapshot file name without extension.
        step_format: format string for the step subdirectory.
        nproc: worker processes for block files; None or 1 writes serially.
        dry_run: log the plan without writing files.
        verbose: DEBUG logging inside worker processes.
    """

    def __init__(
        self,
        output_directory: str,
        block_prefix: str = "block_",
        manifest_name: str = "blocks",
        tree_name: str = "tree",
        step_format: str = "step_{step:05d}",
        nproc: Optional[int] = None,
        dry_run: bool = False,
        verbose: bool = False,
    ):
        self.output_directory = Path(output_directory)
        self.block_prefix = block_prefix
        self.manifest_name = manifest_name
        self.tree_name = tree_name
        self.step_format = step_format
        self.nproc = nproc
        self.dry_run = dry_run
        self.verbose = verbose

    def step_directory(self, step: int) -> Path:
        return self.output_directory / self.step_format.format(step=step)

    def block_path(self, step: int, index: int) -> Path:
        return self.step_directory(step) / f"{self.block_prefix}{index}.vtr"

    def manifest_path(self, step: int) -> Path:
        return with_suffix(self.step_directory(step) / self.manifest_name, ".vtm")

    def workers_for(self, nblocks: int) -> int:
        if self.nproc is not None and self.nproc > 0:
            return max(1, min(self.nproc, nblocks))
        return 1

    def export_block(
        self,
        step: int,
        time: float,
        index: int,
        block: GridBlock,
        fields: Optional[FieldSet] = None,
    ) -> Path:
        """
        Write block ``index`` of an output event.

        Errors (CompressionError, UnsupportedDegreeError, OSError) propagate.
        """
        return write_block(self.block_path(step, index), block, fields or {}, time, step)

    def finish_step(
        self,
        step: int,
        block_files: List[Path],
        failures: Sequence[Tuple[int, BaseException]],
        tree: Optional[Tree] = None,
        domain: Optional[Box] = None,
    ) -> ExportResult:
        """
        Write the tree snapshot and, when every block succeeded, the manifest.

        Args:
            block_files: paths of all blocks in index order (failed ones included).
            failures: (block id, exception) for every block that failed.

        Raises:
            ExportError: if any block failed; the manifest is then not written and
                a manifest left by an earlier export of this step is removed.
        """
        result = ExportResult(self.step_directory(step))

        if tree is not None:
            if domain is None:
                raise ValueError("A domain box is required to export the tree")
            result.tree = write_tree(self.step_directory(step) / self.tree_name, tree, domain)
            logger.info("Tree snapshot: %s", result.tree)

        if failures:
            ids = [block_id for block_id, _ in failures]
            logger.error("Step %s: %d block(s) failed %s; manifest not written.", step, len(ids), ids)
            stale = self.manifest_path(step)
            if stale.exists():
                stale.unlink()
                logger.warning("Removed stale manifest '%s'", stale)
            raise ExportError(
                f"{len(ids)} block export(s) failed",
                block_ids=ids,
                context={"step": step},
            ) from failures[0][1]

        result.block_files = list(block_files)
        result.manifest = write_manifest(self.manifest_path(step), self.block_prefix, len(block_files))
        logger.info("Manifest: %s (%d blocks)", result.manifest, len(block_files))
        return result

    def log_plan(self, step: int, blocks: Sequence[GridBlock], fields: Sequence[FieldSet], tree: Optional[Tree]) -> None:
        names = sorted({name for fs in fields for name in fs})
        logger.info(
            "[dry-run] Would write %d block file(s) '%s<i>.vtr' with fields %s, manifest '%s.vtm'%s into '%s'.",
            len(blocks),
            self.block_prefix,
            names,
            self.manifest_name,
            f" and tree '{self.tree_name}.vtu'" if tree is not None else "",
            self.step_directory(step),
        )

    def export_step(
        self,
        step: int,
        time: float,
        blocks: Sequence[GridBlock],
        fields: Optional[Sequence[FieldSet]] = None,
        tree: Optional[Tree] = None,
        domain: Optional[Box] = None,
    ) -> ExportResult:
        """
        Export one output event, with worker processes when ``nproc`` > 1.

        Args:
            step: integer step number, written into every block and the directory name.
            time: simulation time.
            blocks: local blocks, written as block 0..N-1 in this order.
            fields: per-block {name: array} mappings aligned with ``blocks``.
            tree: refinement tree to snapshot, optional.
            domain: physical box covered by ``tree``.
        """
        fields = normalize_fields(blocks, fields)

        if self.dry_run:
            self.log_plan(step, blocks, fields, tree)
            return ExportResult(self.step_directory(step))

        t0 = _time.time()
        block_files = [self.block_path(step, index) for index in range(len(blocks))]
        nworkers = self.workers_for(len(blocks))

        if nworkers > 1:
            failures = export_blocks(block_files, blocks, fields, step, time, nworkers, self.verbose)
        else:
            failures = []
            for index, (block, fs) in enumerate(zip(blocks, fields)):
                try:
                    self.export_block(step, time, index, block, fs)
                except Exception as e:
                    logger.exception("Failed to export block %s to '%s': %s", block.id, block_files[index], e)
                    failures.append((block.id, e))

        result = self.finish_step(step, block_files, failures, tree, domain)
        logger.info("DONE: step %s written to '%s' in %.2fs", step, result.step_directory, _time.time() - t0)
        return result


def normalize_fields(blocks: Sequence[GridBlock], fields: Optional[Sequence[FieldSet]]) -> List[Dict[str, ArrayLike]]:
    """Return one field mapping per block, checking the two sequences line up."""
    if fields is None:
        return [{} for _ in blocks]
    if len(fields) != len(blocks):
        raise ValueError(f"Got {len(fields)} field sets for {len(blocks)} blocks")
    return [dict(fs) for fs in fields]


def run_parallel_export(
    output_directory: str,
    step: int,
    time: float,
    blocks: Sequence[GridBlock],
    fields: Optional[Sequence[FieldSet]] = None,
    tree: Optional[Tree] = None,
    domain: Optional[Box] = None,
    block_prefix: str = "block_",
    manifest_name: str = "blocks",
    tree_name: str = "tree",
    step_format: str = "step_{step:05d}",
    dry_run: bool = False,
    verbose: bool = False,
    nproc: Optional[int] = None,
) -> ExportResult:
    """
    High-level runner that exports one output event.

    nproc: Number of worker processes. If None or not provided, defaults to 1
    (serial execution); otherwise up to min(nproc, number of blocks) workers.
    """
    conv = VtkExporter(
        output_directory=output_directory,
        block_prefix=block_prefix,
        manifest_name=manifest_name,
        tree_name=tree_name,
        step_format=step_format,
        nproc=nproc,
        dry_run=dry_run,
        verbose=verbose,
    )
    return conv.export_step(step, time, blocks, fields, tree, domain)
