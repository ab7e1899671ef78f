# -*- coding: utf-8 -*-

"""
vtkMultiBlockDataSet (.vtm) manifest tying the per-block .vtr files together.

Block i of an output event is named ``prefix + str(i)`` and lives in
``prefix + str(i) + ".vtr"``; the manifest only records that convention and
never checks the files exist.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import TextIO

from .files import PathLike, with_suffix, write_stream


def block_file_name(prefix: str, index: int) -> str:
    return f"{prefix}{index}.vtr"


def write_vtm(stream: TextIO, prefix: str, nblocks: int) -> None:
    if nblocks < 0:
        raise ValueError(f"Number of blocks must be non-negative, got {nblocks}")

    stream.write('<VTKFile type="vtkMultiBlockDataSet" version="1.0">\n')
    stream.write("<vtkMultiBlockDataSet>\n")
    for i in range(nblocks):
        stream.write(f'<DataSet index="{i}" file="{block_file_name(prefix, i)}"/>\n')
    stream.write("</vtkMultiBlockDataSet>\n")
    stream.write("</VTKFile>")


def write_manifest(path: PathLike, prefix: str, nblocks: int) -> Path:
    """Write the manifest for ``nblocks`` block files to ``path`` (``.vtm`` appended if missing)."""
    stream = io.StringIO()
    write_vtm(stream, prefix, nblocks)
    return write_stream(with_suffix(path, ".vtm"), stream.getvalue())
