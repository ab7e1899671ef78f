# -*- coding: utf-8 -*-

"""
Writing finished in-memory streams to disk.

A file either appears complete at its destination or not at all: text goes to
a temporary sibling first and is moved into place with ``os.replace``.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Union

logger = logging.getLogger("drishya")

PathLike = Union[str, "os.PathLike[str]"]


def with_suffix(path: PathLike, suffix: str) -> Path:
    """Append ``suffix`` unless the path already ends with it."""
    path = Path(path)
    if path.name.endswith(suffix):
        return path
    return path.with_name(path.name + suffix)


def write_stream(path: PathLike, text: str) -> Path:
    """
    Atomically write ``text`` to ``path``.

    Errors from opening or writing propagate unchanged; the temporary file is
    removed and the destination is left as it was.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as fh:
            fh.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise

    logger.debug("Wrote %s (%d bytes)", path, len(text))
    return path
