# -*- coding: utf-8 -*-

"""
Exceptions raised by the drishya writers.

Every error carries an optional ``context`` dict that is appended to the
message in a compact ``key=value`` form, so a failed export names the block
or array it was working on.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

__all__ = [
    "DrishyaError",
    "CompressionError",
    "UnsupportedDegreeError",
    "ExportError",
]


def _format_context(ctx: Optional[Mapping[str, Any]]) -> str:
    """Return a compact ' | key1=val1, key2=val2' string or '' if no context."""
    if not ctx:
        return ""
    parts = []
    for k in sorted(ctx):
        sv = repr(ctx[k])
        if len(sv) > 120:
            sv = sv[:117] + "..."
        parts.append(f"{k}={sv}")
    return " | " + ", ".join(parts)


class DrishyaError(Exception):
    """
    Base class for all drishya errors.

    Args:
        message: Human-readable error.
        context: Extra fields shown in the string form (e.g. {"block_id": 3}).
    """

    def __init__(self, message: str, context: Optional[Mapping[str, Any]] = None):
        self.context = dict(context) if context else None
        super().__init__(message)

    def __str__(self) -> str:
        return super().__str__() + _format_context(self.context)


class CompressionError(DrishyaError, RuntimeError):
    """The zlib backend failed; the file being written must be discarded."""


class UnsupportedDegreeError(DrishyaError, ValueError):
    """Node coordinates were requested for a polynomial degree with no offset table."""


class ExportError(DrishyaError, RuntimeError):
    """
    One or more block exports of an output event failed.

    The failing block ids are kept in ``block_ids``; the first underlying
    exception is chained as ``__cause__``.
    """

    def __init__(self, message: str, block_ids=(), context: Optional[Mapping[str, Any]] = None):
        self.block_ids = list(block_ids)
        super().__init__(message, context)
