# -*- coding: utf-8 -*-

"""
Binary DataArray encoding for VTK XML files.

VTK's ``vtkZLibDataCompressor`` layout with ``header_type="UInt64"``: a header
of four little-endian uint64 values ``{1, raw_bytes, raw_bytes,
compressed_bytes}`` (one compressed block holding the whole array), base64
encoded on its own, followed directly by the base64 of the zlib stream.
"""

from __future__ import annotations

import base64
import logging
import zlib
from typing import TextIO, Union

import numpy as np

from .dual import DualArray
from .errors import CompressionError

logger = logging.getLogger("drishya")

ArrayLike = Union[DualArray, np.ndarray]

# Z_BEST_SPEED
COMPRESSION_LEVEL = 1

VTK_TYPE_NAMES = {
    np.dtype(np.int8): "Int8",
    np.dtype(np.uint8): "UInt8",
    np.dtype(np.int32): "Int32",
    np.dtype(np.int64): "Int64",
    np.dtype(np.float32): "Float32",
    np.dtype(np.float64): "Float64",
}


def vtk_type_name(dtype) -> str:
    """
    Return the VTK type attribute for a numpy dtype.

    Raises:
        TypeError: if VTK has no matching scalar type in this writer.
    """
    key = np.dtype(dtype).newbyteorder("=")
    try:
        return VTK_TYPE_NAMES[key]
    except KeyError:
        raise TypeError(f"No VTK type for dtype {np.dtype(dtype)}") from None


def host_view(array: ArrayLike, copy: bool = True) -> np.ndarray:
    """
    Return the host array behind ``array`` as a 2-D (n, ncomps) numpy array.

    DualArrays are synced to the host first when ``copy`` is true.
    """
    if isinstance(array, DualArray):
        if copy:
            array.sync_host()
        return array.h_view

    arr = np.asarray(array)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    if arr.ndim != 2:
        raise ValueError(f"Field arrays must be 1-D or 2-D, got shape {arr.shape}")
    return arr


def _compress(raw: bytes) -> bytes:
    try:
        return zlib.compress(raw, COMPRESSION_LEVEL)
    except (zlib.error, MemoryError) as e:
        raise CompressionError("zlib compression failed", {"raw_bytes": len(raw)}) from e


def encode_bytes(raw: bytes) -> str:
    """
    Encode a raw byte buffer as one VTK binary payload line (newline included).
    """
    compressed = _compress(raw)
    header = np.array([1, len(raw), len(raw), len(compressed)], dtype="<u8")
    enc_header = base64.b64encode(header.tobytes()).decode("ascii")
    encoded = base64.b64encode(compressed).decode("ascii")
    logger.debug("Encoded %d bytes -> %d compressed", len(raw), len(compressed))
    return enc_header + encoded + "\n"


def encode_array(array: ArrayLike, copy: bool = True) -> str:
    """
    Encode a field array as a VTK binary payload.

    Args:
        array: DualArray or numpy array of shape (n,) or (n, ncomps).
        copy: sync a DualArray's host copy before reading it.

    Returns:
        base64(header) + base64(zlib(data)) + "\\n"

    Raises:
        TypeError: for dtypes without a VTK type, before anything is compressed.
    """
    host = host_view(array, copy=copy)
    vtk_type_name(host.dtype)
    little = host.astype(host.dtype.newbyteorder("<"), copy=False)
    raw = np.ascontiguousarray(little).tobytes()
    return encode_bytes(raw)


def write_data_start(stream: TextIO, type_name: str, name: str, ncomps: int) -> None:
    stream.write(
        f'<DataArray type="{type_name}" Name="{name}" '
        f'NumberOfComponents="{ncomps}" format="binary">\n'
    )


def write_data_end(stream: TextIO) -> None:
    stream.write("</DataArray>\n")


def write_binary_array(stream: TextIO, name: str, array: ArrayLike, copy: bool = True) -> None:
    """
    Emit a complete binary ``<DataArray>`` element.

    The payload is encoded before anything is written, so a compression
    failure leaves the stream without a dangling opening tag.
    """
    host = host_view(array, copy=copy)
    payload = encode_array(host, copy=False)
    write_data_start(stream, vtk_type_name(host.dtype), name, host.shape[1])
    stream.write(payload)
    write_data_end(stream)
