"""
Test-only helpers for reading back what the writers emit.

Parses VTK XML text with ElementTree and inflates binary DataArrays.
"""

import base64
import zlib
import xml.etree.ElementTree as ET

import numpy as np

NUMPY_TYPES = {
    "Int8": "<i1",
    "UInt8": "<u1",
    "Int32": "<i4",
    "Int64": "<i8",
    "Float32": "<f4",
    "Float64": "<f8",
}

# base64 length of the 32-byte UInt64 header
HEADER_CHARS = 44


def decode_payload(text, dtype="<u1"):
    """Split one encoded payload into (header, 1-D array)."""
    text = text.strip()
    header = np.frombuffer(base64.b64decode(text[:HEADER_CHARS]), dtype="<u8")
    raw = zlib.decompress(base64.b64decode(text[HEADER_CHARS:]))
    return header, np.frombuffer(raw, dtype=dtype)


def parse(xml_text):
    return ET.fromstring(xml_text)


def data_arrays(root, section=None):
    """Map Name -> DataArray element, optionally limited to one section tag."""
    scope = root.iter(section) if section else [root]
    out = {}
    for node in scope:
        for arr in node.iter("DataArray"):
            out[arr.get("Name")] = arr
    return out


def read_binary(elem):
    """Decode a binary DataArray element into an (n, ncomps) array."""
    ncomps = int(elem.get("NumberOfComponents"))
    _, values = decode_payload(elem.text, NUMPY_TYPES[elem.get("type")])
    return values.reshape(-1, ncomps)
