# -*- coding: utf-8 -*-

"""
Dual host/device field arrays.

A :class:`DualArray` keeps a host-resident numpy array next to an optional
device-resident mirror (a CuPy array, a torch tensor, or anything a transfer
function can turn into numpy). Whichever side was modified last is the
current one; the writers only ever read the host side and call
:meth:`DualArray.sync_host` before they do.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import numpy as np

logger = logging.getLogger("drishya")


def _default_to_host(device: Any) -> np.ndarray:
    return np.asarray(device)


class DualArray:
    """
    Host array of shape (n, ncomps) with an optional device mirror.

    Args:
        host: host data; 1-D input is treated as a single component.
        device: device-side data, or None when the array only lives on the host.
        to_host: blocking device -> host transfer. Defaults to ``numpy.asarray``.
    """

    def __init__(
        self,
        host: np.ndarray,
        device: Any = None,
        to_host: Optional[Callable[[Any], np.ndarray]] = None,
    ):
        host = np.asarray(host)
        if host.ndim == 1:
            host = host.reshape(-1, 1)
        if host.ndim != 2:
            raise ValueError(f"DualArray expects 1-D or 2-D data, got shape {host.shape}")

        self.h_view = np.ascontiguousarray(host)
        self.d_view = device
        self._to_host = to_host or _default_to_host
        self._host_modified = False
        self._device_modified = False

    @classmethod
    def zeros(cls, n: int, ncomps: int = 1, dtype=np.float64) -> "DualArray":
        return cls(np.zeros((n, ncomps), dtype=dtype))

    @property
    def dtype(self) -> np.dtype:
        return self.h_view.dtype

    @property
    def ncomps(self) -> int:
        return self.h_view.shape[1]

    def __len__(self) -> int:
        return self.h_view.shape[0]

    def modify_host(self) -> None:
        """Mark the host copy as the newest one."""
        self._host_modified = True
        self._device_modified = False

    def modify_device(self) -> None:
        """Mark the device copy as the newest one (the host is now stale)."""
        if self.d_view is None:
            raise RuntimeError("DualArray has no device mirror to modify")
        self._device_modified = True
        self._host_modified = False

    def need_sync_host(self) -> bool:
        return self._device_modified

    def sync_host(self) -> None:
        """
        Copy the device mirror back to the host if the host is stale.

        Blocks until the transfer function returns. A current host is left untouched.
        """
        if not self.need_sync_host():
            return

        data = np.asarray(self._to_host(self.d_view), dtype=self.h_view.dtype)
        np.copyto(self.h_view, data.reshape(self.h_view.shape))
        self._device_modified = False
        logger.debug("Synced %d x %d %s array to host", len(self), self.ncomps, self.dtype)
