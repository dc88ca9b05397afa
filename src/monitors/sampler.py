"""Host CPU sampling backed by psutil."""

from __future__ import annotations

import logging

import psutil

from src.utils.errors import SampleError

log = logging.getLogger(__name__)


class CpuSampler:
    """Non-blocking CPU utilization reader.

    ``psutil.cpu_percent(interval=None)`` reports usage since the previous
    call, so the constructor primes a baseline and each ``current_load`` then
    covers the time since the last tick.
    """

    def __init__(self) -> None:
        psutil.cpu_percent(interval=None)

    def current_load(self) -> int:
        try:
            value = psutil.cpu_percent(interval=None)
        except Exception as exc:
            log.error("Failed to get CPU usage: %s", exc)
            raise SampleError(f"Failed to get CPU usage: {exc}") from exc
        return int(round(value))


__all__ = ["CpuSampler"]
