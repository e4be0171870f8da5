"""
Memory usage collector.

Collects virtual memory used/total/available in whole megabytes and the
usage percentage.
"""

import psutil

from ..models.snapshot import MemoryStats, round_percent
from .base import Probe

MB = 1024 * 1024


class MemoryProbe(Probe):
    """Probe for virtual memory usage."""

    name = "memory"
    failure_message = "failed to get memory info"

    def read(self) -> MemoryStats:
        mem = psutil.virtual_memory()

        return MemoryStats(
            used_mb=mem.used // MB,
            total_mb=mem.total // MB,
            usage_percent=round_percent(mem.percent),
            available_mb=mem.available // MB,
        )
