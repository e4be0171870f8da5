"""
Disk space collector.

Reads usage of the root filesystem (or a configured mountpoint) via psutil.

Collects:
- Used space (whole GiB)
- Total size (whole GiB)
- Usage percentage (rounded)
"""

import psutil

from ..const import DEFAULT_DISK_PATH
from ..models.snapshot import DiskStats, round_percent
from .base import Probe

GB = 1024 * 1024 * 1024


class DiskProbe(Probe):
    """Probe for filesystem usage at a single path."""

    name = "disk"
    failure_message = "failed to get disk usage"

    def __init__(self, path: str = DEFAULT_DISK_PATH):
        self.path = path

    def read(self) -> DiskStats:
        usage = psutil.disk_usage(self.path)

        return DiskStats(
            used_gb=usage.used // GB,
            total_gb=usage.total // GB,
            usage_percent=round_percent(usage.percent),
        )
