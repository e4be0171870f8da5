"""
Data models for metric snapshots.
"""

from .snapshot import (
    CPUStats,
    DiskStats,
    MemoryStats,
    Snapshot,
    SnapshotSealedError,
    round_percent,
)

__all__ = [
    "Snapshot",
    "CPUStats",
    "MemoryStats",
    "DiskStats",
    "SnapshotSealedError",
    "round_percent",
]
