"""
Snapshot data model.

A Snapshot is one timestamped set of resource readings produced by a
single collection cycle. It is also the wire payload sent to the core.

Each probe owns exactly one resource block (cpu, memory, disk), so
concurrent probes never write to the same fields. Once the orchestrator
has joined all probes the snapshot is sealed and becomes read-only.
"""

import json
import math
from dataclasses import asdict, dataclass, field, fields
from typing import Any


class SnapshotSealedError(AttributeError):
    """Raised when a sealed snapshot is modified."""

    pass


def round_percent(value: float) -> float:
    """
    Round a percentage to the nearest integer-valued float.

    Halves are rounded away from zero (42.5 -> 43.0), unlike the builtin
    round() which rounds halves to even.
    """
    if math.isnan(value) or math.isinf(value):
        return value
    return float(math.copysign(math.floor(abs(value) + 0.5), value))


class _Sealable:
    """Mixin that rejects attribute assignment once sealed."""

    _sealed: bool = False

    def __setattr__(self, name: str, value: Any) -> None:
        if self._sealed:
            raise SnapshotSealedError(
                f"{type(self).__name__} is sealed; cannot set {name!r}"
            )
        super().__setattr__(name, value)

    def seal(self) -> None:
        object.__setattr__(self, "_sealed", True)

    @property
    def sealed(self) -> bool:
        return self._sealed


@dataclass
class CPUStats(_Sealable):
    """CPU usage and load averages."""

    usage_percent: float = 0.0
    load_1: float = 0.0
    load_5: float = 0.0
    load_15: float = 0.0


@dataclass
class MemoryStats(_Sealable):
    """Virtual memory usage in whole megabytes."""

    used_mb: int = 0
    total_mb: int = 0
    usage_percent: float = 0.0
    available_mb: int = 0


@dataclass
class DiskStats(_Sealable):
    """Root filesystem usage in whole gigabytes."""

    used_gb: int = 0
    total_gb: int = 0
    usage_percent: float = 0.0


@dataclass
class Snapshot(_Sealable):
    """
    One collection cycle's worth of metrics.

    Blocks for probes that failed keep their zero values; a partial
    snapshot is still valid for delivery.
    """

    agent_id: str
    timestamp_ms: int = 0
    collect_duration_ms: int = 0

    cpu: CPUStats = field(default_factory=CPUStats)
    memory: MemoryStats = field(default_factory=MemoryStats)
    disk: DiskStats = field(default_factory=DiskStats)

    def seal(self) -> None:
        """Make the snapshot and all its blocks read-only."""
        for block in (self.cpu, self.memory, self.disk):
            block.seal()
        super().seal()

    def to_dict(self) -> dict[str, Any]:
        """Get data dict for JSON serialization."""
        return asdict(self)

    def to_json(self) -> str:
        """
        Encode the snapshot as a compact JSON document.

        Raises:
            ValueError: If a field holds NaN or infinity
            TypeError: If a field holds a non-serializable value
        """
        return json.dumps(self.to_dict(), allow_nan=False, separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Snapshot":
        """Rebuild a snapshot from a decoded payload."""

        def block(block_cls: type, values: dict[str, Any] | None) -> Any:
            known = {f.name for f in fields(block_cls)}
            return block_cls(**{k: v for k, v in (values or {}).items() if k in known})

        return cls(
            agent_id=data["agent_id"],
            timestamp_ms=int(data.get("timestamp_ms", 0)),
            collect_duration_ms=int(data.get("collect_duration_ms", 0)),
            cpu=block(CPUStats, data.get("cpu")),
            memory=block(MemoryStats, data.get("memory")),
            disk=block(DiskStats, data.get("disk")),
        )

    def __repr__(self) -> str:
        return (
            f"Snapshot({self.agent_id!r}, ts={self.timestamp_ms}, "
            f"cpu={self.cpu.usage_percent}%, mem={self.memory.usage_percent}%, "
            f"disk={self.disk.usage_percent}%)"
        )
