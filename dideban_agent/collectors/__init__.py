"""
Metric probes and the concurrent collection orchestrator.
"""

from .base import Probe, ProbeError
from .cpu import CPUProbe
from .disk import DiskProbe
from .memory import MemoryProbe
from .orchestrator import CollectionOrchestrator, default_probes

__all__ = [
    "Probe",
    "ProbeError",
    "CPUProbe",
    "MemoryProbe",
    "DiskProbe",
    "CollectionOrchestrator",
    "default_probes",
]
