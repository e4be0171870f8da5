"""
Concurrent metric collection.

Runs every registered probe against one fresh Snapshot, waits for all of
them, and returns the (possibly partial) snapshot together with an
aggregate of the probe failures.
"""

import asyncio
import time
from collections.abc import Sequence

from ..config.schema import CollectorsConfig
from ..logging import get_logger
from ..models.snapshot import Snapshot
from ..utils.cancel import CancelToken
from .base import Probe, ProbeError
from .cpu import CPUProbe
from .disk import DiskProbe
from .memory import MemoryProbe


logger = get_logger("collectors.orchestrator")


def default_probes(config: CollectorsConfig | None = None) -> list[Probe]:
    """Create the statically registered probe set (CPU, memory, disk)."""
    if config is None:
        config = CollectorsConfig()

    return [
        CPUProbe(sample_interval=config.cpu_sample_interval),
        MemoryProbe(),
        DiskProbe(path=config.disk_path),
    ]


class CollectionOrchestrator:
    """
    Fans out all probes concurrently and merges their results.

    A failing probe never aborts its siblings: its block keeps zero values
    and its error is reported in the aggregate.
    """

    def __init__(self, probes: Sequence[Probe] | None = None):
        """
        Initialize orchestrator.

        Args:
            probes: Probes to run (default probe set if None)

        Raises:
            ValueError: If two probes share a name
        """
        self.probes = list(probes) if probes is not None else default_probes()

        names = [probe.name for probe in self.probes]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate probe names: {', '.join(duplicates)}")

    @property
    def probe_names(self) -> list[str]:
        return [probe.name for probe in self.probes]

    async def collect(
        self,
        cancel: CancelToken,
        agent_id: str,
    ) -> tuple[Snapshot, ExceptionGroup | None]:
        """
        Run one collection cycle.

        The snapshot is always returned, even if every probe failed, and is
        sealed before returning.

        Args:
            cancel: Cancellation token shared with the agent loop
            agent_id: Agent identifier stamped on the snapshot

        Returns:
            Tuple of (snapshot, aggregate error or None)
        """
        start = time.monotonic()
        snapshot = Snapshot(agent_id=agent_id, timestamp_ms=time.time_ns() // 1_000_000)

        results = await asyncio.gather(
            *(self._run_probe(probe, cancel, snapshot) for probe in self.probes)
        )

        snapshot.collect_duration_ms = int((time.monotonic() - start) * 1000)
        snapshot.seal()

        failures = [error for error in results if error is not None]
        if not failures:
            return snapshot, None

        names = ", ".join(error.probe for error in failures)
        return snapshot, ExceptionGroup(f"metric collection failed: {names}", failures)

    async def _run_probe(
        self,
        probe: Probe,
        cancel: CancelToken,
        snapshot: Snapshot,
    ) -> ProbeError | None:
        """Run a single probe, returning its failure instead of raising."""
        try:
            await probe.collect(cancel, snapshot)
        except ProbeError as e:
            error = e
        except Exception as e:
            error = ProbeError(probe.name, f"unexpected error: {e}")
            error.__cause__ = e
        else:
            return None

        if error.cancelled:
            logger.debug(f"Probe {probe.name} cancelled", extra={"probe": probe.name})
        else:
            logger.warning(
                f"Metric collection failed: {error}",
                extra={"probe": probe.name},
            )
        return error
