"""
Mock sender for development and testing.

Simulates network delay and configurable failures without touching the
network.
"""

import random

from ..config.schema import MockConfig
from ..logging import get_logger
from ..models.snapshot import Snapshot
from ..utils.cancel import CancelToken
from .base import DeliveryError, Sender


logger = get_logger("transport.mock")


class MockSender(Sender):
    """Local no-op sender used when no real endpoint is configured."""

    def __init__(self, config: MockConfig | None = None, rng: random.Random | None = None):
        self.config = config or MockConfig()
        self._rng = rng or random.Random()
        self.sent = 0

    async def send(self, cancel: CancelToken, snapshot: Snapshot) -> None:
        """Simulate sending with the configured delay and failure rate."""
        if self.config.delay > 0:
            await cancel.sleep(self.config.delay)
        else:
            cancel.raise_if_cancelled()

        if self.config.failure_rate > 0 and self._rng.random() < self.config.failure_rate:
            logger.warning("Mock sender: simulated delivery failure")
            raise DeliveryError("simulated delivery failure")

        self.sent += 1

        if self.config.verbose:
            logger.info(
                "Mock sender:",
                extra={
                    "agent_id": snapshot.agent_id,
                    "timestamp": snapshot.timestamp_ms,
                    "cpu_usage_percent": snapshot.cpu.usage_percent,
                    "memory_usage_percent": snapshot.memory.usage_percent,
                    "disk_usage_percent": snapshot.disk.usage_percent,
                    "collect_duration_ms": snapshot.collect_duration_ms,
                },
            )

    async def close(self) -> None:
        pass
