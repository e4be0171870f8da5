"""
Agent loop.

Ties a fixed-rate schedule to one collection orchestrator and one sender:

    IDLE -> RUNNING -> STOPPING -> STOPPED

One cycle runs immediately on start, then one per tick. Cycles never
overlap. Ticks follow a fixed-rate schedule anchored at the start time;
when a cycle overruns, at most one pending tick fires right after it and
the rest are dropped.
"""

import asyncio
from enum import Enum

from .collectors.orchestrator import CollectionOrchestrator
from .logging import get_logger
from .transport.base import DeliveryError, Sender
from .utils.cancel import CancelToken, OperationCancelled


logger = get_logger("agent")


class AgentState(Enum):
    """Lifecycle state of the agent loop."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class AgentLoop:
    """
    Periodic collect-then-deliver loop.

    Probe failures and delivery failures are logged and absorbed; only
    cancellation of the token ends the loop.
    """

    def __init__(
        self,
        orchestrator: CollectionOrchestrator,
        sender: Sender,
        agent_id: str,
        interval: float,
    ):
        """
        Initialize agent loop.

        Args:
            orchestrator: Runs the probes for each cycle
            sender: Delivers each cycle's snapshot
            agent_id: Identifier stamped on every snapshot
            interval: Seconds between cycle starts
        """
        if interval <= 0:
            raise ValueError("interval must be > 0")

        self.orchestrator = orchestrator
        self.sender = sender
        self.agent_id = agent_id
        self.interval = interval

        self.state = AgentState.IDLE
        self.cycles = 0
        self.delivered = 0

    async def run(self, cancel: CancelToken) -> None:
        """
        Run until the token is cancelled.

        The sender is closed exactly once on the way out.
        """
        if self.state is not AgentState.IDLE:
            raise RuntimeError(f"Agent loop cannot start from state {self.state.value}")

        self.state = AgentState.RUNNING
        logger.info(
            f"Agent loop started (interval: {self.interval}s)",
            extra={"agent_id": self.agent_id},
        )

        try:
            await self._run_scheduled(cancel)
        finally:
            self.state = AgentState.STOPPING
            logger.info("Agent loop stopping")
            try:
                await self.sender.close()
            except Exception as e:
                logger.error(f"Failed to close sender: {e}")
            self.state = AgentState.STOPPED
            logger.info(f"Agent loop stopped after {self.cycles} cycles")

    async def _run_scheduled(self, cancel: CancelToken) -> None:
        loop = asyncio.get_running_loop()

        # Immediate first cycle, then the timer starts
        if not await self.run_cycle(cancel):
            return

        next_tick = loop.time() + self.interval
        while not cancel.cancelled:
            try:
                await cancel.sleep(max(0.0, next_tick - loop.time()))
            except OperationCancelled:
                return

            next_tick = self._next_tick(next_tick, loop.time())
            if not await self.run_cycle(cancel):
                return

    def _next_tick(self, tick: float, now: float) -> float:
        """First grid point after now, skipping ticks missed while a cycle ran."""
        tick += self.interval
        if tick <= now:
            tick += ((now - tick) // self.interval + 1) * self.interval
        return tick

    async def run_cycle(self, cancel: CancelToken) -> bool:
        """
        Run one collect-then-deliver cycle.

        Returns:
            False if the cycle observed cancellation, True otherwise
        """
        self.cycles += 1
        cycle = self.cycles

        try:
            snapshot, probe_errors = await self.orchestrator.collect(cancel, self.agent_id)

            if cancel.cancelled:
                logger.debug(f"Cycle {cycle} cancelled after collection")
                return False

            if probe_errors is not None:
                logger.warning(
                    f"Partial snapshot: {probe_errors}",
                    extra={"cycle": cycle, "failed": len(probe_errors.exceptions)},
                )

            await self.sender.send(cancel, snapshot)
            self.delivered += 1
            logger.debug(
                f"Cycle {cycle} delivered",
                extra={"cycle": cycle, "collect_duration_ms": snapshot.collect_duration_ms},
            )

        except OperationCancelled:
            logger.debug(f"Cycle {cycle} cancelled")
            return False

        except DeliveryError as e:
            # Senders log their own failures
            logger.debug(
                f"Delivery failed, next attempt at the next interval: {e}",
                extra={"cycle": cycle},
            )

        except Exception as e:
            logger.error(f"Error in cycle {cycle}: {e}", exc_info=True)

        return not cancel.cancelled
