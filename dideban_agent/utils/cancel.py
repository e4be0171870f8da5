"""
Cooperative cancellation for agent operations.

A single CancelToken is created at startup and threaded through the agent
loop, the collectors and the senders. Every suspend point (OS calls run in
worker threads, HTTP requests, retry sleeps, the interval timer) races its
work against the token, so a shutdown signal aborts in-flight work
promptly instead of waiting for it to finish.
"""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

T = TypeVar("T")


class OperationCancelled(Exception):
    """Raised when an operation observes that its token was cancelled."""

    def __init__(self, reason: str = "operation cancelled"):
        self.reason = reason
        super().__init__(reason)


class CancelToken:
    """
    Cancellation handle shared by all work started for one agent run.

    Usage:
        cancel = CancelToken()
        result = await cancel.run(fetch())   # raises OperationCancelled on cancel
        await cancel.sleep(2.0)
        cancel.cancel("shutdown signal")
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        """Check if the token has been cancelled."""
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        """Reason passed to cancel(), or None while active."""
        return self._reason

    def cancel(self, reason: str = "operation cancelled") -> None:
        """Cancel the token. Only the first reason is kept."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

    def raise_if_cancelled(self) -> None:
        """Raise OperationCancelled if the token is cancelled."""
        if self._event.is_set():
            raise OperationCancelled(self._reason or "operation cancelled")

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        await self._event.wait()

    async def run(self, aw: Awaitable[T]) -> T:
        """
        Await a unit of work unless the token is cancelled first.

        If cancellation wins, the work is cancelled and awaited so it can
        unwind, then OperationCancelled is raised.

        Args:
            aw: Coroutine or future to await

        Returns:
            Result of the awaitable
        """
        if self._event.is_set():
            # Close a coroutine that will never be scheduled
            if asyncio.iscoroutine(aw):
                aw.close()
            self.raise_if_cancelled()

        task = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(self._event.wait())

        try:
            await asyncio.wait((task, waiter), return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task.done():
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise OperationCancelled(self._reason or "operation cancelled")

    async def sleep(self, delay: float) -> None:
        """Sleep for delay seconds, raising OperationCancelled on cancel."""
        await self.run(asyncio.sleep(delay))

    def __repr__(self) -> str:
        state = f"cancelled: {self._reason}" if self.cancelled else "active"
        return f"CancelToken({state})"
