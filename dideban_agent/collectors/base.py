"""
Base probe interface for metric collection.

Each probe reads one category of system resource and owns exactly one
block of the Snapshot (the attribute named after the probe). Probes never
touch another probe's block, so they can run concurrently without locks.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any

from ..models.snapshot import Snapshot
from ..utils.cancel import CancelToken, OperationCancelled


class ProbeError(Exception):
    """
    A named probe failure.

    The underlying cause is chained as ``__cause__``.
    """

    def __init__(self, probe: str, message: str, cause: BaseException | None = None):
        self.probe = probe
        super().__init__(f"{probe}: {message}")
        if cause is not None:
            self.__cause__ = cause

    @property
    def cancelled(self) -> bool:
        """Check if the probe failed because its token was cancelled."""
        return isinstance(self.__cause__, OperationCancelled)


class Probe(ABC):
    """
    Abstract base class for metric probes.

    Subclasses implement read(), a blocking OS call that returns a freshly
    populated stats block. collect() runs it in a worker thread raced
    against the cancel token, and only assigns the block into the snapshot
    once the read has completed on the event loop. An abandoned read can
    therefore never write into a snapshot that was handed to a sender.
    """

    # Snapshot attribute owned by this probe (override in subclasses)
    name: str = "unknown"

    # Error context used when read() fails
    failure_message: str = "collection failed"

    @abstractmethod
    def read(self) -> Any:
        """
        Read the resource from the operating system.

        Runs in a worker thread and may block.

        Returns:
            Populated stats block for this probe
        """
        pass

    async def collect(self, cancel: CancelToken, snapshot: Snapshot) -> None:
        """
        Populate this probe's block of the snapshot.

        Raises:
            ProbeError: If the token is cancelled or the OS read fails
        """
        try:
            cancel.raise_if_cancelled()
            block = await cancel.run(asyncio.to_thread(self.read))
        except OperationCancelled as e:
            raise ProbeError(self.name, str(e)) from e
        except ProbeError:
            raise
        except Exception as e:
            raise ProbeError(self.name, f"{self.failure_message}: {e}") from e

        setattr(snapshot, self.name, block)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"
