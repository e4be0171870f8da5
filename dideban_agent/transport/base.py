"""
Delivery transport interface and errors.

A Sender gets one sealed Snapshot to its destination per call. Sends are
never concurrent: the agent loop awaits each send before the next cycle.
"""

from abc import ABC, abstractmethod

from ..models.snapshot import Snapshot
from ..utils.cancel import CancelToken


class DeliveryError(Exception):
    """Base class for delivery failures."""

    pass


class SerializationError(DeliveryError):
    """The snapshot could not be encoded. Never retried."""

    pass


class ServerStatusError(DeliveryError):
    """The endpoint answered with a non-2xx status."""

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"server returned status {status}: {body}")


class RetriesExhaustedError(DeliveryError):
    """Every delivery attempt failed."""

    def __init__(self, attempts: int, last_error: BaseException | None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"failed to send metrics after {attempts} attempts: {last_error}")


class Sender(ABC):
    """
    Abstract base class for delivery transports.

    Implementations:
    - HTTPSender: POST to the core endpoint with retries
    - MockSender: local simulation for development
    """

    @abstractmethod
    async def send(self, cancel: CancelToken, snapshot: Snapshot) -> None:
        """
        Deliver a snapshot.

        Raises:
            DeliveryError: If delivery failed
            OperationCancelled: If the token was cancelled
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release held resources. Safe to call more than once."""
        pass

    async def __aenter__(self) -> "Sender":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
