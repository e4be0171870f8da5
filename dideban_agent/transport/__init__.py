"""
Delivery transports for metric snapshots.
"""

from ..config.schema import Config
from .base import (
    DeliveryError,
    RetriesExhaustedError,
    Sender,
    SerializationError,
    ServerStatusError,
)
from .http import HTTPSender, backoff_delays
from .mock import MockSender


def create_sender(config: Config) -> Sender:
    """
    Select the sender for this process.

    Production always uses HTTP. Development uses HTTP when an endpoint is
    configured and the mock sender otherwise.
    """
    if config.is_production or config.core.endpoint:
        return HTTPSender(config.core.endpoint, config.core.token, config.sender)
    return MockSender(config.mock)


__all__ = [
    "Sender",
    "HTTPSender",
    "MockSender",
    "DeliveryError",
    "SerializationError",
    "ServerStatusError",
    "RetriesExhaustedError",
    "backoff_delays",
    "create_sender",
]
