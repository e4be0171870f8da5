"""
HTTP sender.

Delivers snapshots to the core backend as JSON over HTTP POST.

Features:
- Pooled aiohttp session reused across sends
- Exponential backoff retry capped at a maximum delay
- Per-request timeout on top of the client-wide timeout
- Cancellation honored before each attempt, during requests and during
  backoff sleeps
"""

import asyncio
from collections.abc import Iterator

import aiohttp

from ..config.schema import SenderConfig
from ..const import USER_AGENT
from ..logging import get_logger
from ..models.snapshot import Snapshot
from ..utils.cancel import CancelToken
from .base import (
    DeliveryError,
    RetriesExhaustedError,
    Sender,
    SerializationError,
    ServerStatusError,
)


logger = get_logger("transport.http")

# Longest response body kept on a failed attempt
MAX_ERROR_BODY = 512

RETRYABLE_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, ServerStatusError)


def backoff_delays(initial: float, maximum: float) -> Iterator[float]:
    """
    Yield retry delays: initial, doubling each time, capped at maximum.

    Example: 1s -> 2s -> 4s -> ... -> maximum
    """
    delay = initial
    while True:
        yield min(delay, maximum)
        delay = min(delay * 2, maximum)


class HTTPSender(Sender):
    """
    Sends snapshots to a remote collection endpoint.

    Attempts are numbered 0..max_retries inclusive, so max_retries=3 means
    up to four requests. Delivery either fully succeeds or fully fails for
    a given snapshot.
    """

    def __init__(
        self,
        endpoint: str,
        token: str,
        config: SenderConfig | None = None,
        user_agent: str = USER_AGENT,
    ):
        """
        Initialize the sender.

        Args:
            endpoint: Full URL to POST snapshots to
            token: Static bearer credential
            config: Retry and timeout tunables
            user_agent: User-Agent header value
        """
        self.endpoint = endpoint
        self.token = token
        self.config = config or SenderConfig()
        self.user_agent = user_agent

        self._session: aiohttp.ClientSession | None = None
        # A per-request timeout replaces the session one, so the tighter bound wins here
        self._request_timeout = aiohttp.ClientTimeout(
            total=min(self.config.request_timeout, self.config.client_timeout)
        )
        self._closed = False

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=10,
                limit_per_host=2,
                keepalive_timeout=60,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.config.client_timeout),
            )
        return self._session

    def _get_headers(self) -> dict[str, str]:
        """Get request headers."""
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.token}",
            "User-Agent": self.user_agent,
        }

    async def send(self, cancel: CancelToken, snapshot: Snapshot) -> None:
        """
        Serialize and deliver a snapshot with retries.

        Raises:
            SerializationError: If the snapshot cannot be encoded
            RetriesExhaustedError: If every attempt failed
            OperationCancelled: If the token was cancelled
        """
        if self._closed:
            raise DeliveryError("sender is closed")

        try:
            payload = snapshot.to_json()
        except (TypeError, ValueError) as e:
            raise SerializationError(f"failed to marshal metrics: {e}") from e

        await self._send_with_retry(cancel, payload)

    async def _send_with_retry(self, cancel: CancelToken, payload: str) -> None:
        """Send with exponential backoff retry."""
        max_retries = self.config.max_retries
        delays = backoff_delays(self.config.initial_retry_delay, self.config.max_retry_delay)
        last_error: BaseException | None = None

        for attempt in range(max_retries + 1):
            cancel.raise_if_cancelled()

            try:
                await cancel.run(self._send_once(payload))
            except RETRYABLE_ERRORS as e:
                last_error = e
            else:
                if attempt > 0:
                    logger.info(
                        "Metrics sent successfully after retries",
                        extra={"attempts": attempt + 1},
                    )
                return

            if attempt < max_retries:
                delay = next(delays)
                logger.warning(
                    f"Request failed, retrying: {_describe(last_error)}",
                    extra={
                        "attempt": attempt + 1,
                        "max_retries": max_retries,
                        "retry_delay": delay,
                    },
                )
                await cancel.sleep(delay)

        logger.error(
            f"Failed to send metrics after all retries: {_describe(last_error)}",
            extra={"attempts": max_retries + 1, "max_retries": max_retries},
        )
        raise RetriesExhaustedError(max_retries + 1, last_error) from last_error

    async def _send_once(self, payload: str) -> None:
        """
        Perform a single POST.

        Raises:
            ServerStatusError: On a non-2xx response
            aiohttp.ClientError: On transport failure
            asyncio.TimeoutError: If the request timeout elapsed
        """
        session = await self._get_session()
        logger.debug(f"POST {self.endpoint}")

        async with session.post(
            self.endpoint,
            data=payload,
            headers=self._get_headers(),
            timeout=self._request_timeout,
        ) as response:
            # Drain the body so the connection can be reused
            body = await response.read()
            logger.debug(f"Received HTTP response {response.status}")

            if 200 <= response.status < 300:
                return

            text = body[:MAX_ERROR_BODY].decode("utf-8", errors="replace")
            raise ServerStatusError(response.status, text)

    async def close(self) -> None:
        """Close the HTTP session."""
        self._closed = True
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


def _describe(error: BaseException | None) -> str:
    """Readable error text; timeouts often stringify to ''."""
    if error is None:
        return "unknown error"
    return str(error) or type(error).__name__
