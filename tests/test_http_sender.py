"""
Tests for the HTTP sender against a local aiohttp server.
"""

import asyncio
import itertools
import logging
import time

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import test_utils, web

from dideban_agent.config.schema import SenderConfig
from dideban_agent.const import USER_AGENT
from dideban_agent.models.snapshot import CPUStats, Snapshot
from dideban_agent.transport import (
    DeliveryError,
    HTTPSender,
    RetriesExhaustedError,
    SerializationError,
    ServerStatusError,
    backoff_delays,
)
from dideban_agent.utils.cancel import CancelToken, OperationCancelled


class FakeCore:
    """Collection endpoint answering with a scripted list of statuses."""

    def __init__(self) -> None:
        self.statuses: list[int] = []
        self.requests: list[dict] = []
        self.delay = 0.0
        self.server: test_utils.TestServer | None = None

    async def handle(self, request: web.Request) -> web.Response:
        self.requests.append(
            {
                "headers": dict(request.headers),
                "body": await request.json(),
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        status = self.statuses.pop(0) if self.statuses else 200
        return web.Response(status=status, text="ok" if status < 300 else "x" * 2000)

    @property
    def url(self) -> str:
        return str(self.server.make_url("/api/v1/metrics"))


@pytest_asyncio.fixture
async def core():
    fake = FakeCore()
    app = web.Application()
    app.router.add_post("/api/v1/metrics", fake.handle)

    fake.server = test_utils.TestServer(app)
    await fake.server.start_server()
    try:
        yield fake
    finally:
        await fake.server.close()


def fast_config(**overrides) -> SenderConfig:
    values = {
        "max_retries": 3,
        "initial_retry_delay": 0.01,
        "max_retry_delay": 0.05,
        "request_timeout": 2.0,
        "client_timeout": 5.0,
    }
    values.update(overrides)
    return SenderConfig(**values)


def retry_records(caplog: pytest.LogCaptureFixture) -> list[logging.LogRecord]:
    return [r for r in caplog.records if r.getMessage().startswith("Request failed, retrying")]


def test_backoff_doubles_up_to_maximum() -> None:
    delays = list(itertools.islice(backoff_delays(1.0, 30.0), 7))

    assert delays == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0, 30.0]


@pytest.mark.asyncio
async def test_first_attempt_success(core: FakeCore, snapshot: Snapshot, caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="dideban_agent")

    async with HTTPSender(core.url, "s3cret", fast_config()) as sender:
        await sender.send(CancelToken(), snapshot)

    assert len(core.requests) == 1
    assert retry_records(caplog) == []
    assert not any("after retries" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_request_headers_and_body(core: FakeCore, snapshot: Snapshot) -> None:
    async with HTTPSender(core.url, "s3cret", fast_config()) as sender:
        await sender.send(CancelToken(), snapshot)

    request = core.requests[0]
    assert request["headers"]["Content-Type"] == "application/json"
    assert request["headers"]["User-Agent"] == USER_AGENT
    assert request["headers"]["Authorization"] == "Bearer s3cret"
    assert Snapshot.from_dict(request["body"]) == snapshot


@pytest.mark.asyncio
async def test_empty_token_keeps_authorization_header(core: FakeCore, snapshot: Snapshot) -> None:
    async with HTTPSender(core.url, "", fast_config()) as sender:
        await sender.send(CancelToken(), snapshot)

    # Every request is framed the same way, even without a credential
    assert core.requests[0]["headers"]["Authorization"].strip() == "Bearer"


@pytest.mark.asyncio
async def test_retries_until_success(core: FakeCore, snapshot: Snapshot, caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="dideban_agent")
    core.statuses = [500, 500, 200]

    async with HTTPSender(core.url, "t", fast_config()) as sender:
        await sender.send(CancelToken(), snapshot)

    assert len(core.requests) == 3

    retries = retry_records(caplog)
    assert [r.retry_delay for r in retries] == [0.01, 0.02]
    assert [r.attempt for r in retries] == [1, 2]
    assert "status 500" in retries[0].getMessage()

    success = [r for r in caplog.records if "sent successfully after retries" in r.getMessage()]
    assert len(success) == 1
    assert success[0].attempts == 3
    assert success[0].levelno == logging.INFO


@pytest.mark.asyncio
async def test_permanent_failure_exhausts_retries(
    core: FakeCore, snapshot: Snapshot, caplog
) -> None:
    caplog.set_level(logging.DEBUG, logger="dideban_agent")
    core.statuses = [503] * 10

    async with HTTPSender(core.url, "t", fast_config(max_retries=2)) as sender:
        with pytest.raises(RetriesExhaustedError) as exc_info:
            await sender.send(CancelToken(), snapshot)

    assert len(core.requests) == 3
    error = exc_info.value
    assert error.attempts == 3
    assert isinstance(error.last_error, ServerStatusError)
    assert error.last_error.status == 503
    # Error bodies are truncated
    assert len(error.last_error.body) == 512
    assert "after 3 attempts" in str(error)

    failures = [r for r in caplog.records if "after all retries" in r.getMessage()]
    assert len(failures) == 1
    assert failures[0].levelno == logging.ERROR


@pytest.mark.asyncio
async def test_zero_retries_means_single_attempt(core: FakeCore, snapshot: Snapshot) -> None:
    core.statuses = [500]

    async with HTTPSender(core.url, "t", fast_config(max_retries=0)) as sender:
        with pytest.raises(RetriesExhaustedError):
            await sender.send(CancelToken(), snapshot)

    assert len(core.requests) == 1


@pytest.mark.asyncio
async def test_cancel_during_backoff_stops_retrying(core: FakeCore, snapshot: Snapshot) -> None:
    core.statuses = [500] * 10
    cancel = CancelToken()
    config = fast_config(initial_retry_delay=10.0, max_retry_delay=10.0)

    async with HTTPSender(core.url, "t", config) as sender:
        asyncio.get_running_loop().call_later(0.2, cancel.cancel, "shutdown")

        start = time.monotonic()
        with pytest.raises(OperationCancelled):
            await sender.send(cancel, snapshot)

    assert time.monotonic() - start < 2.0
    assert len(core.requests) == 1


@pytest.mark.asyncio
async def test_cancelled_token_sends_nothing(core: FakeCore, snapshot: Snapshot) -> None:
    cancel = CancelToken()
    cancel.cancel()

    async with HTTPSender(core.url, "t", fast_config()) as sender:
        with pytest.raises(OperationCancelled):
            await sender.send(cancel, snapshot)

    assert core.requests == []


@pytest.mark.asyncio
async def test_request_timeout_is_retried(core: FakeCore, snapshot: Snapshot) -> None:
    core.delay = 0.5

    async with HTTPSender(core.url, "t", fast_config(max_retries=1, request_timeout=0.1)) as sender:
        with pytest.raises(RetriesExhaustedError) as exc_info:
            await sender.send(CancelToken(), snapshot)

    assert exc_info.value.attempts == 2
    assert isinstance(exc_info.value.last_error, (asyncio.TimeoutError, aiohttp.ClientError))


@pytest.mark.asyncio
async def test_client_timeout_bounds_each_request(core: FakeCore, snapshot: Snapshot) -> None:
    core.delay = 0.5
    config = fast_config(max_retries=0, request_timeout=2.0, client_timeout=0.1)

    async with HTTPSender(core.url, "t", config) as sender:
        start = time.monotonic()
        with pytest.raises(RetriesExhaustedError) as exc_info:
            await sender.send(CancelToken(), snapshot)

    assert time.monotonic() - start < 0.45
    assert isinstance(exc_info.value.last_error, (asyncio.TimeoutError, aiohttp.ClientError))


@pytest.mark.asyncio
async def test_connection_refused_is_retried(snapshot: Snapshot) -> None:
    endpoint = f"http://127.0.0.1:{test_utils.unused_port()}/api/v1/metrics"

    async with HTTPSender(endpoint, "t", fast_config(max_retries=1)) as sender:
        with pytest.raises(RetriesExhaustedError) as exc_info:
            await sender.send(CancelToken(), snapshot)

    assert exc_info.value.attempts == 2
    assert isinstance(exc_info.value.last_error, aiohttp.ClientError)


@pytest.mark.asyncio
async def test_serialization_error_is_not_retried(core: FakeCore) -> None:
    bad = Snapshot(agent_id="a", cpu=CPUStats(usage_percent=float("nan")))

    async with HTTPSender(core.url, "t", fast_config()) as sender:
        with pytest.raises(SerializationError):
            await sender.send(CancelToken(), bad)

    assert core.requests == []


@pytest.mark.asyncio
async def test_close_is_idempotent(core: FakeCore, snapshot: Snapshot) -> None:
    sender = HTTPSender(core.url, "t", fast_config())
    await sender.send(CancelToken(), snapshot)

    await sender.close()
    await sender.close()

    with pytest.raises(DeliveryError, match="closed"):
        await sender.send(CancelToken(), snapshot)
    assert len(core.requests) == 1
