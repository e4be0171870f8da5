"""
Tests for the development mock sender and sender selection.
"""

import logging
import random

import pytest

from dideban_agent.config.schema import Config, CoreConfig, MockConfig
from dideban_agent.models.snapshot import Snapshot
from dideban_agent.transport import DeliveryError, HTTPSender, MockSender, create_sender
from dideban_agent.utils.cancel import CancelToken, OperationCancelled


@pytest.mark.asyncio
async def test_mock_sender_logs_snapshot(snapshot: Snapshot, caplog) -> None:
    caplog.set_level(logging.INFO, logger="dideban_agent")
    sender = MockSender(MockConfig(delay=0, verbose=True))

    await sender.send(CancelToken(), snapshot)

    assert sender.sent == 1
    record = next(r for r in caplog.records if r.getMessage() == "Mock sender:")
    assert record.agent_id == "test-agent"
    assert record.cpu_usage_percent == 37.0
    assert record.disk_usage_percent == 18.0


@pytest.mark.asyncio
async def test_mock_sender_quiet(snapshot: Snapshot, caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="dideban_agent")
    sender = MockSender(MockConfig(delay=0, verbose=False))

    await sender.send(CancelToken(), snapshot)

    assert sender.sent == 1
    assert not any(r.getMessage() == "Mock sender:" for r in caplog.records)


@pytest.mark.asyncio
async def test_mock_sender_always_failing(snapshot: Snapshot, caplog) -> None:
    sender = MockSender(MockConfig(delay=0, failure_rate=1.0), rng=random.Random(1))

    with pytest.raises(DeliveryError, match="simulated"):
        await sender.send(CancelToken(), snapshot)

    assert sender.sent == 0
    assert any("simulated delivery failure" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_mock_sender_delay_is_cancellable(snapshot: Snapshot) -> None:
    cancel = CancelToken()
    cancel.cancel()
    sender = MockSender(MockConfig(delay=5.0))

    with pytest.raises(OperationCancelled):
        await sender.send(cancel, snapshot)

    await sender.close()
    assert sender.sent == 0


def test_development_without_endpoint_uses_mock() -> None:
    assert isinstance(create_sender(Config()), MockSender)


def test_development_with_endpoint_uses_http() -> None:
    config = Config(core=CoreConfig(endpoint="http://127.0.0.1:8080/metrics"))

    assert isinstance(create_sender(config), HTTPSender)


def test_production_uses_http() -> None:
    config = Config(
        mode="production",
        core=CoreConfig(endpoint="https://core.example.com/metrics", token="t"),
    )

    sender = create_sender(config)

    assert isinstance(sender, HTTPSender)
    assert sender.token == "t"
