"""
Tests for the psutil-backed probes.
"""

from types import SimpleNamespace

import pytest

from dideban_agent.collectors import CPUProbe, DiskProbe, MemoryProbe, ProbeError
from dideban_agent.collectors import cpu as cpu_module
from dideban_agent.collectors import disk as disk_module
from dideban_agent.collectors import memory as memory_module
from dideban_agent.models.snapshot import Snapshot
from dideban_agent.utils.cancel import CancelToken


MB = 1024 * 1024
GB = 1024 * MB


@pytest.fixture
def fake_psutil(monkeypatch: pytest.MonkeyPatch) -> dict:
    """Replace the psutil calls used by the probes with fixed readings."""
    calls: dict = {}

    def cpu_percent(interval: float) -> float:
        calls["cpu_interval"] = interval
        return 42.5

    def disk_usage(path: str) -> SimpleNamespace:
        calls["disk_path"] = path
        return SimpleNamespace(used=41 * GB + 123, total=233 * GB, percent=17.6)

    monkeypatch.setattr(cpu_module.psutil, "cpu_percent", cpu_percent)
    monkeypatch.setattr(cpu_module.psutil, "getloadavg", lambda: (0.52, 0.61, 0.7))
    monkeypatch.setattr(
        memory_module.psutil,
        "virtual_memory",
        lambda: SimpleNamespace(
            used=3120 * MB + 5, total=7936 * MB, available=4816 * MB + 7, percent=39.3
        ),
    )
    monkeypatch.setattr(disk_module.psutil, "disk_usage", disk_usage)
    return calls


def test_cpu_probe_reading(fake_psutil: dict) -> None:
    stats = CPUProbe(sample_interval=0.25).read()

    assert fake_psutil["cpu_interval"] == 0.25
    assert stats.usage_percent == 43.0
    # Load averages are reported unrounded
    assert (stats.load_1, stats.load_5, stats.load_15) == (0.52, 0.61, 0.7)


def test_memory_probe_truncates_to_megabytes(fake_psutil: dict) -> None:
    stats = MemoryProbe().read()

    assert stats.used_mb == 3120
    assert stats.total_mb == 7936
    assert stats.available_mb == 4816
    assert stats.usage_percent == 39.0


def test_disk_probe_reads_configured_path(fake_psutil: dict) -> None:
    stats = DiskProbe(path="/data").read()

    assert fake_psutil["disk_path"] == "/data"
    assert stats.used_gb == 41
    assert stats.total_gb == 233
    assert stats.usage_percent == 18.0


@pytest.mark.asyncio
async def test_collect_writes_only_own_block(fake_psutil: dict) -> None:
    snap = Snapshot(agent_id="a")

    await MemoryProbe().collect(CancelToken(), snap)

    assert snap.memory.total_mb == 7936
    assert snap.cpu.usage_percent == 0.0
    assert snap.disk.total_gb == 0


@pytest.mark.asyncio
async def test_collect_wraps_os_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken(path: str) -> None:
        raise PermissionError("access denied")

    monkeypatch.setattr(disk_module.psutil, "disk_usage", broken)
    snap = Snapshot(agent_id="a")

    with pytest.raises(ProbeError) as exc_info:
        await DiskProbe().collect(CancelToken(), snap)

    error = exc_info.value
    assert error.probe == "disk"
    assert "failed to get disk usage" in str(error)
    assert isinstance(error.__cause__, PermissionError)
    assert not error.cancelled
    assert snap.disk.total_gb == 0


@pytest.mark.asyncio
async def test_collect_on_cancelled_token(fake_psutil: dict) -> None:
    cancel = CancelToken()
    cancel.cancel("shutdown")
    snap = Snapshot(agent_id="a")

    with pytest.raises(ProbeError) as exc_info:
        await CPUProbe(sample_interval=0).collect(cancel, snap)

    assert exc_info.value.cancelled
    assert "cpu_interval" not in fake_psutil
    assert snap.cpu.usage_percent == 0.0
