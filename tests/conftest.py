"""
Pytest configuration and fixtures.
"""

from pathlib import Path

import pytest

from dideban_agent.models.snapshot import CPUStats, DiskStats, MemoryStats, Snapshot


@pytest.fixture
def example_config_path() -> Path:
    """Path to the example config file shipped with the project."""
    return Path(__file__).parent.parent / "config.example.conf"


@pytest.fixture
def snapshot() -> Snapshot:
    """A fully populated, sealed snapshot."""
    snap = Snapshot(
        agent_id="test-agent",
        timestamp_ms=1_700_000_000_123,
        collect_duration_ms=1004,
        cpu=CPUStats(usage_percent=37.0, load_1=0.52, load_5=0.61, load_15=0.7),
        memory=MemoryStats(used_mb=3120, total_mb=7936, usage_percent=39.0, available_mb=4816),
        disk=DiskStats(used_gb=41, total_gb=233, usage_percent=18.0),
    )
    snap.seal()
    return snap
