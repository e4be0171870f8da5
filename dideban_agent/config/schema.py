"""
Configuration schema with dataclasses for validation and type safety.

Defines all configuration sections, their fields and defaults. Values
arrive from the parsed document after environment overrides have been
applied; validation lives in the loader.
"""

import os
import socket
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..const import (
    DEFAULT_CLIENT_TIMEOUT,
    DEFAULT_CPU_SAMPLE_INTERVAL,
    DEFAULT_DISK_PATH,
    DEFAULT_INITIAL_RETRY_DELAY,
    DEFAULT_INTERVAL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_RETRY_DELAY,
    DEFAULT_MOCK_DELAY,
    DEFAULT_REQUEST_TIMEOUT,
    MODE_DEVELOPMENT,
    MODE_PRODUCTION,
)
from .parser import Block, ConfigDocument


class Mode(Enum):
    """Application runtime mode."""

    PRODUCTION = MODE_PRODUCTION
    DEVELOPMENT = MODE_DEVELOPMENT


def default_agent_id() -> str:
    """Default agent identifier based on the system hostname."""
    try:
        return socket.gethostname() or "unknown-host"
    except OSError:
        return "unknown-host"


def _seconds(value: Any, default: float) -> float:
    """Coerce a duration or plain number to seconds."""
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValueError(f"expected a duration, got {value!r}")
    return float(value)


def _flag(value: Any, default: bool) -> bool:
    """Require an on/off value."""
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValueError(f"expected on/off, got {value!r}")
    return value


def _text(value: Any, default: str) -> str:
    return default if value is None else str(value)


@dataclass
class AgentConfig:
    """Agent identity and schedule."""

    id: str = field(default_factory=default_agent_id)
    interval: float = DEFAULT_INTERVAL  # seconds

    @classmethod
    def from_block(cls, block: Block | None) -> "AgentConfig":
        """Create AgentConfig from a parsed 'agent' block."""
        if block is None:
            return cls()

        return cls(
            id=_text(block.get_value("id"), default_agent_id()),
            interval=_seconds(block.get_value("interval"), DEFAULT_INTERVAL),
        )


@dataclass
class CoreConfig:
    """Collection endpoint of the core backend."""

    endpoint: str = ""
    token: str = ""

    @classmethod
    def from_block(cls, block: Block | None) -> "CoreConfig":
        """Create CoreConfig from a parsed 'core' block."""
        if block is None:
            return cls()

        return cls(
            endpoint=_text(block.get_value("endpoint"), ""),
            token=_text(block.get_value("token"), ""),
        )


@dataclass
class SenderConfig:
    """HTTP delivery retry and timeout tunables."""

    max_retries: int = DEFAULT_MAX_RETRIES
    initial_retry_delay: float = DEFAULT_INITIAL_RETRY_DELAY
    max_retry_delay: float = DEFAULT_MAX_RETRY_DELAY
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    client_timeout: float = DEFAULT_CLIENT_TIMEOUT

    @classmethod
    def from_block(cls, block: Block | None) -> "SenderConfig":
        """Create SenderConfig from a parsed 'sender' block."""
        if block is None:
            return cls()

        return cls(
            max_retries=int(block.get_value("max_retries", DEFAULT_MAX_RETRIES)),
            initial_retry_delay=_seconds(
                block.get_value("initial_retry_delay"), DEFAULT_INITIAL_RETRY_DELAY
            ),
            max_retry_delay=_seconds(block.get_value("max_retry_delay"), DEFAULT_MAX_RETRY_DELAY),
            request_timeout=_seconds(block.get_value("request_timeout"), DEFAULT_REQUEST_TIMEOUT),
            client_timeout=_seconds(block.get_value("client_timeout"), DEFAULT_CLIENT_TIMEOUT),
        )


@dataclass
class MockConfig:
    """Behavior of the local development sender."""

    delay: float = DEFAULT_MOCK_DELAY
    failure_rate: float = 0.0  # 0.0 = never fail, 1.0 = always fail
    verbose: bool = True

    @classmethod
    def from_block(cls, block: Block | None) -> "MockConfig":
        """Create MockConfig from a parsed 'mock' block."""
        if block is None:
            return cls()

        return cls(
            delay=_seconds(block.get_value("delay"), DEFAULT_MOCK_DELAY),
            failure_rate=float(block.get_value("failure_rate", 0.0)),
            verbose=_flag(block.get_value("verbose"), True),
        )


@dataclass
class CollectorsConfig:
    """Probe tunables."""

    cpu_sample_interval: float = DEFAULT_CPU_SAMPLE_INTERVAL
    disk_path: str = DEFAULT_DISK_PATH

    @classmethod
    def from_block(cls, block: Block | None) -> "CollectorsConfig":
        """Create CollectorsConfig from a parsed 'collectors' block."""
        if block is None:
            return cls()

        return cls(
            cpu_sample_interval=_seconds(
                block.get_value("cpu_sample_interval"), DEFAULT_CPU_SAMPLE_INTERVAL
            ),
            disk_path=_text(block.get_value("disk_path"), DEFAULT_DISK_PATH),
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"  # debug, info, warn, error, fatal, panic
    pretty: bool = True  # Human-readable console output, JSON lines otherwise
    colors: bool = True
    file: str | None = None
    file_level: str = "debug"
    file_max_size: int = 10  # Max file size in MB
    file_keep: int = 5
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    @classmethod
    def from_block(cls, block: Block | None) -> "LoggingConfig":
        """Create LoggingConfig from a parsed 'logging' block."""
        if block is None:
            return cls()

        file_value = block.get_value("file")
        return cls(
            level=_text(block.get_value("level"), "info"),
            pretty=_flag(block.get_value("pretty"), True),
            colors=_flag(block.get_value("colors"), True),
            file=None if file_value is None else str(file_value),
            file_level=_text(block.get_value("file_level"), "debug"),
            file_max_size=int(block.get_value("file_max_size", 10)),
            file_keep=int(block.get_value("file_keep", 5)),
            format=_text(
                block.get_value("format"),
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            ),
        )


@dataclass
class Config:
    """Complete agent configuration."""

    mode: str = MODE_DEVELOPMENT
    agent: AgentConfig = field(default_factory=AgentConfig)
    core: CoreConfig = field(default_factory=CoreConfig)
    sender: SenderConfig = field(default_factory=SenderConfig)
    mock: MockConfig = field(default_factory=MockConfig)
    collectors: CollectorsConfig = field(default_factory=CollectorsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Path of the file this config was loaded from, if any
    source: str | None = None

    @property
    def is_production(self) -> bool:
        return self.mode == Mode.PRODUCTION.value

    @classmethod
    def from_document(cls, doc: ConfigDocument) -> "Config":
        """Create Config from a parsed document."""
        return cls(
            mode=_text(doc.get_value("mode"), MODE_DEVELOPMENT),
            agent=AgentConfig.from_block(doc.get_block("agent")),
            core=CoreConfig.from_block(doc.get_block("core")),
            sender=SenderConfig.from_block(doc.get_block("sender")),
            mock=MockConfig.from_block(doc.get_block("mock")),
            collectors=CollectorsConfig.from_block(doc.get_block("collectors")),
            logging=LoggingConfig.from_block(doc.get_block("logging")),
            source=None if doc.filename == "<string>" else doc.filename,
        )


def config_search_paths() -> list[str]:
    """
    Locations searched for agent.conf when no path is given.

    Order: working directory, per-user directory, system directory.
    """
    paths = ["agent.conf"]

    if os.name == "nt":
        app_data = os.environ.get("APPDATA")
        if app_data:
            paths.append(os.path.join(app_data, "dideban", "agent", "agent.conf"))
    else:
        home = os.environ.get("HOME")
        if home:
            paths.append(os.path.join(home, ".dideban", "agent", "agent.conf"))
        paths.append("/etc/dideban-agent/agent.conf")

    return paths
