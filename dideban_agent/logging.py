"""
Logging configuration for Dideban Agent.

Features:
- Log levels (debug, info, warn, error, fatal)
- Pretty console output with optional colors
- JSON lines output for log shippers (non-pretty mode)
- File output with rotation
- Structured fields passed through ``extra=``
"""

import json
import logging
import logging.handlers
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path


# ANSI color codes for console output
class Colors:
    """ANSI color codes."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"

    BRIGHT_RED = "\033[91m"


# Log level colors
LEVEL_COLORS = {
    logging.DEBUG: Colors.DIM + Colors.CYAN,
    logging.INFO: Colors.GREEN,
    logging.WARNING: Colors.YELLOW,
    logging.ERROR: Colors.RED,
    logging.CRITICAL: Colors.BOLD + Colors.BRIGHT_RED,
}

# Component colors for logger names
COMPONENT_COLORS = {
    "config": Colors.MAGENTA,
    "transport": Colors.BLUE,
    "collector": Colors.CYAN,
    "agent": Colors.GREEN,
    "app": Colors.GREEN,
}

# Attributes present on every LogRecord; anything else came from ``extra=``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}


def record_fields(record: logging.LogRecord) -> dict:
    """Get structured fields attached to a record via ``extra=``."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


class ColoredFormatter(logging.Formatter):
    """
    Formatter that adds ANSI colors to log output.

    Colors are applied based on log level and component name. Structured
    fields are appended as ``key=value`` pairs.
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        use_colors: bool = True,
    ):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        # Save original values
        original_levelname = record.levelname
        original_name = record.name

        if self.use_colors:
            level_color = LEVEL_COLORS.get(record.levelno, "")
            record.levelname = f"{level_color}{record.levelname:8}{Colors.RESET}"

            for key, color in COMPONENT_COLORS.items():
                if key in record.name.lower():
                    record.name = f"{color}{record.name}{Colors.RESET}"
                    break

        result = super().format(record)

        # Restore original values
        record.levelname = original_levelname
        record.name = original_name

        extras = record_fields(record)
        if extras:
            pairs = " ".join(f"{key}={value}" for key, value in extras.items())
            if self.use_colors:
                pairs = f"{Colors.DIM}{pairs}{Colors.RESET}"
            result = f"{result} {pairs}"

        return result


class PlainFormatter(logging.Formatter):
    """Plain formatter without colors for file output."""

    def format(self, record: logging.LogRecord) -> str:
        original_levelname = record.levelname
        record.levelname = f"{record.levelname:8}"
        result = super().format(record)
        record.levelname = original_levelname

        extras = record_fields(record)
        if extras:
            result += " " + " ".join(f"{key}={value}" for key, value in extras.items())
        return result


class JsonFormatter(logging.Formatter):
    """One JSON object per line: time, level, logger, message and extra fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(record_fields(record))
        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


@dataclass
class LogConfig:
    """Logging configuration."""

    # Console settings
    console_level: str = "INFO"
    console_colors: bool = True
    pretty: bool = True

    # File settings
    file_enabled: bool = False
    file_path: str = "/var/log/dideban-agent/agent.log"
    file_level: str = "DEBUG"
    file_max_bytes: int = 10 * 1024 * 1024  # 10 MB
    file_backup_count: int = 5

    # Format
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"


def get_log_level(level_str: str) -> int:
    """Convert string log level to logging constant."""
    levels = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "warn": logging.WARNING,
        "error": logging.ERROR,
        "critical": logging.CRITICAL,
        "fatal": logging.CRITICAL,
        "panic": logging.CRITICAL,
    }
    return levels.get(level_str.lower(), logging.INFO)


def setup_logging(config: LogConfig | None = None) -> None:
    """
    Configure logging for the application.

    Must be called before the event loop starts; loggers are treated as
    read-only afterwards.

    Args:
        config: Logging configuration (uses defaults if None)
    """
    if config is None:
        config = LogConfig()

    root_logger = logging.getLogger("dideban_agent")
    root_logger.setLevel(logging.DEBUG)  # Capture all, filter at handlers

    # Remove existing handlers
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(get_log_level(config.console_level))

    if config.pretty:
        use_colors = (
            config.console_colors and hasattr(sys.stderr, "isatty") and sys.stderr.isatty()
        )
        console_handler.setFormatter(
            ColoredFormatter(
                fmt=config.format,
                datefmt=config.date_format,
                use_colors=use_colors,
            )
        )
    else:
        console_handler.setFormatter(JsonFormatter())
    root_logger.addHandler(console_handler)

    if config.file_enabled:
        log_path = Path(config.file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            config.file_path,
            maxBytes=config.file_max_bytes,
            backupCount=config.file_backup_count,
        )
        file_handler.setLevel(get_log_level(config.file_level))
        if config.pretty:
            file_handler.setFormatter(
                PlainFormatter(fmt=config.format, datefmt=config.date_format)
            )
        else:
            file_handler.setFormatter(JsonFormatter())
        root_logger.addHandler(file_handler)

    # Reduce noise from external libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a component.

    Args:
        name: Component name (will be prefixed with dideban_agent)

    Returns:
        Logger instance
    """
    if name.startswith("dideban_agent"):
        return logging.getLogger(name)
    return logging.getLogger(f"dideban_agent.{name}")
