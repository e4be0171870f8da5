"""
Tests for log formatting and logging setup.
"""

import json
import logging

from dideban_agent.app import log_config_from
from dideban_agent.config.schema import Config, LoggingConfig
from dideban_agent.logging import (
    ColoredFormatter,
    JsonFormatter,
    LogConfig,
    get_log_level,
    get_logger,
)


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "dideban_agent.transport.http", logging.WARNING, __file__, 1, "Request failed", (), None
    )
    record.__dict__.update(extra)
    return record


def test_json_formatter_includes_extra_fields() -> None:
    line = JsonFormatter().format(make_record(attempt=2, retry_delay=1.0))
    entry = json.loads(line)

    assert entry["level"] == "warning"
    assert entry["logger"] == "dideban_agent.transport.http"
    assert entry["message"] == "Request failed"
    assert entry["attempt"] == 2
    assert entry["retry_delay"] == 1.0


def test_pretty_formatter_appends_key_value_pairs() -> None:
    formatter = ColoredFormatter(fmt="%(levelname)s %(message)s", use_colors=False)

    line = formatter.format(make_record(attempt=2))

    assert line.startswith("WARNING Request failed")
    assert line.endswith("attempt=2")


def test_level_aliases() -> None:
    assert get_log_level("warn") == logging.WARNING
    assert get_log_level("FATAL") == logging.CRITICAL
    assert get_log_level("panic") == logging.CRITICAL
    assert get_log_level("bogus") == logging.INFO


def test_component_loggers_share_package_root() -> None:
    assert get_logger("agent").name == "dideban_agent.agent"
    assert get_logger("dideban_agent.app").name == "dideban_agent.app"


def test_log_config_from_file_settings() -> None:
    config = Config(
        logging=LoggingConfig(level="warn", pretty=False, file="/tmp/agent.log", file_max_size=2)
    )

    log_config = log_config_from(config)

    assert log_config.console_level == "warn"
    assert not log_config.pretty
    assert log_config.file_enabled
    assert log_config.file_path == "/tmp/agent.log"
    assert log_config.file_max_bytes == 2 * 1024 * 1024


def test_cli_flags_override_file_level() -> None:
    config = Config(logging=LoggingConfig(level="error", pretty=False))

    log_config = log_config_from(config, LogConfig(console_level="debug"))

    assert log_config.console_level == "debug"
    # Output format always follows the config file
    assert not log_config.pretty
    assert not log_config.file_enabled
