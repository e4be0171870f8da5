"""
Configuration loader with file reading, environment overrides and validation.

Sources, in increasing precedence:
1. Built-in defaults
2. Configuration file (optional)
3. Environment variables (DIDEBAN_<BLOCK>_<DIRECTIVE>, DIDEBAN_MODE)
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from ..const import ENV_PREFIX, MODE_DEVELOPMENT, MODE_PRODUCTION
from .lexer import Lexer, LexerError, TokenType
from .parser import ConfigDocument, ParseError, parse_config, parse_config_file
from .schema import Config, config_search_paths


class ConfigError(Exception):
    """Exception raised for configuration errors."""

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = errors or [message]
        super().__init__(message)


VALID_LOG_LEVELS = ("debug", "info", "warn", "warning", "error", "fatal", "panic")

# Directives whose values are always kept as text, never lexed
STRING_DIRECTIVES = {"id", "endpoint", "token", "disk_path", "level", "file", "file_level", "format"}

# Short block aliases accepted in environment variable names
ENV_BLOCK_ALIASES = {"log": "logging"}


class ConfigLoader:
    """
    Loads and validates configuration from files, strings and the environment.

    Usage:
        loader = ConfigLoader()
        config = loader.load()                       # search path + env
        config = loader.load("/etc/dideban-agent/agent.conf")
        warnings = loader.validate(config)           # raises ConfigError
    """

    KNOWN_TOP_LEVEL = {"mode"}

    KNOWN_DIRECTIVES = {
        "agent": {"id", "interval"},
        "core": {"endpoint", "token"},
        "sender": {
            "max_retries",
            "initial_retry_delay",
            "max_retry_delay",
            "request_timeout",
            "client_timeout",
        },
        "mock": {"delay", "failure_rate", "verbose"},
        "collectors": {"cpu_sample_interval", "disk_path"},
        "logging": {
            "level",
            "pretty",
            "colors",
            "file",
            "file_level",
            "file_max_size",
            "file_keep",
            "format",
        },
    }

    def __init__(self, environ: Mapping[str, str] | None = None):
        self.environ = os.environ if environ is None else environ
        self.last_document: ConfigDocument | None = None
        self.env_warnings: list[str] = []

    def load_file(self, path: str | Path) -> Config:
        """
        Load configuration from a file, without environment overrides.

        Raises:
            ConfigError: If file cannot be read or parsed
        """
        path = Path(path)

        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")
        if not path.is_file():
            raise ConfigError(f"Not a file: {path}")

        try:
            document = parse_config_file(path)
        except (LexerError, ParseError) as e:
            raise ConfigError(f"Failed to parse configuration: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read configuration: {e}") from e

        return self._build(document)

    def load_string(
        self,
        source: str,
        filename: str = "<string>",
        base_path: str | Path | None = None,
    ) -> Config:
        """
        Load configuration from a string, without environment overrides.

        Raises:
            ConfigError: If configuration cannot be parsed
        """
        try:
            document = parse_config(
                source, filename, Path(base_path) if base_path is not None else None
            )
        except (LexerError, ParseError) as e:
            raise ConfigError(f"Failed to parse configuration: {e}") from e

        return self._build(document)

    def load(self, path: str | Path | None = None) -> Config:
        """
        Load configuration from defaults, a file and the environment.

        Args:
            path: Explicit config file. If None, the search path is tried and
                a missing file simply means defaults.

        Returns:
            Normalized (not yet validated) Config
        """
        if path is None:
            path = self.find_config_file()

        if path is not None:
            p = Path(path)
            if not p.exists():
                raise ConfigError(f"Configuration file not found: {p}")
            try:
                document = parse_config_file(p)
            except (LexerError, ParseError) as e:
                raise ConfigError(f"Failed to parse configuration: {e}") from e
            except OSError as e:
                raise ConfigError(f"Failed to read configuration: {e}") from e
        else:
            document = ConfigDocument()

        self.apply_env_overrides(document)
        return self._build(document)

    @staticmethod
    def find_config_file() -> str | None:
        """Get the first existing file from the search path."""
        for candidate in config_search_paths():
            if Path(candidate).is_file():
                return candidate
        return None

    def apply_env_overrides(self, document: ConfigDocument) -> None:
        """Apply DIDEBAN_* environment variables on top of the document."""
        self.env_warnings = []
        prefix = f"{ENV_PREFIX}_"

        for key in sorted(self.environ):
            if not key.startswith(prefix):
                continue
            raw = self.environ[key]
            name = key[len(prefix):].lower()

            if name in self.KNOWN_TOP_LEVEL:
                document.set_value(name, raw)
                continue

            target = self._env_target(name)
            if target is None:
                self.env_warnings.append(f"Unknown environment override {key}")
                continue

            block_type, directive = target
            value = raw if directive in STRING_DIRECTIVES else _parse_env_value(raw)
            document.ensure_block(block_type).set_value(directive, value)

    def _env_target(self, name: str) -> tuple[str, str] | None:
        block_names = list(self.KNOWN_DIRECTIVES) + list(ENV_BLOCK_ALIASES)
        for block_name in block_names:
            if not name.startswith(f"{block_name}_"):
                continue
            block_type = ENV_BLOCK_ALIASES.get(block_name, block_name)
            directive = name[len(block_name) + 1:]
            if directive in self.KNOWN_DIRECTIVES[block_type]:
                return block_type, directive
        return None

    def _build(self, document: ConfigDocument) -> Config:
        self.last_document = document
        try:
            config = Config.from_document(document)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration value: {e}") from e
        normalize(config)
        return config

    def validate(self, config: Config) -> list[str]:
        """
        Validate configuration.

        Returns:
            List of warning messages (unknown directives, env overrides)

        Raises:
            ConfigError: If any value is invalid
        """
        errors = validation_errors(config)
        if errors:
            raise ConfigError(f"Invalid configuration: {'; '.join(errors)}", errors)

        warnings = list(self.env_warnings)
        if self.last_document:
            warnings.extend(self._check_unknown_directives(self.last_document))
        return warnings

    def _check_unknown_directives(self, document: ConfigDocument) -> list[str]:
        """Check for unknown blocks and directives in parsed document."""
        warnings = []

        for block in document.blocks:
            known = self.KNOWN_DIRECTIVES.get(block.type)
            if known is None:
                warnings.append(f"Unknown block '{block.type}' (line {block.line})")
                continue
            for directive in block.directives:
                if directive.name not in known:
                    warnings.append(
                        f"Unknown directive '{directive.name}' in {block.type} block "
                        f"(line {directive.line})"
                    )
            for nested in block.blocks:
                warnings.append(
                    f"Unexpected nested block '{nested.type}' in {block.type} block "
                    f"(line {nested.line})"
                )

        for directive in document.directives:
            if directive.name not in self.KNOWN_TOP_LEVEL:
                warnings.append(
                    f"Unknown top-level directive '{directive.name}' (line {directive.line})"
                )

        return warnings


def _parse_env_value(raw: str) -> Any:
    """Interpret an environment value with the config lexer, falling back to text."""
    try:
        tokens = list(Lexer(raw, "<env>"))
    except LexerError:
        return raw
    if len(tokens) == 2 and tokens[0].type != TokenType.EOF:
        return tokens[0].value
    return raw


def normalize(config: Config) -> None:
    """Normalize configuration values into canonical form."""
    config.mode = config.mode.strip().lower()
    config.logging.level = config.logging.level.strip().lower()
    config.core.endpoint = config.core.endpoint.strip()


def validation_errors(config: Config) -> list[str]:
    """Collect all validation errors for a configuration."""
    errors = []

    # Agent
    if not config.agent.id:
        errors.append("agent.id is required")
    if config.agent.interval <= 0:
        errors.append("agent.interval must be > 0")

    # Mode
    if config.mode not in (MODE_PRODUCTION, MODE_DEVELOPMENT):
        errors.append(f"invalid mode: {config.mode}")

    # Core is optional in development mode
    if config.mode == MODE_PRODUCTION:
        if not config.core.endpoint:
            errors.append(f"core.endpoint is required in {config.mode} mode")
        if not config.core.token:
            errors.append(f"core.token is required in {config.mode} mode")
    if config.core.endpoint and not config.core.endpoint.startswith(("http://", "https://")):
        errors.append(f"core.endpoint must be an http(s) URL: {config.core.endpoint}")

    # Sender
    sender = config.sender
    if sender.max_retries < 0:
        errors.append("sender.max_retries must be >= 0")
    for name in ("initial_retry_delay", "max_retry_delay", "request_timeout", "client_timeout"):
        if getattr(sender, name) <= 0:
            errors.append(f"sender.{name} must be > 0")
    if 0 < sender.max_retry_delay < sender.initial_retry_delay:
        errors.append("sender.initial_retry_delay must not exceed sender.max_retry_delay")

    # Mock
    if config.mock.delay < 0:
        errors.append("mock.delay must be >= 0")
    if not 0.0 <= config.mock.failure_rate <= 1.0:
        errors.append("mock.failure_rate must be between 0 and 1")

    # Collectors
    if config.collectors.cpu_sample_interval <= 0:
        errors.append("collectors.cpu_sample_interval must be > 0")
    if not config.collectors.disk_path:
        errors.append("collectors.disk_path is required")

    # Logging
    if not config.logging.level:
        errors.append("logging.level is required")
    elif config.logging.level not in VALID_LOG_LEVELS:
        errors.append(
            f"invalid logging.level: {config.logging.level} "
            f"(valid: {', '.join(VALID_LOG_LEVELS)})"
        )
    if config.logging.pretty and config.mode == MODE_PRODUCTION:
        errors.append("logging.pretty is not allowed in production mode")

    return errors


def load_config(path: str | Path | None = None) -> Config:
    """
    Convenience function to load and validate configuration.

    Args:
        path: Path to the configuration file (search path if None)

    Returns:
        Validated Config object
    """
    loader = ConfigLoader()
    config = loader.load(path)
    loader.validate(config)
    return config
