"""
Main application orchestrator.

Handles:
- Configuration loading
- Component wiring (probes, orchestrator, sender, agent loop)
- Signal handling and graceful shutdown
"""

import asyncio
import signal

from .agent import AgentLoop, AgentState
from .collectors.orchestrator import CollectionOrchestrator, default_probes
from .config.loader import ConfigLoader
from .config.schema import Config
from .const import APP_NAME, APP_VERSION
from .logging import LogConfig, get_logger, setup_logging
from .transport import MockSender, create_sender
from .utils.cancel import CancelToken


logger = get_logger("app")


class Application:
    """
    Main application class.

    Owns the process-wide cancel token and runs one AgentLoop until a
    termination signal arrives.
    """

    def __init__(self, config: Config):
        """
        Initialize application.

        Args:
            config: Validated application configuration
        """
        self.config = config
        self.cancel = CancelToken()

        self.orchestrator = CollectionOrchestrator(default_probes(config.collectors))
        self.sender = create_sender(config)
        self.loop = AgentLoop(
            orchestrator=self.orchestrator,
            sender=self.sender,
            agent_id=config.agent.id,
            interval=config.agent.interval,
        )

    def _setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self._signal_handler, sig)
            except NotImplementedError:
                # Windows event loops have no signal handler support
                signal.signal(sig, lambda *_: loop.call_soon_threadsafe(self.stop))

    def _signal_handler(self, sig: signal.Signals) -> None:
        """Handle shutdown signals."""
        logger.info(f"Received {sig.name}, shutting down")
        self.stop()

    def stop(self) -> None:
        """Request shutdown; the current cycle drains and the sender closes."""
        self.cancel.cancel("shutdown requested")

    async def run(self) -> None:
        """Run the application until shutdown."""
        sender_kind = "mock" if isinstance(self.sender, MockSender) else "http"
        logger.info(
            f"Starting {APP_NAME} {APP_VERSION}",
            extra={
                "agent_id": self.config.agent.id,
                "mode": self.config.mode,
                "sender": sender_kind,
                "interval": self.config.agent.interval,
            },
        )

        self._setup_signal_handlers()
        await self.loop.run(self.cancel)

        if self.loop.state is AgentState.STOPPED:
            logger.info(f"{APP_NAME} stopped")


def log_config_from(config: Config, cli_log_config: LogConfig | None = None) -> LogConfig:
    """
    Build logging setup from the config file, letting CLI flags win.

    Args:
        config: Loaded configuration
        cli_log_config: Logging config from CLI args (overrides file config)
    """
    if cli_log_config is None:
        return LogConfig(
            console_level=config.logging.level,
            console_colors=config.logging.colors,
            pretty=config.logging.pretty,
            file_enabled=config.logging.file is not None,
            file_path=config.logging.file or LogConfig.file_path,
            file_level=config.logging.file_level,
            file_max_bytes=config.logging.file_max_size * 1024 * 1024,
            file_backup_count=config.logging.file_keep,
            format=config.logging.format,
        )

    # CLI args override file config, but merge file settings if not specified
    cli_log_config.pretty = config.logging.pretty
    if not cli_log_config.file_enabled and config.logging.file:
        cli_log_config.file_enabled = True
        cli_log_config.file_path = config.logging.file
        cli_log_config.file_level = config.logging.file_level
        cli_log_config.file_max_bytes = config.logging.file_max_size * 1024 * 1024
        cli_log_config.file_backup_count = config.logging.file_keep
    return cli_log_config


def load_and_configure(
    config_path: str | None,
    cli_log_config: LogConfig | None = None,
) -> Config:
    """
    Load configuration and set up logging, before the event loop starts.

    Raises:
        ConfigError: If configuration is missing or invalid
    """
    loader = ConfigLoader()
    config = loader.load(config_path)
    warnings = loader.validate(config)

    setup_logging(log_config_from(config, cli_log_config))

    if config.source:
        logger.info(f"Loaded configuration from {config.source}")
    else:
        logger.info("No configuration file found, using defaults and environment")
    for warning in warnings:
        logger.warning(f"Config warning: {warning}")

    return config


async def run_app(config: Config) -> None:
    """
    Run the application with a loaded configuration.

    Args:
        config: Validated configuration
    """
    app = Application(config)
    await app.run()
