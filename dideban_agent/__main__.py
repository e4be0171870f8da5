"""
Entry point for Dideban Agent.

Usage:
    python -m dideban_agent [/path/to/agent.conf]
    python -m dideban_agent --help
"""

import argparse
import asyncio
import sys

from . import __version__
from .app import load_and_configure, run_app
from .config.loader import ConfigError, ConfigLoader
from .logging import LogConfig, get_logger, setup_logging
from .transport import MockSender, create_sender


logger = get_logger("main")


def validate_config(config_path: str | None) -> int:
    """Validate configuration and print a summary."""
    try:
        loader = ConfigLoader()
        config = loader.load(config_path)
        warnings = loader.validate(config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    if warnings:
        print(f"Configuration warnings ({len(warnings)}):")
        for warning in warnings:
            print(f"  - {warning}")

    sender = "mock" if isinstance(create_sender(config), MockSender) else "http"

    print("\nConfiguration summary:")
    print(f"  Source: {config.source or 'defaults + environment'}")
    print(f"  Mode: {config.mode}")
    print(f"  Agent ID: {config.agent.id}")
    print(f"  Interval: {config.agent.interval}s")
    print(f"  Sender: {sender}")
    if config.core.endpoint:
        print(f"  Endpoint: {config.core.endpoint}")
    print(
        f"  Retries: {config.sender.max_retries} "
        f"(delay {config.sender.initial_retry_delay}s..{config.sender.max_retry_delay}s)"
    )
    print(f"  Logging level: {config.logging.level}")
    if config.logging.file:
        print(f"  Log file: {config.logging.file}")

    print("\nConfiguration is valid!")
    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="dideban-agent",
        description="Host telemetry agent delivering CPU, memory and disk metrics",
    )

    parser.add_argument(
        "config",
        nargs="?",
        default=None,
        help="Path to configuration file (default: search ./agent.conf, "
        "~/.dideban/agent/agent.conf, /etc/dideban-agent/agent.conf)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging (INFO level)",
    )

    parser.add_argument(
        "-d", "--debug",
        action="store_true",
        help="Enable debug logging (DEBUG level)",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Quiet mode (only errors)",
    )

    parser.add_argument(
        "--log-file",
        metavar="PATH",
        help="Write logs to file",
    )

    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )

    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate configuration and exit",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    args = parser.parse_args()

    if args.validate:
        return validate_config(args.config)

    # CLI flags only override the config file when given
    cli_log_config: LogConfig | None = None
    if args.debug or args.verbose or args.quiet or args.no_color or args.log_file:
        cli_log_config = LogConfig()
        if args.debug:
            cli_log_config.console_level = "debug"
        elif args.verbose:
            cli_log_config.console_level = "info"
        elif args.quiet:
            cli_log_config.console_level = "error"
        if args.no_color:
            cli_log_config.console_colors = False
        if args.log_file:
            cli_log_config.file_enabled = True
            cli_log_config.file_path = args.log_file

    # Bootstrap logging so config errors are reported
    setup_logging(cli_log_config)

    try:
        config = load_and_configure(args.config, cli_log_config)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    try:
        asyncio.run(run_app(config))
        return 0
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
