"""
Server Main Entry Point

Entry point for the echo server with configuration loading,
logging setup, and error handling.
"""

import argparse
import sys
from typing import List, Optional

from echo_app import __version__
from echo_app.server.echo_server import EchoServer
from echo_app.shared.config import ConfigurationLoader, ServerConfig
from echo_app.shared.exceptions import ConfigurationError, EchoServerError
from echo_app.shared.logging_config import configure_from_env, get_logger, setup_logging


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        description="TCP echo server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        "--host",
        help="Host address to bind to (default from config, 0.0.0.0)"
    )

    parser.add_argument(
        "--port",
        type=int,
        help="Port number to listen on (default from ECHO_SERVER_PORT / PORT, 8080)"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level"
    )

    parser.add_argument(
        "--log-file",
        help="Log file path"
    )

    parser.add_argument(
        "--config-file",
        help="Configuration file path (JSON or YAML)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Echo Server {__version__}"
    )

    return parser


def load_server_config(args: argparse.Namespace) -> ServerConfig:
    """
    Load server configuration.

    Priority order:
    1. Command line arguments
    2. Environment variables
    3. Configuration file
    4. Defaults

    Raises:
        ConfigurationError: If configuration is invalid
    """
    config = ConfigurationLoader.load_server_config(args.config_file)

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port

    config.validate()
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the echo server.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    args = build_parser().parse_args(argv)

    try:
        if args.log_level or args.log_file:
            setup_logging(level=args.log_level or "INFO", log_file=args.log_file)
        else:
            configure_from_env()
    except (OSError, ValueError) as e:
        print(f"Failed to set up logging: {e}", file=sys.stderr)
        return 1

    logger = get_logger(__name__)
    logger.info("Starting Echo Server...")

    try:
        config = load_server_config(args)
        logger.info(f"Server configuration loaded: {config.host}:{config.port}")

        server = EchoServer(config, install_signal_handlers=True)
        print("TCP Echo Server")
        print("Press Ctrl+C to stop.")
        server.start()
        return 0

    except KeyboardInterrupt:
        logger.info("Server interrupted by user")
        return 0

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2

    except EchoServerError as e:
        logger.error(f"Server error: {e}")
        return 3

    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
