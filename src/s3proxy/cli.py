"""CLI entry point for s3proxy."""

import argparse
import logging
import sys
from pathlib import Path

import uvicorn

from s3proxy.config import GatewayConfig, apply_env_overrides, load_config
from s3proxy.errors import ConfigError
from s3proxy.logging_config import configure_logging
from s3proxy.server import create_app


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        prog="s3proxy",
        description="s3proxy - serve S3 objects over HTTP",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (environment variables override it)",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host address to bind to (overrides config)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on (overrides config)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config, default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        type=str,
        default=None,
        choices=["text", "json"],
        help="Log format: 'text' (human-readable) or 'json' (structured)",
    )
    parser.add_argument(
        "--access-log",
        action="store_true",
        default=None,
        help="Enable access logging (overrides config)",
    )
    return parser.parse_args(argv)


def log_config_summary(config: GatewayConfig, logger: logging.Logger) -> None:
    """Log the settings an operator needs to confirm at startup."""
    if config.storage.backend == "aws":
        logger.info("[config] Proxy to %s", config.storage.bucket)
        logger.info("[config] AWS Region: %s", config.storage.aws_region)
        if not config.storage.aws_access_key_id:
            logger.warning("Not defined: AWS_ACCESS_KEY_ID")
        if not config.storage.aws_secret_access_key:
            logger.warning("Not defined: AWS_SECRET_ACCESS_KEY")
    else:
        logger.info("[config] Storage backend: %s", config.storage.backend)
    if config.server.tls_enabled:
        logger.info("[config] TLS enabled.")
    if config.auth.enabled:
        logger.info("[config] Basic authentication: %s", config.auth.username)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the s3proxy CLI.

    Loads configuration (YAML, then environment, then CLI flags) and starts
    the server using uvicorn, with TLS when certificate and key are set.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].
    """
    args = parse_args(argv)

    logging.basicConfig(level=logging.INFO, stream=sys.stderr)
    logger = logging.getLogger("s3proxy")

    try:
        config = load_config(args.config) if args.config is not None else GatewayConfig()
        config = apply_env_overrides(config)
    except FileNotFoundError:
        logger.error("Config file not found: %s", args.config)
        sys.exit(1)
    except Exception as exc:
        logger.error("Failed to load config: %s", exc)
        sys.exit(1)

    if args.host is not None:
        config.server.host = args.host
    if args.port is not None:
        config.server.port = args.port
    if args.log_level is not None:
        config.server.log_level = args.log_level
    if args.log_format is not None:
        config.server.log_format = args.log_format
    if args.access_log:
        config.access_log = True

    configure_logging(
        level=config.server.log_level,
        fmt=config.server.log_format,
    )

    try:
        config.validate_settings()
    except ConfigError as exc:
        logger.error("%s", exc)
        sys.exit(1)

    log_config_summary(config, logger)

    app = create_app(config)

    logger.info("[service] listening on port %d", config.server.port)
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.server.log_level.lower(),
        access_log=False,
        ssl_certfile=config.server.ssl_cert or None,
        ssl_keyfile=config.server.ssl_key or None,
    )


if __name__ == "__main__":
    main()
