"""Main entry point for the MikroTik dashboard.

1. Loads and validates configuration
2. Sets up logging
3. Serves the HTTP API until SIGINT/SIGTERM
"""

import asyncio
import logging
import sys
from urllib.parse import urlparse, urlunparse

from mikrotik_dashboard import __version__
from mikrotik_dashboard.cli import load_config_from_cli
from mikrotik_dashboard.config import Settings, set_settings
from mikrotik_dashboard.infra.observability.logging import setup_logging
from mikrotik_dashboard.server import DashboardServer


def sanitize_database_url(url: str) -> str:
    """Sanitize database URL by redacting password.

    Example:
        >>> sanitize_database_url("postgresql+asyncpg://app:s3cret@db:5432/dash")
        'postgresql+asyncpg://app:***@db:5432/dash'
    """
    try:
        parsed = urlparse(url)
        if not parsed.password:
            # urlunparse drops the empty authority of sqlite:/// URLs
            return url

        netloc = f"{parsed.username or ''}:***"
        if parsed.hostname:
            netloc += f"@{parsed.hostname}"
        if parsed.port:
            netloc += f":{parsed.port}"
        return urlunparse(parsed._replace(netloc=netloc))
    except ValueError:
        return "***REDACTED***"


def print_startup_banner(settings: Settings) -> None:  # pragma: no cover
    """Log the effective configuration (secrets masked)."""
    logger = logging.getLogger(__name__)

    logger.info("=" * 60)
    logger.info("MikroTik Dashboard")
    logger.info(f"Version: {__version__}")
    logger.info("=" * 60)
    logger.info(f"  Environment: {settings.environment}")
    logger.info(f"  Debug: {settings.debug}")
    logger.info(f"  Log Level: {settings.log_level}")
    logger.info(f"  HTTP: {settings.http_host}:{settings.http_port}{settings.api_base_path}")
    logger.info(f"  Database: {sanitize_database_url(settings.database_url)}")
    logger.info(f"  Driver: {settings.database_driver}")
    logger.info(
        f"  RouterOS timeouts: connect {settings.routeros_connect_timeout_seconds}s, "
        f"probe {settings.routeros_probe_timeout_seconds}s"
    )
    logger.info("=" * 60)

    if settings.debug:
        logger.warning("Debug mode enabled - not for production use")


def main(argv: list[str] | None = None) -> int:  # pragma: no cover
    """Main entry point.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    try:
        settings = load_config_from_cli(argv)
        set_settings(settings)

        setup_logging(
            level="DEBUG" if settings.debug else settings.log_level,
            json_format=settings.log_format == "json",
            log_file=settings.log_file,
        )
        print_startup_banner(settings)

        asyncio.run(DashboardServer(settings).start())
        return 0

    except KeyboardInterrupt:
        print("\nShutdown requested... exiting", file=sys.stderr)
        return 0
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        if "settings" in locals():
            logging.getLogger(__name__).exception(f"Fatal error: {e}")
        else:
            print(f"Fatal error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
