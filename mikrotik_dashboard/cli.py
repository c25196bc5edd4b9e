"""Command-line interface for the MikroTik dashboard.

Argument parsing and configuration loading. Precedence, lowest first:
defaults, config file, environment variables, command-line flags.
"""

import argparse
from pathlib import Path
from typing import Any

from mikrotik_dashboard import __version__
from mikrotik_dashboard.config import Settings, load_settings_from_file
from mikrotik_dashboard.security.crypto import generate_encryption_key


class _GenerateKeyAction(argparse.Action):
    """Print a fresh encryption key and exit (like --version)."""

    def __init__(self, option_strings: list[str], dest: str, **kwargs: Any) -> None:
        super().__init__(option_strings, dest, nargs=0, default=argparse.SUPPRESS, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None):  # type: ignore[no-untyped-def]
        print(generate_encryption_key())
        parser.exit()


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="mikrotik-dashboard",
        description="MikroTik Dashboard - device registry and live status for RouterOS devices",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--config", "-c", type=Path, help="Path to configuration file (YAML or TOML)"
    )

    parser.add_argument(
        "--environment", choices=["lab", "staging", "prod"], help="Deployment environment"
    )

    parser.add_argument("--debug", action="store_true", help="Enable debug mode")

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level",
    )

    parser.add_argument("--log-format", choices=["json", "text"], help="Log output format")

    parser.add_argument("--host", help="HTTP server bind address")

    parser.add_argument("--port", type=int, help="HTTP server port")

    parser.add_argument("--database-url", help="Database connection URL (SQLite or PostgreSQL)")

    parser.add_argument(
        "--generate-key",
        action=_GenerateKeyAction,
        help="Print a new encryption key for MIKROTIK_DASHBOARD_ENCRYPTION_KEY and exit",
    )

    parser.add_argument(
        "--version", "-v", action="version", version=f"%(prog)s {__version__}"
    )

    return parser


def load_config_from_cli(args: list[str] | None = None) -> Settings:
    """Load configuration from CLI arguments and environment.

    Args:
        args: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Configured Settings instance

    Example:
        settings = load_config_from_cli(["--config", "config/prod.yaml", "--port", "8080"])
    """
    parser = create_argument_parser()
    parsed_args = parser.parse_args(args)

    if parsed_args.config:
        settings = load_settings_from_file(parsed_args.config)
    else:
        settings = Settings()

    cli_overrides: dict[str, Any] = {}

    if parsed_args.environment is not None:
        cli_overrides["environment"] = parsed_args.environment

    if parsed_args.debug:
        cli_overrides["debug"] = True

    if parsed_args.log_level is not None:
        cli_overrides["log_level"] = parsed_args.log_level

    if parsed_args.log_format is not None:
        cli_overrides["log_format"] = parsed_args.log_format

    if parsed_args.host is not None:
        cli_overrides["http_host"] = parsed_args.host

    if parsed_args.port is not None:
        cli_overrides["http_port"] = parsed_args.port

    if parsed_args.database_url is not None:
        cli_overrides["database_url"] = parsed_args.database_url

    if cli_overrides:
        settings = Settings(**{**settings.model_dump(), **cli_overrides})

    return settings
