"""Tests for CLI module."""

from pathlib import Path

import pytest
from cryptography.fernet import Fernet

from mikrotik_dashboard import __version__
from mikrotik_dashboard.cli import create_argument_parser, load_config_from_cli


class TestCreateArgumentParser:
    """Tests for create_argument_parser function."""

    def test_parser_creation(self) -> None:
        parser = create_argument_parser()
        assert parser.prog == "mikrotik-dashboard"

    def test_parser_help(self) -> None:
        help_text = create_argument_parser().format_help()
        assert "MikroTik Dashboard" in help_text
        assert "--config" in help_text
        assert "--generate-key" in help_text

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            create_argument_parser().parse_args(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_generate_key(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            create_argument_parser().parse_args(["--generate-key"])

        assert exc_info.value.code == 0
        key = capsys.readouterr().out.strip()
        Fernet(key.encode())

    def test_rejects_unknown_environment(self) -> None:
        with pytest.raises(SystemExit):
            create_argument_parser().parse_args(["--environment", "dev"])


class TestLoadConfigFromCli:
    """Tests for load_config_from_cli function."""

    def test_load_default_config(self) -> None:
        settings = load_config_from_cli([])
        assert settings.environment == "lab"
        assert settings.debug is False
        assert settings.http_port == 3000

    def test_cli_override_environment(self) -> None:
        settings = load_config_from_cli(["--environment", "staging"])
        assert settings.environment == "staging"

    def test_cli_override_debug(self) -> None:
        assert load_config_from_cli(["--debug"]).debug is True

    def test_cli_override_logging(self) -> None:
        settings = load_config_from_cli(["--log-level", "DEBUG", "--log-format", "text"])
        assert settings.log_level == "DEBUG"
        assert settings.log_format == "text"

    def test_cli_override_http_binding(self) -> None:
        settings = load_config_from_cli(["--host", "0.0.0.0", "--port", "8080"])
        assert settings.http_host == "0.0.0.0"
        assert settings.http_port == 8080

    def test_cli_override_database_url(self) -> None:
        settings = load_config_from_cli(["--database-url", "sqlite+aiosqlite:///./other.db"])
        assert settings.database_url == "sqlite+aiosqlite:///./other.db"

    def test_config_file_with_cli_override(self, tmp_path: Path) -> None:
        key = Fernet.generate_key().decode()
        config_path = tmp_path / "config.yaml"
        config_path.write_text(
            f"http_port: 4000\nlog_level: WARNING\nencryption_key: '{key}'\n"
        )

        settings = load_config_from_cli(["--config", str(config_path), "--port", "5000"])

        assert settings.http_port == 5000
        assert settings.log_level == "WARNING"
        assert settings.encryption_key == key

    def test_missing_config_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config_from_cli(["--config", str(tmp_path / "missing.yaml")])
