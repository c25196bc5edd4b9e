"""Tests for configuration management."""

import pytest
from cryptography.fernet import Fernet
from pydantic import ValidationError

from mikrotik_dashboard.config import (
    Settings,
    get_settings,
    load_settings_from_file,
    set_settings,
)

KEY = Fernet.generate_key().decode()


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings(encryption_key=KEY)

        assert settings.environment == "lab"
        assert settings.http_host == "127.0.0.1"
        assert settings.http_port == 3000
        assert settings.api_base_path == "/api"
        assert settings.routeros_default_port == 8728
        assert settings.routeros_connect_timeout_seconds == 5.0
        assert settings.routeros_probe_timeout_seconds == 5.0
        assert settings.event_bus_max_subscribers == 100
        assert settings.is_sqlite
        assert settings.database_driver == "aiosqlite"

    def test_default_port_documents_rest_service_ports(self) -> None:
        from mikrotik_dashboard.domain.models import DeviceCreate

        for field in (
            Settings.model_fields["routeros_default_port"],
            DeviceCreate.model_fields["port"],
        ):
            assert "8728 is the binary API port" in field.description
            assert "www" in field.description

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MIKROTIK_DASHBOARD_HTTP_PORT", "8080")
        monkeypatch.setenv("MIKROTIK_DASHBOARD_ROUTEROS_CONNECT_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv("MIKROTIK_DASHBOARD_ENCRYPTION_KEY", KEY)

        settings = Settings()

        assert settings.http_port == 8080
        assert settings.routeros_connect_timeout_seconds == 2.5
        assert settings.encryption_key == KEY

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("/api", "/api"), ("api/", "/api"), ("/v1/dash/", "/v1/dash"), ("/", ""), ("", "")],
    )
    def test_api_base_path_normalized(self, raw: str, expected: str) -> None:
        assert Settings(api_base_path=raw, encryption_key=KEY).api_base_path == expected

    def test_invalid_database_url(self) -> None:
        with pytest.raises(ValidationError, match="database_url"):
            Settings(database_url="mysql://db/dash", encryption_key=KEY)

    def test_postgres_driver(self) -> None:
        settings = Settings(
            database_url="postgresql+asyncpg://app:pw@db:5432/dash", encryption_key=KEY
        )
        assert not settings.is_sqlite
        assert settings.is_postgresql
        assert settings.database_driver == "asyncpg"

    @pytest.mark.parametrize("field", ["http_port", "routeros_default_port"])
    def test_port_range(self, field: str) -> None:
        with pytest.raises(ValidationError):
            Settings(**{field: 70000}, encryption_key=KEY)

    def test_event_bus_requires_one_subscriber(self) -> None:
        with pytest.raises(ValidationError):
            Settings(event_bus_max_subscribers=0, encryption_key=KEY)

    def test_missing_key_in_lab_uses_insecure_default(self) -> None:
        with pytest.warns(UserWarning, match="insecure default"):
            settings = Settings(environment="lab")
        assert settings.encryption_key == "INSECURE_LAB_KEY_DO_NOT_USE_IN_PRODUCTION"

    @pytest.mark.parametrize("environment", ["staging", "prod"])
    def test_missing_key_outside_lab_fails(self, environment: str) -> None:
        with pytest.raises(ValidationError, match="encryption_key is required"):
            Settings(environment=environment)

    def test_to_dict_masks_key(self) -> None:
        data = Settings(encryption_key=KEY).to_dict()
        assert data["encryption_key"] == "***REDACTED***"


class TestGlobalSettings:
    def test_set_and_get(self) -> None:
        settings = Settings(http_port=9000, encryption_key=KEY)
        set_settings(settings)
        assert get_settings() is settings

    def test_get_creates_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MIKROTIK_DASHBOARD_ENCRYPTION_KEY", KEY)
        first = get_settings()
        assert get_settings() is first


class TestLoadSettingsFromFile:
    def test_yaml(self, tmp_path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(f"http_port: 8081\nenvironment: staging\nencryption_key: '{KEY}'\n")

        settings = load_settings_from_file(path)

        assert settings.http_port == 8081
        assert settings.environment == "staging"

    def test_toml(self, tmp_path) -> None:
        path = tmp_path / "config.toml"
        path.write_text(f'api_base_path = "/dash"\nencryption_key = "{KEY}"\n')

        assert load_settings_from_file(path).api_base_path == "/dash"

    def test_empty_yaml(self, tmp_path) -> None:
        path = tmp_path / "empty.yml"
        path.write_text("")
        with pytest.warns(UserWarning):
            settings = load_settings_from_file(path)
        assert settings.environment == "lab"

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_settings_from_file(tmp_path / "nope.yaml")

    def test_unsupported_format(self, tmp_path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{}")
        with pytest.raises(ValueError, match="Unsupported config file format"):
            load_settings_from_file(path)
