"""Configuration module for the MikroTik Dashboard backend.

Implements Pydantic v2 Settings for configuration management with support for:
- Environment variables (MIKROTIK_DASHBOARD_* prefix)
- YAML/TOML configuration files
- Command-line argument overrides
- Fail-fast validation at startup

Configuration priority (later overrides earlier):
1. Built-in defaults
2. Configuration file (YAML/TOML)
3. Environment variables
4. Command-line arguments
"""

import warnings
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration with sensible defaults.

    Example:
        # Load from environment only
        settings = Settings()

        # Override specific values
        settings = Settings(environment="prod", encryption_key="...")
    """

    model_config = SettingsConfigDict(
        env_prefix="MIKROTIK_DASHBOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown fields
    )

    # ========================================
    # Application Settings
    # ========================================

    environment: Literal["lab", "staging", "prod"] = Field(
        default="lab", description="Deployment environment"
    )

    debug: bool = Field(default=False, description="Enable debug mode with verbose logging")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )

    log_format: Literal["json", "text"] = Field(default="json", description="Log output format")

    log_file: str | None = Field(default=None, description="Optional JSON log file path")

    # ========================================
    # HTTP API
    # ========================================

    http_host: str = Field(
        default="127.0.0.1",
        description="HTTP server bind address (0.0.0.0 for all interfaces)",
    )

    http_port: int = Field(default=3000, ge=1, le=65535, description="HTTP server port")

    api_base_path: str = Field(default="/api", description="Base path for dashboard API routes")

    cors_origins: list[str] = Field(
        default_factory=list,
        description="Allowed CORS origins (all origins are allowed in debug mode)",
    )

    # ========================================
    # Database Configuration
    # ========================================

    database_url: str = Field(
        default="sqlite+aiosqlite:///./mikrotik_dashboard.db",
        description="Database connection URL (SQLite or PostgreSQL)",
    )

    database_pool_size: int = Field(
        default=5, ge=1, le=100, description="Database connection pool size"
    )

    database_max_overflow: int = Field(
        default=10, ge=0, le=100, description="Max overflow connections beyond pool size"
    )

    database_echo: bool = Field(
        default=False, description="Echo SQL statements to logs (debug only)"
    )

    # ========================================
    # RouterOS Integration
    # ========================================

    routeros_default_port: int = Field(
        default=8728,
        ge=1,
        le=65535,
        description="Port assumed when a device omits one. 8728 is the binary API port; "
        "devices reached over REST listen on their www/www-ssl port",
    )

    routeros_connect_timeout_seconds: float = Field(
        default=5.0, ge=0.1, le=120.0, description="Upper bound for a session handshake"
    )

    routeros_probe_timeout_seconds: float = Field(
        default=5.0, ge=0.1, le=120.0, description="Upper bound for one status query"
    )

    routeros_session_idle_seconds: float = Field(
        default=300.0,
        ge=0.0,
        description="Pooled sessions idle longer than this are re-established (0 = never)",
    )

    routeros_verify_ssl: bool = Field(
        default=False,
        description="Verify TLS certificates of devices using the encrypted transport. "
        "RouterOS ships self-signed certificates, so this is off by default",
    )

    # ========================================
    # Event Stream
    # ========================================

    event_bus_max_subscribers: int = Field(
        default=100, ge=1, le=10000, description="Maximum concurrent event stream observers"
    )

    event_bus_queue_size: int = Field(
        default=1000, ge=0, description="Per-observer pending event limit (0 = unbounded)"
    )

    sse_ping_interval_seconds: int = Field(
        default=15, ge=1, le=300, description="Keep-alive interval for event streams"
    )

    # ========================================
    # Security & Encryption
    # ========================================

    encryption_key: str | None = Field(
        default=None,
        description="Fernet key used to encrypt stored device secrets",
    )

    # ========================================
    # Validators
    # ========================================

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL format."""
        if not (
            v.startswith("sqlite:///")
            or v.startswith("sqlite+aiosqlite:///")
            or v.startswith("sqlite://")
            or v.startswith("sqlite+aiosqlite://")
            or v.startswith("postgresql://")
            or v.startswith("postgresql+asyncpg://")
            or v.startswith("postgresql+psycopg://")
        ):
            raise ValueError(
                "database_url must be SQLite (sqlite:///, sqlite+aiosqlite:///) or PostgreSQL "
                "(postgresql://, postgresql+asyncpg://, postgresql+psycopg://)"
            )
        return v

    @field_validator("api_base_path")
    @classmethod
    def validate_api_base_path(cls, v: str) -> str:
        """Normalize base path to a leading slash without a trailing one."""
        v = v.strip()
        if not v or v == "/":
            return ""
        if not v.startswith("/"):
            v = "/" + v
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_encryption_key(self) -> "Settings":
        """Validate encryption key is provided."""
        if self.encryption_key is None:
            # Generate a warning in lab, require in staging/prod
            if self.environment in ["staging", "prod"]:
                raise ValueError("encryption_key is required for staging/prod environments")
            else:
                warnings.warn(
                    "encryption_key not set, using insecure default for lab only",
                    UserWarning,
                    stacklevel=2,
                )
                self.encryption_key = "INSECURE_LAB_KEY_DO_NOT_USE_IN_PRODUCTION"
        return self

    # ========================================
    # Helper Methods
    # ========================================

    @property
    def is_sqlite(self) -> bool:
        """Check if database is SQLite."""
        return self.database_url.startswith("sqlite")

    @property
    def is_postgresql(self) -> bool:
        """Check if database is PostgreSQL."""
        return self.database_url.startswith("postgresql")

    @property
    def database_driver(self) -> str:
        """Get database driver name."""
        if self.database_url.startswith("sqlite+aiosqlite://"):
            return "aiosqlite"
        elif self.database_url.startswith("sqlite://"):
            return "sqlite"
        elif self.database_url.startswith("postgresql+asyncpg://"):
            return "asyncpg"
        elif self.database_url.startswith("postgresql+psycopg://"):
            return "psycopg"
        elif self.database_url.startswith("postgresql://"):
            return "postgresql"
        else:
            return "unknown"

    def to_dict(self) -> dict:
        """Convert settings to dictionary, masking secrets."""
        data = self.model_dump()
        if data.get("encryption_key"):
            data["encryption_key"] = "***REDACTED***"
        return data


# ========================================
# Global Settings Instance
# ========================================

_settings: Settings | None = None


def get_settings() -> Settings:
    """Get global settings instance (singleton).

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings | None) -> None:
    """Set (or clear, with None) the global settings instance.

    Args:
        settings: Settings instance to use globally
    """
    global _settings
    _settings = settings


def load_settings_from_file(config_file: Path | str) -> Settings:
    """Load settings from YAML or TOML configuration file.

    Args:
        config_file: Path to configuration file

    Returns:
        Settings instance loaded from file

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file format is invalid

    Example:
        settings = load_settings_from_file("config/prod.yaml")
        set_settings(settings)
    """
    config_path = Path(config_file)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()

    if suffix in [".yaml", ".yml"]:
        import yaml

        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}
    elif suffix == ".toml":
        import tomllib

        with open(config_path, "rb") as f:
            config_data = tomllib.load(f)
    else:
        raise ValueError(f"Unsupported config file format: {suffix}. Use .yaml, .yml, or .toml")

    return Settings(**config_data)
