"""Configuration management for the semantic search service.

This module centralizes environment-driven configuration. It builds on
``pydantic_settings.BaseSettings`` so configuration can be provided via
environment variables, ``.env`` files, or defaults.

Highlights
- Strongly‑typed settings with documented fallbacks
- Variable names match the deployment environment (``POSTGRES_HOST``,
  ``SERVER_PORT``, ...); matching is case-insensitive
- Small service‑specific subclasses to keep concerns clear

Usage
- Inject the appropriate config in your service entrypoint:
  ``config = SearchConfig()``
- Or select dynamically: ``config = get_config("search")``
"""

from typing import Any, List, Optional

import structlog
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from libs.vector_store.pool import DatabaseSettings

logger = structlog.get_logger("config")

DEFAULT_POSTGRES_PORT = 5432

# Environment variables that fall back to a default when unset.
_DATABASE_FALLBACKS = {
    "POSTGRES_HOST": "localhost",
    "POSTGRES_PORT": str(DEFAULT_POSTGRES_PORT),
    "POSTGRES_DB": "dataplatform",
    "POSTGRES_USER": "postgres",
    "POSTGRES_PASSWORD": "",
}


class BaseConfig(BaseSettings):
    """Base configuration shared by every entrypoint.

    Parameters are read from the process environment using the field name
    (upper‑cased). Defaults keep local development convenient while still
    being explicit.

    Notes
    - The password is held as ``SecretStr`` so it never shows up in reprs
    - Add new shared settings here so scripts and services inherit them
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        protected_namespaces=("settings_",),
    )

    # Environment
    env: str = Field(default="local", description="Deployment environment name")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    # Database
    postgres_host: str = Field(default="localhost")
    postgres_port: int = Field(default=DEFAULT_POSTGRES_PORT)
    postgres_db: str = Field(default="dataplatform")
    postgres_user: str = Field(default="postgres")
    postgres_password: SecretStr = Field(default=SecretStr(""))
    postgres_application_name: str = Field(default="semantic-search-service")
    postgres_connect_timeout: float = Field(default=10.0, gt=0)

    # Pool policy
    pool_max_size: int = Field(default=30, ge=1)
    pool_min_idle: int = Field(default=2, ge=0)
    pool_idle_timeout: float = Field(default=60.0, gt=0)
    pool_acquire_timeout: float = Field(default=15.0, gt=0)

    # Vector store
    vector_dimension: Optional[int] = Field(default=384, ge=1)

    @field_validator("postgres_port", mode="before")
    @classmethod
    def _fallback_port(cls, value: Any) -> int:
        """Fall back to 5432 when the port is not a 16-bit unsigned integer."""
        try:
            port = int(str(value).strip())
        except (TypeError, ValueError):
            logger.warning("Invalid POSTGRES_PORT format, using default", value=value)
            return DEFAULT_POSTGRES_PORT
        if not 0 <= port <= 65535:
            logger.warning("POSTGRES_PORT out of range, using default", value=value)
            return DEFAULT_POSTGRES_PORT
        return port

    @field_validator("vector_dimension", mode="before")
    @classmethod
    def _optional_dimension(cls, value: Any) -> Any:
        """An empty ``VECTOR_DIMENSION`` disables the client-side check."""
        if isinstance(value, str) and value.strip().lower() in ("", "none", "null"):
            return None
        return value

    def database_settings(self) -> DatabaseSettings:
        """Build the immutable pool parameters from this configuration."""
        return DatabaseSettings(
            host=self.postgres_host,
            port=self.postgres_port,
            database=self.postgres_db,
            user=self.postgres_user,
            password=self.postgres_password.get_secret_value(),
            application_name=self.postgres_application_name,
            connect_timeout=self.postgres_connect_timeout,
            max_size=self.pool_max_size,
            min_idle=self.pool_min_idle,
            idle_timeout=self.pool_idle_timeout,
            acquire_timeout=self.pool_acquire_timeout,
        )


class SearchConfig(BaseConfig):
    """Configuration for the search service.

    Adds the server bind address, encoder location, search policy, and CORS.
    """

    server_host: str = Field(default="127.0.0.1")
    server_port: int = Field(default=8080, ge=0, le=65535)

    # Encoder
    model_dir: str = Field(default="./models/bge-small-en-v1.5")
    model_device: str = Field(default="auto", description="auto, cpu, or gpu")
    model_max_length: int = Field(default=512, ge=1)

    # Search policy
    search_default_limit: int = Field(default=10, ge=1)
    search_max_limit: int = Field(default=50, ge=1)
    search_geo_radius_meters: float = Field(default=16093.44, gt=0)

    # CORS
    cors_allow_origins: str = Field(default="*")

    @property
    def cors_origins(self) -> List[str]:
        """Comma separated ``CORS_ALLOW_ORIGINS`` as a list."""
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]


def get_config(service_name: str) -> BaseConfig:
    """Get configuration for a specific entrypoint.

    Parameters
    - service_name: ``search`` for the HTTP service; anything else yields
      ``BaseConfig`` (scripts only need database settings).
    """
    config_map = {
        "search": SearchConfig,
    }

    config_class = config_map.get(service_name, BaseConfig)
    return config_class()


def log_database_fallbacks(config: BaseConfig) -> List[str]:
    """Warn about each database variable that was not provided.

    A field counts as provided when the environment or ``.env`` supplied it.
    Returns the names of the missing variables. The password fallback is
    reported without its value.
    """
    missing = []
    for name, fallback in _DATABASE_FALLBACKS.items():
        if name.lower() in config.model_fields_set:
            continue
        missing.append(name)
        if name == "POSTGRES_PASSWORD":
            logger.warning("Environment variable not set, using empty password", variable=name)
        else:
            logger.warning("Environment variable not set, using default", variable=name, default=fallback)
    return missing
