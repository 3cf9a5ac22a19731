"""Shared fixtures."""

import pytest

from libs.common.config import SearchConfig
from libs.common.metrics import MetricsCollector

_ENV_VARS = (
    "POSTGRES_HOST",
    "POSTGRES_PORT",
    "POSTGRES_DB",
    "POSTGRES_USER",
    "POSTGRES_PASSWORD",
    "SERVER_HOST",
    "SERVER_PORT",
    "SEARCH_DEFAULT_LIMIT",
    "SEARCH_MAX_LIMIT",
    "SEARCH_GEO_RADIUS_METERS",
    "VECTOR_DIMENSION",
    "POOL_MAX_SIZE",
    "POOL_MIN_IDLE",
    "CORS_ALLOW_ORIGINS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host environment variables out of configuration tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def search_config():
    return SearchConfig()


@pytest.fixture
def metrics_collector():
    return MetricsCollector("test-service")
