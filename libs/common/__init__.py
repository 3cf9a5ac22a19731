"""Common utilities shared across the service and scripts.

Includes:
- ``config``: Pydantic-based configuration from environment variables.
- ``errors``: startup and per-request error taxonomies.
- ``logging``: structured logging setup with structlog.
- ``metrics``: Prometheus metrics helpers.

Import pattern:
- from libs.common.config import SearchConfig
- from libs.common.logging import configure_logging
"""
