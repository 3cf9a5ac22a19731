"""Vector store exceptions.

Startup failures raised while building and validating the connection pool,
and per‑request failures raised while executing ranking queries.
"""

from libs.common.errors import RequestError, StartupError


class PoolBuildFailedError(StartupError):
    """The connection pool could not be constructed."""

    kind = "pool_build_failed"


class ConnectionFailedError(StartupError):
    """The initial round-trip query failed or returned an unexpected value."""

    kind = "connection_failed"


class ProbeFailedError(StartupError):
    """The pgvector capability probe failed."""

    kind = "probe_failed"


class VectorStoreError(RequestError):
    """Base exception for ranking query failures."""

    kind = "vector_store_error"
    public_message = "Search failed"


class PoolUnavailableError(VectorStoreError):
    """No pooled connection could be acquired in time."""

    kind = "pool_unavailable"


class QueryFailedError(VectorStoreError):
    """Query execution failed."""

    kind = "query_failed"


class DimensionMismatchError(VectorStoreError):
    """Query vector dimension does not match the stored embeddings."""

    kind = "dimension_mismatch"
