"""Connection pool lifecycle for the catalog store.

The pool is built once at process start and validated before any request
handler can use it:

1. Construct an asyncpg pool with bounded size and idle eviction
2. Round‑trip ``SELECT 1`` and expect the literal ``1``
3. Probe that the pgvector ``vector`` type resolves

Any failure raises a ``StartupError`` subclass and closes whatever was built,
so callers either get a validated pool or nothing. There are no retries here;
restarting the process is the operator's job.
"""

from dataclasses import dataclass, field
from typing import Any, Dict

import asyncpg
import structlog
from asyncpg import Pool

from .errors import ConnectionFailedError, PoolBuildFailedError, ProbeFailedError

logger = structlog.get_logger("vector_store.pool")

VECTOR_TYPE_PROBE = "SELECT 'vector'::regtype::text"


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection and pool parameters.

    Parameters
    - host, port, database, user, password: PostgreSQL connection target
    - application_name: Reported to the server for diagnostics
    - connect_timeout: Seconds allowed to open a new connection
    - max_size: Upper bound on pooled connections
    - min_idle: Connections opened eagerly and kept around
    - idle_timeout: Seconds before an inactive connection is closed
    - acquire_timeout: Seconds a caller may wait for a free connection
    """

    host: str = "localhost"
    port: int = 5432
    database: str = "dataplatform"
    user: str = "postgres"
    password: str = field(default="", repr=False)
    application_name: str = "semantic-search-service"
    connect_timeout: float = 10.0
    max_size: int = 30
    min_idle: int = 2
    idle_timeout: float = 60.0
    acquire_timeout: float = 15.0

    def describe(self) -> Dict[str, Any]:
        """Loggable view of the settings; the password is reduced to presence."""
        return {
            "host": self.host,
            "port": self.port,
            "database": self.database,
            "user": self.user,
            "password": "[set]" if self.password else "[empty]",
            "application_name": self.application_name,
        }


async def initialize_pool(settings: DatabaseSettings) -> Pool:
    """Build and validate the shared connection pool.

    Returns
    - A live ``asyncpg.Pool`` that passed both startup probes

    Raises
    - ``PoolBuildFailedError`` if the pool cannot be constructed
    - ``ConnectionFailedError`` if the ``SELECT 1`` round trip fails
    - ``ProbeFailedError`` if the pgvector type is not available
    """
    logger.info("Database connection parameters", **settings.describe())
    logger.info(
        "Building connection pool",
        max_size=settings.max_size,
        min_idle=settings.min_idle,
        idle_timeout=settings.idle_timeout,
        acquire_timeout=settings.acquire_timeout,
    )

    try:
        pool = await asyncpg.create_pool(
            host=settings.host,
            port=settings.port,
            database=settings.database,
            user=settings.user,
            password=settings.password or None,
            timeout=settings.connect_timeout,
            min_size=min(settings.min_idle, settings.max_size),
            max_size=settings.max_size,
            max_inactive_connection_lifetime=settings.idle_timeout,
            server_settings={"application_name": settings.application_name},
        )
    except Exception as e:
        logger.error("Failed to build connection pool", error=str(e))
        raise PoolBuildFailedError(f"Failed to build database connection pool: {e}") from e

    try:
        await _check_round_trip(pool, settings.acquire_timeout)
        await _check_vector_extension(pool, settings.acquire_timeout)
    except Exception:
        await close_pool(pool)
        raise

    logger.info("Database connection pool initialized successfully")
    return pool


async def _check_round_trip(pool: Pool, acquire_timeout: float) -> None:
    """Fail fast unless ``SELECT 1`` returns exactly 1."""
    logger.info("Testing database connection")
    try:
        async with pool.acquire(timeout=acquire_timeout) as conn:
            result = await conn.fetchval("SELECT 1")
    except Exception as e:
        logger.error("Test query failed", error=str(e))
        raise ConnectionFailedError(f"Failed to execute test query: {e}") from e

    if result != 1:
        logger.error("Database connection test returned unexpected value", value=result)
        raise ConnectionFailedError(f"Database connection test returned {result!r}")

    logger.info("Database connection test successful")


async def _check_vector_extension(pool: Pool, acquire_timeout: float) -> None:
    """Fail fast unless the pgvector type resolves."""
    try:
        async with pool.acquire(timeout=acquire_timeout) as conn:
            resolved = await conn.fetchval(VECTOR_TYPE_PROBE)
    except Exception as e:
        logger.error("pgvector extension test failed", error=str(e))
        raise ProbeFailedError(f"pgvector extension is not available: {e}") from e

    if not resolved:
        raise ProbeFailedError("pgvector extension is not available: type did not resolve")

    logger.info("pgvector extension is available", type=resolved)


async def check_pool_health(pool: Pool, acquire_timeout: float = 5.0) -> bool:
    """Check the pool can serve a round trip. Never raises."""
    try:
        async with pool.acquire(timeout=acquire_timeout) as conn:
            return await conn.fetchval("SELECT 1") == 1
    except Exception as e:
        logger.error("Health check failed", error=str(e))
        return False


async def close_pool(pool: Pool) -> None:
    """Close the connection pool."""
    try:
        await pool.close()
    except Exception as e:
        logger.warning("Graceful pool close failed, terminating", error=str(e))
        pool.terminate()
        return
    logger.info("Closed connection pool")
