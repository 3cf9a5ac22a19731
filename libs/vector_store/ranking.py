"""Ranking queries over the service catalog.

Two structurally different queries rank catalog records against a query
vector. The mode is resolved once per call from the optional geographic
point and each mode owns its SQL template and parameter binding:

- ``SemanticOnly``: every record with an embedding, ordered by cosine
  distance (``<=>``), ``similarity = 1 - distance``
- ``GeoFiltered``: only records with at least one location within the radius
  (``ST_DWithin``, inclusive), carrying the minimum distance in meters and
  ordered by descending similarity (ascending cosine distance)

Query vectors are bound in pgvector's text form and cast with ``::vector``,
so no per‑connection codec is needed. Both modes order on the raw ``<=>``
distance; a stored zero vector yields a NaN distance, which sorts last.

Each query runs in a short transaction that raises ``hnsw.ef_search`` to the
requested limit, so an HNSW index scan can return a full page of rows.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import numpy as np
import structlog
from asyncpg import Pool
from pgvector import Vector

from .errors import (
    DimensionMismatchError,
    PoolUnavailableError,
    QueryFailedError,
    VectorStoreError,
)

logger = structlog.get_logger("vector_store.ranking")

METERS_PER_MILE = 1609.344
DEFAULT_GEO_RADIUS_METERS = 5 * METERS_PER_MILE

_DIMENSION_MISMATCH_MARKER = "different vector dimensions"

# pgvector defaults and bounds for hnsw.ef_search.
HNSW_DEFAULT_EF_SEARCH = 40
HNSW_MAX_EF_SEARCH = 1000

_SEMANTIC_SQL = """
    SELECT
        s.id::text AS id,
        s.name,
        s.description,
        s.short_description,
        s.status,
        o.name AS organization_name,
        (1 - (s.embedding <=> $1::vector))::float8 AS similarity,
        NULL::float8 AS distance
    FROM service s
    LEFT JOIN organization o ON o.id = s.organization_id
    WHERE s.embedding IS NOT NULL
    ORDER BY s.embedding <=> $1::vector
    LIMIT $2
"""

_GEO_FILTERED_SQL = """
    WITH origin AS (
        SELECT ST_SetSRID(ST_MakePoint($2, $3), 4326)::geography AS geog
    ),
    nearby AS (
        SELECT
            sal.service_id,
            MIN(ST_Distance(l.geom, origin.geog)) AS distance
        FROM service_at_location sal
        JOIN location l ON l.id = sal.location_id
        CROSS JOIN origin
        WHERE l.geom IS NOT NULL
          AND ST_DWithin(l.geom, origin.geog, $4)
        GROUP BY sal.service_id
    )
    SELECT
        s.id::text AS id,
        s.name,
        s.description,
        s.short_description,
        s.status,
        o.name AS organization_name,
        (1 - (s.embedding <=> $1::vector))::float8 AS similarity,
        nearby.distance::float8 AS distance
    FROM service s
    JOIN nearby ON nearby.service_id = s.id
    LEFT JOIN organization o ON o.id = s.organization_id
    WHERE s.embedding IS NOT NULL
    ORDER BY s.embedding <=> $1::vector
    LIMIT $5
"""


@dataclass(frozen=True)
class SemanticOnly:
    """Rank the whole catalog by vector similarity."""

    name = "semantic"
    sql = _SEMANTIC_SQL

    def parameters(self, vector_text: str, limit: int) -> Tuple[Any, ...]:
        return (vector_text, limit)


@dataclass(frozen=True)
class GeoFiltered:
    """Rank records near a point; proximity is a hard filter."""

    latitude: float
    longitude: float
    radius_meters: float = DEFAULT_GEO_RADIUS_METERS

    name = "geo"
    sql = _GEO_FILTERED_SQL

    def parameters(self, vector_text: str, limit: int) -> Tuple[Any, ...]:
        # PostGIS points are (longitude, latitude).
        return (vector_text, float(self.longitude), float(self.latitude), float(self.radius_meters), limit)


RankingMode = Union[SemanticOnly, GeoFiltered]


def resolve_ranking_mode(
    geo: Optional[Tuple[float, float]],
    radius_meters: float = DEFAULT_GEO_RADIUS_METERS,
) -> RankingMode:
    """Pick the ranking mode for an optional ``(latitude, longitude)`` pair."""
    if geo is None:
        return SemanticOnly()
    latitude, longitude = geo
    return GeoFiltered(latitude=latitude, longitude=longitude, radius_meters=radius_meters)


@dataclass(frozen=True)
class RankedRecord:
    """One ranked catalog record."""

    id: str
    name: str
    status: str
    similarity: float
    description: Optional[str] = None
    short_description: Optional[str] = None
    organization_name: Optional[str] = None
    distance: Optional[float] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "RankedRecord":
        distance = row["distance"]
        # Opposed vectors give 1 - distance < 0; scores are reported in [0, 1].
        similarity = min(1.0, max(0.0, float(row["similarity"])))
        return cls(
            id=str(row["id"]),
            name=row["name"],
            status=row["status"],
            similarity=similarity,
            description=row["description"],
            short_description=row["short_description"],
            organization_name=row["organization_name"],
            distance=float(distance) if distance is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def coerce_limit(limit: Any) -> int:
    """Coerce ``limit`` to a positive integer. No upper bound is applied."""
    try:
        value = int(limit)
    except (TypeError, ValueError, OverflowError):
        value = 1
    return max(1, value)


def ef_search_for(limit: int) -> int:
    """HNSW candidate list size able to return ``limit`` rows."""
    return min(HNSW_MAX_EF_SEARCH, max(HNSW_DEFAULT_EF_SEARCH, int(limit)))


class CatalogRanker:
    """Executes ranking queries on a shared, pre-validated pool.

    Parameters
    - pool: The process-wide ``asyncpg.Pool`` (borrowed, never closed here)
    - acquire_timeout: Seconds to wait for a pooled connection
    - geo_radius_meters: Radius used by the geo-filtered mode
    - vector_dimension: Expected query dimension; ``None`` leaves the check
      to the store
    """

    def __init__(
        self,
        pool: Pool,
        acquire_timeout: float = 15.0,
        geo_radius_meters: float = DEFAULT_GEO_RADIUS_METERS,
        vector_dimension: Optional[int] = None,
    ):
        self.pool = pool
        self.acquire_timeout = acquire_timeout
        self.geo_radius_meters = geo_radius_meters
        self.vector_dimension = vector_dimension

    async def rank(
        self,
        vector: Iterable[float],
        limit: int,
        geo: Optional[Tuple[float, float]] = None,
    ) -> List[RankedRecord]:
        """Rank catalog records against ``vector``.

        Parameters
        - vector: Unit-length query embedding
        - limit: Maximum number of rows (coerced to a positive integer)
        - geo: Optional ``(latitude, longitude)``; selects the geo-filtered mode

        Returns
        - Records in ranking order
        """
        mode = resolve_ranking_mode(geo, self.geo_radius_meters)
        vector_text = self._to_vector_text(vector)
        args = mode.parameters(vector_text, coerce_limit(limit))

        rows = await self._fetch(mode, args, ef_search_for(args[-1]))
        results = [RankedRecord.from_row(row) for row in rows]

        logger.info(
            "Ranking query completed",
            mode=mode.name,
            limit=args[-1],
            results_count=len(results),
        )
        return results

    async def _fetch(
        self,
        mode: RankingMode,
        args: Tuple[Any, ...],
        ef_search: int = HNSW_DEFAULT_EF_SEARCH,
    ) -> List[Mapping[str, Any]]:
        """Run one query on a checked-out connection and map failures.

        Anything raised while acquiring (timeouts, refused or rejected
        connections) is ``PoolUnavailableError``; anything raised once the
        connection is held is a query failure. The connection goes back to
        the pool on every exit path.
        """
        try:
            conn = await self.pool.acquire(timeout=self.acquire_timeout)
        except Exception as e:
            logger.error("Connection pool unavailable", mode=mode.name, error=str(e))
            raise PoolUnavailableError(f"Could not acquire a connection: {e}") from e

        try:
            async with conn.transaction():
                # SET cannot take bind parameters; ef_search is a bounded int.
                await conn.execute(f"SET LOCAL hnsw.ef_search = {int(ef_search)}")
                return await conn.fetch(mode.sql, *args)
        except Exception as e:
            raise self._query_error(mode, e) from e
        finally:
            await self.pool.release(conn)

    @staticmethod
    def _query_error(mode: RankingMode, error: Exception) -> VectorStoreError:
        if _DIMENSION_MISMATCH_MARKER in str(error):
            logger.error("Vector dimension mismatch", mode=mode.name, error=str(error))
            return DimensionMismatchError(str(error))
        logger.error("Query execution failed", mode=mode.name, error=str(error))
        return QueryFailedError(f"Query failed: {error}")

    def _to_vector_text(self, vector: Iterable[float]) -> str:
        """Validate the query vector and render it in pgvector text form."""
        array = np.asarray(vector, dtype=np.float32)
        if array.ndim != 1 or array.shape[0] == 0:
            raise DimensionMismatchError(f"Query vector must be one-dimensional and non-empty, got shape {array.shape}")

        if self.vector_dimension is not None and array.shape[0] != self.vector_dimension:
            raise DimensionMismatchError(
                f"Expected vector dimension {self.vector_dimension}, got {array.shape[0]}"
            )
        if not np.isfinite(array).all():
            raise QueryFailedError("Query vector contains non-finite values")
        return Vector(array).to_text()


def create_catalog_ranker(pool: Pool, **kwargs: Any) -> CatalogRanker:
    """Create a catalog ranker bound to ``pool``."""
    return CatalogRanker(pool, **kwargs)


async def rank(
    pool: Pool,
    vector: Iterable[float],
    limit: int,
    geo: Optional[Tuple[float, float]] = None,
    **kwargs: Any,
) -> List[RankedRecord]:
    """One-shot ranking with an ad-hoc ``CatalogRanker``."""
    return await CatalogRanker(pool, **kwargs).rank(vector, limit, geo)
