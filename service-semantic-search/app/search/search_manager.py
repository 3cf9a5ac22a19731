"""Search manager for semantic catalog search.

Sequences one search request end to end:

1. Validate the request shape (non-blank text, limit policy, both-or-neither
   coordinates) before any model or database work
2. Embed the query text in the thread pool, so a slow encode never holds a
   database connection
3. Rank catalog records through ``CatalogRanker`` (semantic-only or
   geo-filtered, depending on the coordinates)

Nothing here retries. Failures are logged with full detail, counted, and
re-raised as ``RequestError`` for the HTTP layer to render opaquely.
"""

import math
import time
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import structlog
from fastapi.concurrency import run_in_threadpool

from libs.common.config import SearchConfig
from libs.common.errors import InvalidSearchRequestError, RequestError
from libs.common.logging import log_performance
from libs.vector_store.pool import check_pool_health
from libs.vector_store.ranking import CatalogRanker, RankedRecord

from ..encoders.embedding_generator import EmbeddingGenerator

logger = structlog.get_logger("search_service.search_manager")


@dataclass(frozen=True)
class SearchQuery:
    """A validated search request."""

    text: str
    limit: int
    geo: Optional[Tuple[float, float]] = None

    @property
    def mode(self) -> str:
        return "geo" if self.geo is not None else "semantic"


class SearchManager:
    """Orchestrates query embedding and catalog ranking.

    Parameters
    - config: ``SearchConfig`` providing limit and radius policy
    - embedding_generator: Shared ``EmbeddingGenerator``
    - ranker: ``CatalogRanker`` bound to the shared pool
    - metrics_collector: Optional ``MetricsCollector``
    """

    def __init__(
        self,
        config: SearchConfig,
        embedding_generator: EmbeddingGenerator,
        ranker: CatalogRanker,
        metrics_collector=None,
    ):
        self.config = config
        self.embedding_generator = embedding_generator
        self.ranker = ranker
        self.metrics_collector = metrics_collector

    def validate(
        self,
        query: Any,
        limit: Optional[int] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> SearchQuery:
        """Check request shape and apply limit policy.

        Raises
        - ``InvalidSearchRequestError`` with a client-safe message
        """
        if not isinstance(query, str) or not query.strip():
            raise InvalidSearchRequestError("Query text must not be empty")

        if limit is None:
            limit = self.config.search_default_limit
        elif isinstance(limit, bool) or not isinstance(limit, int):
            raise InvalidSearchRequestError("Limit must be a positive integer")
        elif limit < 1:
            raise InvalidSearchRequestError("Limit must be a positive integer")
        elif limit > self.config.search_max_limit:
            logger.info("Clamping search limit", requested=limit, max_limit=self.config.search_max_limit)
            limit = self.config.search_max_limit

        if (latitude is None) != (longitude is None):
            raise InvalidSearchRequestError("Latitude and longitude must be provided together")

        geo = None
        if latitude is not None and longitude is not None:
            latitude = _coordinate(latitude, "Latitude", 90.0)
            longitude = _coordinate(longitude, "Longitude", 180.0)
            geo = (latitude, longitude)

        return SearchQuery(text=query, limit=limit, geo=geo)

    async def search(
        self,
        query: Any,
        limit: Optional[int] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> List[RankedRecord]:
        """Run one search request.

        Returns
        - Ranked records; ``distance`` is set only for geo searches
        """
        start_time = time.time()
        mode = "unknown"

        try:
            request = self.validate(query, limit, latitude, longitude)
            mode = request.mode

            logger.info(
                "Search request received",
                query=request.text,
                limit=request.limit,
                mode=mode,
            )

            vector = await run_in_threadpool(self.embedding_generator.embed, request.text)
            results = await self.ranker.rank(vector, request.limit, request.geo)

        except RequestError as e:
            logger.error(
                "Search failed",
                kind=e.kind,
                detail=e.detail,
                mode=mode,
            )
            if self.metrics_collector is not None:
                self.metrics_collector.record_search_failure(e.kind)
            raise

        duration = time.time() - start_time
        if self.metrics_collector is not None:
            self.metrics_collector.record_search(mode=mode, duration=duration)
        log_performance("search", duration * 1000, mode=mode, results_count=len(results))

        return results

    async def health_check(self) -> bool:
        """Check the shared pool can serve a round trip."""
        return await check_pool_health(self.ranker.pool, self.config.pool_acquire_timeout)


def _coordinate(value: Any, label: str, bound: float) -> float:
    """Validate one coordinate against ``[-bound, bound]``."""
    if isinstance(value, bool):
        raise InvalidSearchRequestError(f"{label} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidSearchRequestError(f"{label} must be a number")
    if not math.isfinite(number) or not -bound <= number <= bound:
        raise InvalidSearchRequestError(f"{label} must be between {-bound:g} and {bound:g}")
    return number
