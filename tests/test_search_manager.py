"""Tests for the search orchestrator."""

import numpy as np
import pytest

from app.encoders.embedding_generator import EmbeddingGenerator
from app.encoders.errors import EmptyInputError
from app.search.search_manager import SearchManager
from libs.common.errors import InvalidSearchRequestError
from libs.vector_store.errors import PoolUnavailableError
from libs.vector_store.ranking import RankedRecord
from tests.fakes import FakeConnection, FakeEncoder, FakePool, FakeRanker, service_row

HIDDEN = [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]]


def make_manager(search_config, ranker=None, encoder=None, metrics_collector=None):
    encoder = encoder or FakeEncoder(HIDDEN)
    ranker = ranker or FakeRanker(results=[RankedRecord.from_row(service_row())])
    return SearchManager(search_config, EmbeddingGenerator(encoder), ranker, metrics_collector)


@pytest.mark.asyncio
async def test_semantic_search(search_config):
    ranker = FakeRanker(results=[RankedRecord.from_row(service_row("a"))])
    manager = make_manager(search_config, ranker)

    results = await manager.search("food pantry")

    assert [record.id for record in results] == ["a"]
    vector, limit, geo = ranker.calls[0]
    assert geo is None
    assert limit == 10
    assert vector.dtype == np.float32
    assert abs(float(np.linalg.norm(vector)) - 1.0) < 1e-5


@pytest.mark.asyncio
async def test_geo_search_passes_coordinates(search_config):
    ranker = FakeRanker()
    manager = make_manager(search_config, ranker)

    await manager.search("shelter", limit=5, latitude=40.7128, longitude=-74.006)

    _, limit, geo = ranker.calls[0]
    assert limit == 5
    assert geo == (40.7128, -74.006)


@pytest.mark.asyncio
@pytest.mark.parametrize("latitude, longitude", [(40.7, None), (None, -74.0)])
async def test_partial_coordinates_rejected_before_ranking(search_config, latitude, longitude):
    ranker = FakeRanker()
    encoder = FakeEncoder(HIDDEN)
    manager = make_manager(search_config, ranker, encoder)

    with pytest.raises(InvalidSearchRequestError):
        await manager.search("shelter", latitude=latitude, longitude=longitude)

    assert ranker.calls == []
    assert encoder.tokenized == []


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["", "   ", None])
async def test_blank_query_rejected_before_embedding(search_config, query):
    encoder = FakeEncoder(HIDDEN)
    manager = make_manager(search_config, encoder=encoder)

    with pytest.raises(InvalidSearchRequestError):
        await manager.search(query)

    assert encoder.tokenized == []


def test_limit_policy(search_config):
    manager = make_manager(search_config)
    assert manager.validate("q").limit == 10
    assert manager.validate("q", limit=3).limit == 3
    assert manager.validate("q", limit=500).limit == 50

    for bad in (0, -1, True, 2.5):
        with pytest.raises(InvalidSearchRequestError):
            manager.validate("q", limit=bad)


@pytest.mark.parametrize(
    "latitude, longitude",
    [(91.0, 0.0), (-90.5, 0.0), (0.0, 181.0), (float("nan"), 0.0), ("north", 0.0)],
)
def test_coordinate_range(search_config, latitude, longitude):
    manager = make_manager(search_config)
    with pytest.raises(InvalidSearchRequestError):
        manager.validate("q", latitude=latitude, longitude=longitude)


def test_search_query_mode(search_config):
    manager = make_manager(search_config)
    assert manager.validate("q").mode == "semantic"
    assert manager.validate("q", latitude=0.0, longitude=0.0).mode == "geo"


@pytest.mark.asyncio
async def test_embedding_failure_propagates(search_config, metrics_collector):
    ranker = FakeRanker()
    encoder = FakeEncoder(HIDDEN, attention_mask=[0, 0])
    manager = make_manager(search_config, ranker, encoder, metrics_collector)

    with pytest.raises(EmptyInputError):
        await manager.search("???")

    assert ranker.calls == []
    assert 'search_failures_total{kind="empty_input"} 1.0' in metrics_collector.get_metrics()


@pytest.mark.asyncio
async def test_store_failure_propagates(search_config, metrics_collector):
    ranker = FakeRanker(error=PoolUnavailableError("timed out"))
    manager = make_manager(search_config, ranker, metrics_collector=metrics_collector)

    with pytest.raises(PoolUnavailableError):
        await manager.search("legal aid", latitude=1.0, longitude=2.0)

    assert 'search_failures_total{kind="pool_unavailable"} 1.0' in metrics_collector.get_metrics()


@pytest.mark.asyncio
async def test_success_records_metrics(search_config, metrics_collector):
    manager = make_manager(search_config, metrics_collector=metrics_collector)
    await manager.search("legal aid", latitude=1.0, longitude=2.0)
    assert 'search_requests_total{mode="geo"} 1.0' in metrics_collector.get_metrics()


@pytest.mark.asyncio
async def test_health_check_uses_ranker_pool(search_config):
    healthy = make_manager(search_config, FakeRanker(pool=FakePool()))
    assert await healthy.health_check() is True

    broken = make_manager(search_config, FakeRanker(pool=FakePool(FakeConnection(fetchval={"SELECT 1": None}))))
    assert await broken.health_check() is False
