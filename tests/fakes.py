"""In-memory stand-ins for the pool, connections, encoder, and ranker."""

from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from libs.vector_store.pool import VECTOR_TYPE_PROBE


class FakeConnection:
    """Scripted connection. ``fetchval`` answers by SQL text."""

    def __init__(
        self,
        fetchval: Optional[Dict[str, Any]] = None,
        rows: Optional[List[Dict[str, Any]]] = None,
        fetch_error: Optional[Exception] = None,
    ):
        self.fetchval_results = {"SELECT 1": 1, VECTOR_TYPE_PROBE: "vector"}
        self.fetchval_results.update(fetchval or {})
        self.rows = rows or []
        self.fetch_error = fetch_error
        self.fetchval_calls: List[str] = []
        self.fetch_calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.executed: List[str] = []
        self.transactions = 0
        self.rolled_back = 0

    def transaction(self) -> "_Transaction":
        return _Transaction(self)

    async def execute(self, sql: str, *args: Any) -> str:
        self.executed.append(sql)
        return "SET"

    async def fetchval(self, sql: str, *args: Any) -> Any:
        self.fetchval_calls.append(sql)
        result = self.fetchval_results.get(sql)
        if isinstance(result, Exception):
            raise result
        return result

    async def fetch(self, sql: str, *args: Any) -> List[Dict[str, Any]]:
        self.fetch_calls.append((sql, args))
        if self.fetch_error is not None:
            raise self.fetch_error
        return self.rows


class _Transaction:
    def __init__(self, connection: FakeConnection):
        self.connection = connection

    async def __aenter__(self) -> "_Transaction":
        self.connection.transactions += 1
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.connection.rolled_back += 1
        return False


class _Acquire:
    def __init__(self, pool: "FakePool", timeout: Optional[float]):
        self.pool = pool
        self.timeout = timeout

    async def __aenter__(self) -> FakeConnection:
        self.pool.acquire_timeouts.append(self.timeout)
        if self.pool.acquire_error is not None:
            raise self.pool.acquire_error
        self.pool.acquired += 1
        return self.pool.connection

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self.pool.released += 1
        return False

    def __await__(self):
        return self.__aenter__().__await__()


class FakePool:
    """Pool handing out a single scripted connection and counting checkouts."""

    def __init__(
        self,
        connection: Optional[FakeConnection] = None,
        acquire_error: Optional[Exception] = None,
        close_error: Optional[Exception] = None,
    ):
        self.connection = connection or FakeConnection()
        self.acquire_error = acquire_error
        self.close_error = close_error
        self.acquire_timeouts: List[Optional[float]] = []
        self.acquired = 0
        self.released = 0
        self.closed = False
        self.terminated = False

    def acquire(self, timeout: Optional[float] = None) -> _Acquire:
        return _Acquire(self, timeout)

    async def release(self, connection: FakeConnection) -> None:
        self.released += 1

    async def close(self) -> None:
        if self.close_error is not None:
            raise self.close_error
        self.closed = True

    def terminate(self) -> None:
        self.terminated = True


class FakeEncoder:
    """Encoder returning fixed token ids and hidden states."""

    def __init__(
        self,
        hidden: Sequence[Sequence[float]],
        attention_mask: Optional[Sequence[int]] = None,
        input_ids: Optional[Sequence[int]] = None,
        tokenize_error: Optional[Exception] = None,
        forward_error: Optional[Exception] = None,
        name: str = "fake-encoder",
    ):
        self.hidden = np.asarray(hidden, dtype=np.float32)
        self.attention_mask = list(attention_mask) if attention_mask is not None else [1] * len(self.hidden)
        self.input_ids = list(input_ids) if input_ids is not None else list(range(len(self.attention_mask)))
        self.tokenize_error = tokenize_error
        self.forward_error = forward_error
        self.name = name
        self.tokenized: List[str] = []

    @property
    def dimension(self) -> int:
        return int(self.hidden.shape[1])

    def tokenize(self, text: str) -> Tuple[List[int], List[int]]:
        self.tokenized.append(text)
        if self.tokenize_error is not None:
            raise self.tokenize_error
        return list(self.input_ids), list(self.attention_mask)

    def forward(self, input_ids: Sequence[int], attention_mask: Sequence[int]) -> np.ndarray:
        if self.forward_error is not None:
            raise self.forward_error
        return self.hidden


class FakeRanker:
    """Records ``rank`` calls and returns canned results or raises."""

    def __init__(self, results=None, error: Optional[Exception] = None, pool: Optional[FakePool] = None):
        self.results = results or []
        self.error = error
        self.pool = pool or FakePool()
        self.calls: List[Tuple[np.ndarray, int, Optional[Tuple[float, float]]]] = []

    async def rank(self, vector, limit, geo=None):
        self.calls.append((vector, limit, geo))
        if self.error is not None:
            raise self.error
        return list(self.results)


def service_row(
    id: str = "svc-1",
    name: str = "Food Pantry",
    similarity: float = 0.9,
    distance: Optional[float] = None,
    organization_name: Optional[str] = "Community Org",
) -> Dict[str, Any]:
    """A row shaped like the ranking query output."""
    return {
        "id": id,
        "name": name,
        "description": f"{name} description",
        "short_description": None,
        "status": "active",
        "organization_name": organization_name,
        "similarity": similarity,
        "distance": distance,
    }
