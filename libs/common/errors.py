"""Error taxonomy for the semantic search service.

Two disjoint hierarchies keep the failure domains apart:

- ``StartupError``: fatal problems found while the process boots (pool build,
  connectivity probes, model artifacts). The application lifespan lets these
  propagate so the server exits and the supervisor can restart it.
- ``RequestError``: problems scoped to a single search request. They are
  logged with full detail and rendered to clients as an opaque message.

Every error carries a stable ``kind`` string (used for logs and metric
labels) and a free‑form ``detail``.
"""

from typing import Optional


class CatalogSearchError(Exception):
    """Base exception for the service."""

    kind: str = "error"

    def __init__(self, detail: str = "", *, kind: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        if kind is not None:
            self.kind = kind

    def __str__(self) -> str:
        return f"{self.kind}: {self.detail}" if self.detail else self.kind


class StartupError(CatalogSearchError):
    """Fatal initialization failure; the service must not start."""

    kind = "startup_failed"


class RequestError(CatalogSearchError):
    """Recoverable failure bounded to one request.

    ``status_code`` and ``public_message`` describe what the HTTP layer may
    reveal. The detail is for logs only.
    """

    kind = "request_failed"
    status_code: int = 500
    public_message: str = "Search failed"


class InvalidSearchRequestError(RequestError):
    """The request shape is invalid (blank text, partial coordinates, ...)."""

    kind = "invalid_request"
    status_code = 400

    @property
    def public_message(self) -> str:  # type: ignore[override]
        # Validation messages are built from request fields only.
        return self.detail or "Invalid search request"
