"""API routes for the search service."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
import structlog

from ..search.search_manager import SearchManager

logger = structlog.get_logger("search_service.api")

router = APIRouter()


class SearchRequest(BaseModel):
    """Request model for search endpoint.

    Field-level typing only; request shape rules (non-blank text, limit
    policy, coordinates given together) are enforced by ``SearchManager``.
    """
    query: str = Field(..., description="Natural-language search query")
    limit: Optional[int] = Field(None, description="Maximum number of results")
    latitude: Optional[float] = Field(None, description="Latitude of the search origin")
    longitude: Optional[float] = Field(None, description="Longitude of the search origin")


class SearchResult(BaseModel):
    """Search result model."""
    id: str = Field(..., description="Service record ID")
    name: str = Field(..., description="Service name")
    description: Optional[str] = Field(None, description="Service description")
    short_description: Optional[str] = Field(None, description="Short service description")
    status: str = Field(..., description="Service status")
    organization_name: Optional[str] = Field(None, description="Owning organization name")
    similarity: float = Field(..., description="1 - cosine distance to the query")
    distance: Optional[float] = Field(None, description="Distance in meters to the nearest location (geo searches only)")


def get_search_manager(request: Request) -> SearchManager:
    """Get search manager from application state."""
    return request.app.state.search_manager


@router.post("/search", response_model=List[SearchResult])
async def search(
    request: SearchRequest,
    search_manager: SearchManager = Depends(get_search_manager),
):
    """Rank catalog services against a natural-language query.

    Failures propagate as ``RequestError`` and are rendered by the
    application's exception handler.
    """
    results = await search_manager.search(
        query=request.query,
        limit=request.limit,
        latitude=request.latitude,
        longitude=request.longitude,
    )

    return [SearchResult(**record.to_dict()) for record in results]
