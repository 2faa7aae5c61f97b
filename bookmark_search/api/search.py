"""
Semantic search endpoint.
"""

from fastapi import APIRouter, Depends, Query
import logging
import time
from typing import Optional

from bookmark_search.api.dependencies import Services, get_services
from bookmark_search.api.responses import error_response

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/search")
async def search_bookmarks(
    q: Optional[str] = Query(default=None, description="Search query"),
    limit: int = Query(default=10, ge=1, le=100, description="Maximum number of results"),
    services: Services = Depends(get_services),
):
    """
    Find bookmarks semantically similar to a query.

    Query Parameters:
        - q: Free-text query (required)
        - limit: Maximum number of results (default: 10)

    Returns:
        Matching bookmarks with similarity scores, plus timing information.
    """
    if not q or not q.strip():
        return error_response("Query parameter 'q' is required", status_code=400)

    start = time.monotonic()

    try:
        results = await services.vector_store.search(q, limit)
    except Exception as e:
        logger.error(f"Search error: {e}")
        return error_response(e)

    return {
        "results": [result.model_dump(by_alias=True) for result in results],
        "query": q,
        "limit": limit,
        "took_ms": int((time.monotonic() - start) * 1000),
    }
