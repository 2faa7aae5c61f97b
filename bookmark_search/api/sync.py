"""
Sync API endpoints.
"""

from fastapi import APIRouter, Depends
import logging

from bookmark_search.api.dependencies import Services, get_services
from bookmark_search.api.responses import error_response

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/sync")
async def sync_all(services: Services = Depends(get_services)):
    """
    Index every bookmark in Karakeep.

    Waits for any running sync to finish first.

    Returns:
        Sync result with total, indexed, skipped and error counts.
    """
    try:
        result = await services.sync_service.sync_all()
    except Exception as e:
        logger.error(f"Sync error: {e}", exc_info=True)
        return error_response(e)
    return result.model_dump(by_alias=True)


@router.post("/sync/incremental")
async def sync_incremental(services: Services = Depends(get_services)):
    """
    Index bookmarks modified since the last sync.

    Behaves like a full sync when no sync has completed yet.

    Returns:
        Sync result with total, indexed, skipped and error counts.
    """
    try:
        result = await services.sync_service.sync_incremental()
    except Exception as e:
        logger.error(f"Incremental sync error: {e}", exc_info=True)
        return error_response(e)
    return result.model_dump(by_alias=True)


@router.post("/sync/bookmark/{bookmark_id}")
async def sync_bookmark(bookmark_id: str, services: Services = Depends(get_services)):
    """
    Index a single bookmark (for webhooks).

    Args:
        bookmark_id: Karakeep bookmark ID.

    Returns:
        Whether the bookmark was indexed or skipped for lack of content.
    """
    try:
        indexed = await services.sync_service.sync_bookmark(bookmark_id)
    except Exception as e:
        logger.error(f"Bookmark sync error: {e}")
        return error_response(e)
    return {"success": True, "bookmarkId": bookmark_id, "indexed": indexed}


@router.delete("/bookmark/{bookmark_id}")
async def delete_bookmark(bookmark_id: str, services: Services = Depends(get_services)):
    """
    Remove a bookmark from the index.

    Args:
        bookmark_id: Karakeep bookmark ID.
    """
    try:
        await services.sync_service.delete_bookmark(bookmark_id)
    except Exception as e:
        logger.error(f"Bookmark delete error: {e}")
        return error_response(e)
    return {"success": True, "bookmarkId": bookmark_id}
