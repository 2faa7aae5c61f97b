"""
Health, statistics and maintenance endpoints.
"""

from fastapi import APIRouter, Depends
import logging

from bookmark_search.api.dependencies import Services, get_services
from bookmark_search.api.responses import error_response

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(services: Services = Depends(get_services)):
    """Health check endpoint, verifying the vector store is reachable."""
    try:
        count = await services.vector_store.count()
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return error_response(e, status="error")

    return {
        "status": "ok",
        "vectorCount": count,
        "karakeepUrl": services.settings.karakeep_url,
    }


@router.get("/stats")
async def get_stats(services: Services = Depends(get_services)):
    """
    Get index statistics and sync state.

    Returns:
        Vector count, sync interval and details of the last sync.
    """
    try:
        count = await services.vector_store.count()
    except Exception as e:
        logger.error(f"Stats error: {e}")
        return error_response(e)

    state = services.sync_service.state
    return {
        "vectorCount": count,
        "syncInterval": services.settings.sync_interval_minutes,
        "collection": services.vector_store.collection_name,
        "embeddingDimensions": services.vector_store.embedding_dim,
        "lastSyncAt": state.last_synced_at.isoformat() if state.last_synced_at else None,
        "lastMode": state.last_mode,
        "lastResult": state.last_result.model_dump(by_alias=True) if state.last_result else None,
        "syncing": services.sync_service.is_syncing,
    }


@router.post("/clear")
async def clear_index(services: Services = Depends(get_services)):
    """
    Delete all vectors by recreating the collection.

    Irreversible. Required after switching to an embedding model with a
    different dimensionality.
    """
    try:
        await services.vector_store.clear()
    except Exception as e:
        logger.error(f"Clear error: {e}")
        return error_response(e)
    return {"success": True}


@router.get("/version")
async def get_version(services: Services = Depends(get_services)):
    """Get service version."""
    return {
        "api_version": services.settings.version,
        "service": "Karakeep Semantic Search"
    }
