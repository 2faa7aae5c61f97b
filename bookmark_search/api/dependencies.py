"""
Process-wide service instances shared by the API routes.

The sync cursor and the collection initialization flag must be shared by every
request and by the background sync, so services are built once and cached.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from bookmark_search.config.settings import Settings, get_settings
from bookmark_search.db.vector_store import VectorStore
from bookmark_search.karakeep.client import KarakeepClient
from bookmark_search.services.embeddings import EmbeddingService, create_embedding_service
from bookmark_search.services.indexing import IndexingPipeline
from bookmark_search.services.sync import SyncService

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Wired-up service graph."""

    settings: Settings
    karakeep: KarakeepClient
    embedding_service: EmbeddingService
    vector_store: VectorStore
    pipeline: IndexingPipeline
    sync_service: SyncService

    async def close(self):
        """Release all network resources."""
        await self.karakeep.close()
        await self.embedding_service.close()
        await self.vector_store.close()


def build_services(settings: Settings) -> Services:
    """Create the service graph from settings."""
    embedding_service = create_embedding_service(settings)
    vector_store = VectorStore.from_settings(settings, embedding_service)
    karakeep = KarakeepClient(
        settings.karakeep_url,
        settings.karakeep_api_key,
        timeout=settings.request_timeout_seconds,
    )
    pipeline = IndexingPipeline(embedding_service, vector_store)
    sync_service = SyncService(karakeep, pipeline, vector_store)

    return Services(
        settings=settings,
        karakeep=karakeep,
        embedding_service=embedding_service,
        vector_store=vector_store,
        pipeline=pipeline,
        sync_service=sync_service,
    )


# Global services instance
_services: Optional[Services] = None


def get_services() -> Services:
    """
    Get the global services instance.

    Creates and caches the services on first call.
    """
    global _services
    if _services is None:
        _services = build_services(get_settings())
        logger.info("Services initialized")
    return _services


async def reset_services():
    """Close and drop the global services instance."""
    global _services
    if _services is not None:
        await _services.close()
    _services = None
