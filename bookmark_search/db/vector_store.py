"""
Vector database interface using Qdrant.

Owns the bookmark collection's lifecycle (lazy creation, dimension binding)
and exposes upsert, delete, search, count and clear.
"""

import asyncio
import logging
import math
from typing import Any, Optional

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    PointIdsList,
    PointStruct,
    VectorParams,
)

from bookmark_search.config.settings import Settings
from bookmark_search.errors import CollectionDimensionError
from bookmark_search.models.document import SearchResult
from bookmark_search.services.embeddings import EmbeddingService
from bookmark_search.services.identifiers import to_vector_id


logger = logging.getLogger(__name__)


class VectorStore:
    """
    Vector database interface using Qdrant.

    The collection is created on first use with the embedding service's
    dimensionality and cosine distance. The dimension is never migrated:
    switching embedding models requires clear().
    """

    def __init__(
        self,
        client: AsyncQdrantClient,
        collection_name: str,
        embedding_service: EmbeddingService,
        distance: Distance = Distance.COSINE,
    ):
        """
        Initialize vector store.

        Args:
            client: Qdrant client
            collection_name: Name of the bookmark collection
            embedding_service: Service used to embed search queries; its
                dimensionality fixes the collection's vector size
            distance: Distance metric (COSINE, EUCLID, DOT)
        """
        self.client = client
        self.collection_name = collection_name
        self.embedding_service = embedding_service
        self.distance = distance
        self._initialized = False
        self._init_lock = asyncio.Lock()

        logger.info(f"Initialized VectorStore for collection {collection_name}")

    @classmethod
    def from_settings(cls, settings: Settings, embedding_service: EmbeddingService) -> "VectorStore":
        """Create a vector store connected to the configured Qdrant instance."""
        if settings.qdrant_url == ":memory:":
            client = AsyncQdrantClient(location=":memory:")
        else:
            client = AsyncQdrantClient(
                url=settings.qdrant_url,
                api_key=settings.qdrant_api_key,
                timeout=math.ceil(settings.request_timeout_seconds),
            )
        return cls(client, settings.qdrant_collection, embedding_service)

    @property
    def embedding_dim(self) -> int:
        """Vector size of the collection."""
        return self.embedding_service.get_embedding_dim()

    @property
    def initialized(self) -> bool:
        """Whether the collection has been checked or created in this process."""
        return self._initialized

    async def ensure_collection(self):
        """
        Create the collection if it doesn't exist.

        Runs once per process (and again after clear()).

        Raises:
            CollectionDimensionError: If an existing collection has a different
                vector size than the embedding service
        """
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return

            if await self.client.collection_exists(self.collection_name):
                self._check_dimension(await self.client.get_collection(self.collection_name))
            else:
                logger.info(f"Creating Qdrant collection: {self.collection_name}")
                await self.client.create_collection(
                    collection_name=self.collection_name,
                    vectors_config=VectorParams(
                        size=self.embedding_dim,
                        distance=self.distance,
                    ),
                )

            self._initialized = True
            logger.info(f"Qdrant collection ready: {self.collection_name}")

    def _check_dimension(self, info: Any):
        """Compare an existing collection's vector size with the embedding size."""
        vectors = info.config.params.vectors
        size = getattr(vectors, "size", None)
        if size != self.embedding_dim:
            raise CollectionDimensionError(self.collection_name, self.embedding_dim, size)

    async def upsert(self, points: list[PointStruct]):
        """
        Write points, overwriting any existing point with the same ID.

        Waits until Qdrant acknowledges the write.

        Args:
            points: Points with vectors and payloads
        """
        if not points:
            return

        await self.ensure_collection()
        await self.client.upsert(
            collection_name=self.collection_name,
            points=points,
            wait=True,
        )
        logger.debug(f"Upserted {len(points)} vectors")

    async def delete(self, bookmark_ids: list[str]):
        """
        Delete the vectors of the given bookmarks.

        Args:
            bookmark_ids: Karakeep bookmark IDs
        """
        if not bookmark_ids:
            return

        await self.ensure_collection()
        await self.client.delete(
            collection_name=self.collection_name,
            points_selector=PointIdsList(points=[to_vector_id(bid) for bid in bookmark_ids]),
            wait=True,
        )
        logger.info(f"Deleted {len(bookmark_ids)} vectors")

    async def search(self, query: str, limit: int = 10) -> list[SearchResult]:
        """
        Search for bookmarks similar to a text query.

        Args:
            query: Query text, embedded with the indexing model
            limit: Maximum number of results

        Returns:
            List of search results, best match first
        """
        await self.ensure_collection()

        query_vector = await self.embedding_service.embed_text(query)
        results = (await self.client.query_points(
            collection_name=self.collection_name,
            query=query_vector,
            limit=limit,
            with_payload=True,
        )).points

        search_results = []
        for result in results:
            payload = result.payload or {}
            search_results.append(
                SearchResult(
                    point_id=str(result.id),
                    bookmark_id=payload.get("bookmarkId"),
                    score=result.score,
                    title=payload.get("title"),
                    url=payload.get("url"),
                    tags=payload.get("tags") or [],
                    created_at=payload.get("createdAt"),
                )
            )

        logger.info(f"Search returned {len(search_results)} results")
        return search_results

    async def count(self) -> int:
        """Get the number of vectors in the collection."""
        await self.ensure_collection()
        info = await self.client.get_collection(self.collection_name)
        return info.points_count or 0

    async def clear(self):
        """
        Delete and recreate the collection, losing all vectors.

        Intended for administrative resets, e.g. after changing embedding models.
        """
        async with self._init_lock:
            if await self.client.collection_exists(self.collection_name):
                await self.client.delete_collection(self.collection_name)
            self._initialized = False

        await self.ensure_collection()
        logger.info("Cleared vector DB")

    async def get_collection_info(self) -> dict:
        """
        Get information about the bookmark collection.

        Returns:
            Dictionary with collection statistics
        """
        await self.ensure_collection()
        info = await self.client.get_collection(self.collection_name)

        return {
            "name": self.collection_name,
            "points_count": info.points_count or 0,
            "embedding_dim": self.embedding_dim,
            "distance": self.distance.value if hasattr(self.distance, "value") else str(self.distance),
        }

    async def close(self):
        """Close the Qdrant client connection."""
        if self.client is not None:
            try:
                await self.client.close()
                logger.debug("Closed VectorStore client")
            except Exception as e:
                logger.warning(f"Error closing VectorStore client: {e}")

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit - ensures cleanup."""
        await self.close()
        return False
