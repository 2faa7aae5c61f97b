"""
Batch embedding and upsert pipeline.

Embeds documents in bounded batches and writes each batch to the vector store
before starting the next one. Batches are not atomic as a whole: if batch N
fails, batches before it stay committed and the rest are not attempted.
"""

import logging

from qdrant_client.models import PointStruct

from bookmark_search.db.vector_store import VectorStore
from bookmark_search.errors import EmbeddingError
from bookmark_search.models.document import IndexableDocument
from bookmark_search.services.embeddings import EmbeddingService
from bookmark_search.services.identifiers import to_vector_id

logger = logging.getLogger(__name__)

BATCH_SIZE = 100


class IndexingPipeline:
    """Embeds documents and stores them in the vector store."""

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: VectorStore,
        batch_size: int = BATCH_SIZE,
    ):
        """
        Initialize indexing pipeline.

        Args:
            embedding_service: Service for generating embeddings.
            vector_store: Vector database for storing embeddings.
            batch_size: Maximum documents per embedding call and upsert.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        self.embedding_service = embedding_service
        self.vector_store = vector_store
        self.batch_size = batch_size

    def _build_points(
        self,
        documents: list[IndexableDocument],
        embeddings: list[list[float]],
    ) -> list[PointStruct]:
        """Pair each document with its embedding."""
        return [
            PointStruct(
                id=to_vector_id(document.id),
                vector=embedding,
                payload=document.metadata.to_payload(document.id),
            )
            for document, embedding in zip(documents, embeddings)
        ]

    async def index(self, documents: list[IndexableDocument]) -> int:
        """
        Embed and store documents.

        Args:
            documents: Documents to index

        Returns:
            Number of points written

        Raises:
            Exception: Any embedding or vector store failure, after which the
                remaining batches are not processed
        """
        if not documents:
            return 0

        await self.vector_store.ensure_collection()

        total_batches = (len(documents) + self.batch_size - 1) // self.batch_size
        written = 0

        for batch_number, start in enumerate(range(0, len(documents), self.batch_size), start=1):
            batch = documents[start:start + self.batch_size]

            logger.debug(f"Generating embeddings for batch {batch_number}/{total_batches}")
            embeddings = await self.embedding_service.embed_batch([doc.text for doc in batch])
            if len(embeddings) != len(batch):
                raise EmbeddingError(
                    f"Expected {len(batch)} embeddings for batch {batch_number}, got {len(embeddings)}"
                )

            points = self._build_points(batch, embeddings)
            await self.vector_store.upsert(points)
            written += len(points)

        logger.info(f"Upserted {written} bookmarks to vector DB")
        return written
