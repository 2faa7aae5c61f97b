"""
Exception types shared across the service.
"""

from typing import Optional


class BookmarkSearchError(Exception):
    """Base class for errors raised by the bookmark search service."""


class KarakeepAPIError(BookmarkSearchError):
    """Raised when the Karakeep API answers with a non-success status."""

    def __init__(self, status: int, body: str = "", url: Optional[str] = None):
        self.status = status
        self.body = body
        self.url = url
        super().__init__(f"Karakeep API error: {status} {body}".strip())


class EmbeddingError(BookmarkSearchError):
    """Raised when an embedding backend returns an unusable response."""


class EmbeddingConfigurationError(BookmarkSearchError):
    """Raised when no embedding backend can be built from the configuration."""


class CollectionDimensionError(BookmarkSearchError):
    """Raised when the vector collection does not match the embedding dimension."""

    def __init__(self, collection_name: str, expected: int, actual: Optional[int]):
        self.collection_name = collection_name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Collection '{collection_name}' has vector size {actual}, but the "
            f"active embedding model produces {expected} dimensions. "
            f"Recreate the collection (POST /clear) after changing embedding models."
        )
