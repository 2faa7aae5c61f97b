"""
Data models for indexable documents and search hits.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BookmarkMetadata(BaseModel):
    """Metadata stored alongside a bookmark's vector."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: Optional[str] = Field(None, description="Bookmark title")
    url: Optional[str] = Field(None, description="Bookmarked URL")
    tags: list[str] = Field(default_factory=list, description="Tag names in Karakeep order")
    created_at: str = Field(..., description="Creation timestamp, copied verbatim")

    def to_payload(self, bookmark_id: str) -> dict:
        """Build the vector store payload, including the Karakeep bookmark ID."""
        payload = self.model_dump(by_alias=True)
        payload["bookmarkId"] = bookmark_id
        return payload


class IndexableDocument(BaseModel):
    """Normalized text of one bookmark, ready to be embedded."""

    id: str = Field(..., description="Bookmark ID")
    text: str = Field(..., description="Normalized text")
    metadata: BookmarkMetadata = Field(..., description="Bookmark metadata")


class SearchResult(BaseModel):
    """Result from a vector similarity search."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    point_id: str = Field(..., description="Vector store point ID")
    bookmark_id: Optional[str] = Field(None, description="Karakeep bookmark ID")
    score: float = Field(..., description="Similarity score")
    title: Optional[str] = None
    url: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    created_at: Optional[str] = None
