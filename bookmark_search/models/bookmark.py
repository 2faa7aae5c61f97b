"""
Data models for bookmarks as returned by the Karakeep API.
"""

from typing import Any, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class KarakeepModel(BaseModel):
    """Base model accepting Karakeep's camelCase JSON and ignoring unknown fields."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class BookmarkTag(KarakeepModel):
    """Tag attached to a bookmark."""

    id: str = Field(..., description="Tag ID")
    name: str = Field(..., description="Tag name")


class BookmarkContent(KarakeepModel):
    """Content block of a bookmark (link, text note or uploaded asset)."""

    type: Literal["link", "text", "asset"] = Field(..., description="Content kind")
    url: Optional[str] = Field(None, description="Link URL")
    title: Optional[str] = Field(None, description="Title of the linked page or asset")
    description: Optional[str] = Field(None, description="Page description")
    text: Optional[str] = Field(None, alias="content", description="Plain text content")
    html_content: Optional[str] = Field(None, alias="htmlContent", description="HTML content")
    file_name: Optional[str] = Field(None, alias="fileName", description="Asset file name")


class Bookmark(KarakeepModel):
    """A Karakeep bookmark."""

    id: str = Field(..., description="Stable bookmark ID")
    created_at: str = Field(..., alias="createdAt", description="ISO 8601 creation timestamp")
    modified_at: Optional[str] = Field(
        None, alias="modifiedAt", description="ISO 8601 modification timestamp"
    )
    title: Optional[str] = Field(None, description="User-provided title")
    archived: bool = Field(default=False)
    favourited: bool = Field(default=False)
    tags: list[BookmarkTag] = Field(default_factory=list)
    note: Optional[str] = Field(None, description="Free-form note")
    summary: Optional[str] = Field(None, description="AI-generated summary")
    content: Optional[BookmarkContent] = Field(None, description="Content block")


class BookmarkPage(KarakeepModel):
    """
    One page of the bookmark listing.

    Bookmarks are kept as raw dictionaries so that a single malformed record
    does not invalidate the whole page; they are validated one by one during
    sync.
    """

    bookmarks: list[dict[str, Any]] = Field(default_factory=list)
    next_cursor: Optional[str] = Field(None, alias="nextCursor")
