"""Data models for the service."""

from bookmark_search.models.bookmark import (
    Bookmark,
    BookmarkContent,
    BookmarkPage,
    BookmarkTag,
)
from bookmark_search.models.document import (
    BookmarkMetadata,
    IndexableDocument,
    SearchResult,
)
from bookmark_search.models.sync import SyncResult, SyncState

__all__ = [
    "Bookmark",
    "BookmarkContent",
    "BookmarkPage",
    "BookmarkTag",
    "BookmarkMetadata",
    "IndexableDocument",
    "SearchResult",
    "SyncResult",
    "SyncState",
]
