"""
Conversion of Karakeep bookmarks into embeddable text.

Each bookmark becomes one plain-text document plus a small metadata record.
The segment order is fixed so that the same bookmark always produces the same
text.
"""

import logging
import re
from typing import Any, Union

from bookmark_search.models.bookmark import Bookmark
from bookmark_search.models.document import BookmarkMetadata, IndexableDocument

logger = logging.getLogger(__name__)

# Embedding models have input limits
MAX_TEXT_LENGTH = 8000
TRUNCATION_MARKER = "..."

# Shorter documents carry no useful content
MIN_TEXT_LENGTH = 10

SEGMENT_SEPARATOR = "\n\n"

_TAG_PATTERN = re.compile(r"<[^>]*>")


def strip_html(markup: str) -> str:
    """Replace every HTML tag with a space."""
    return _TAG_PATTERN.sub(" ", markup)


def coerce_bookmark(bookmark: Union[Bookmark, dict[str, Any]]) -> Bookmark:
    """Validate a raw API record into a Bookmark (no-op for Bookmark instances)."""
    if isinstance(bookmark, Bookmark):
        return bookmark
    return Bookmark.model_validate(bookmark)


def bookmark_to_text(bookmark: Bookmark) -> str:
    """
    Build the searchable text of a bookmark.

    Segments, in order: title, content title, content description, content
    body (plain text, or HTML with tags stripped), note, summary, a
    ``Tags: ...`` line and the content URL. Text longer than MAX_TEXT_LENGTH
    is cut and suffixed with TRUNCATION_MARKER.

    Args:
        bookmark: Bookmark to convert

    Returns:
        Normalized text, possibly empty
    """
    content = bookmark.content
    parts: list[str] = []

    if bookmark.title:
        parts.append(bookmark.title)

    if content is not None:
        if content.title:
            parts.append(content.title)
        if content.description:
            parts.append(content.description)

        # Prefer plain text over HTML
        if content.text:
            parts.append(content.text)
        elif content.html_content:
            parts.append(strip_html(content.html_content))

    if bookmark.note:
        parts.append(bookmark.note)

    if bookmark.summary:
        parts.append(bookmark.summary)

    if bookmark.tags:
        parts.append("Tags: " + ", ".join(tag.name for tag in bookmark.tags))

    # URL helps with domain-based searches
    if content is not None and content.url:
        parts.append(content.url)

    text = SEGMENT_SEPARATOR.join(parts).strip()

    if len(text) > MAX_TEXT_LENGTH:
        logger.debug(f"Truncating text of bookmark {bookmark.id} ({len(text)} characters)")
        return text[:MAX_TEXT_LENGTH] + TRUNCATION_MARKER

    return text


def bookmark_to_metadata(bookmark: Bookmark) -> BookmarkMetadata:
    """Extract the metadata stored with a bookmark's vector."""
    content = bookmark.content
    return BookmarkMetadata(
        title=bookmark.title or (content.title if content else None),
        url=content.url if content else None,
        tags=[tag.name for tag in bookmark.tags],
        created_at=bookmark.created_at,
    )


def has_indexable_content(text: str) -> bool:
    """Check whether normalized text is long enough to be indexed."""
    return len(text) >= MIN_TEXT_LENGTH


def normalize(bookmark: Union[Bookmark, dict[str, Any]]) -> IndexableDocument:
    """
    Convert a bookmark into an indexable document.

    Args:
        bookmark: Bookmark model or raw Karakeep API record

    Returns:
        Document with normalized text and metadata. Callers must skip
        documents for which has_indexable_content() is False.

    Raises:
        pydantic.ValidationError: If a raw record is malformed
    """
    bookmark = coerce_bookmark(bookmark)
    return IndexableDocument(
        id=bookmark.id,
        text=bookmark_to_text(bookmark),
        metadata=bookmark_to_metadata(bookmark),
    )
