"""
Client for the Karakeep REST API.

Provides paginated access to bookmarks. Records are returned as raw
dictionaries and validated later, one at a time, by the sync pipeline.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import aiohttp

from bookmark_search.errors import KarakeepAPIError
from bookmark_search.models.bookmark import BookmarkPage

logger = logging.getLogger(__name__)

PAGE_SIZE = 100


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO 8601 timestamp as returned by Karakeep.

    Naive timestamps are taken to be UTC.
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def bookmark_modified_at(bookmark: dict[str, Any]) -> datetime:
    """Get the modification time of a raw bookmark, falling back to its creation time."""
    return parse_timestamp(bookmark.get("modifiedAt") or bookmark["createdAt"])


class KarakeepClient:
    """
    Client for the Karakeep API (``/api/v1``).

    Authenticates with a bearer API key. Every request is bounded by the
    configured timeout; failures are raised to the caller, never retried.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: Optional[float] = None,
    ):
        """
        Initialize Karakeep client.

        Args:
            base_url: Base URL of the Karakeep instance
            api_key: Karakeep API key
            timeout: Total timeout per request in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None
        self.session: Optional[aiohttp.ClientSession] = None
        logger.info(f"Initialized KarakeepClient with base URL: {self.base_url}")

    async def _ensure_session(self):
        """Ensure aiohttp session exists."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )

    async def close(self):
        """Close the HTTP session."""
        if self.session and not self.session.closed:
            await self.session.close()

    async def __aenter__(self):
        """Async context manager entry."""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        """
        Perform a GET request against the API.

        Raises:
            KarakeepAPIError: If the API answers with a non-2xx status
            aiohttp.ClientError: On network errors
            asyncio.TimeoutError: If the request exceeds the timeout
        """
        await self._ensure_session()
        url = f"{self.base_url}/api/v1{path}"

        async with self.session.get(url, params=params) as response:
            if response.status < 200 or response.status >= 300:
                error_text = await response.text()
                logger.error(f"Karakeep request {path} failed: HTTP {response.status}")
                raise KarakeepAPIError(response.status, error_text, url)
            return await response.json()

    async def check_connection(self) -> bool:
        """
        Check if the Karakeep API is reachable with the configured key.

        Returns:
            True if API is accessible, False otherwise
        """
        try:
            await self._get("/bookmarks", params={"limit": 1})
            return True
        except Exception as e:
            logger.debug(f"Connection check failed: {e}")
            return False

    async def list_bookmarks(
        self,
        cursor: Optional[str] = None,
        limit: int = PAGE_SIZE,
    ) -> BookmarkPage:
        """
        Get one page of bookmarks.

        Args:
            cursor: Continuation cursor from the previous page
            limit: Maximum number of bookmarks in the page

        Returns:
            Page with raw bookmark records and the next cursor, if any
        """
        params: dict[str, Any] = {"limit": limit}
        if cursor:
            params["cursor"] = cursor

        data = await self._get("/bookmarks", params=params)
        return BookmarkPage.model_validate(data)

    async def get_all_bookmarks(self) -> list[dict[str, Any]]:
        """
        Get every bookmark, following continuation cursors until none is left.

        Returns:
            Raw bookmark records in the order the API returned them
        """
        all_bookmarks: list[dict[str, Any]] = []
        cursor: Optional[str] = None

        while True:
            logger.debug(f"Fetching bookmarks, cursor: {cursor or 'start'}")
            page = await self.list_bookmarks(cursor)
            all_bookmarks.extend(page.bookmarks)
            cursor = page.next_cursor
            if not cursor:
                break

        logger.info(f"Fetched {len(all_bookmarks)} bookmarks from Karakeep")
        return all_bookmarks

    async def get_bookmark(self, bookmark_id: str) -> dict[str, Any]:
        """
        Get a single bookmark.

        Args:
            bookmark_id: Bookmark ID

        Returns:
            Raw bookmark record

        Raises:
            KarakeepAPIError: If the bookmark doesn't exist (404) or the request fails
        """
        return await self._get(f"/bookmarks/{bookmark_id}")

    async def get_bookmarks_since(self, since: datetime) -> list[dict[str, Any]]:
        """
        Get bookmarks modified after a point in time.

        Karakeep has no server-side filter for this, so all bookmarks are
        fetched and filtered locally. Records without a parseable timestamp
        are kept so that the sync pipeline can report them.

        Args:
            since: Exclusive lower bound (timezone-aware)

        Returns:
            Raw bookmark records modified after ``since``
        """
        if since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)

        changed = []
        for bookmark in await self.get_all_bookmarks():
            try:
                if bookmark_modified_at(bookmark) <= since:
                    continue
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Bookmark {bookmark.get('id')} has no usable timestamp: {e}")
            changed.append(bookmark)

        logger.info(f"Found {len(changed)} bookmarks modified since {since.isoformat()}")
        return changed
