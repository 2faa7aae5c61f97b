"""
Synchronization of Karakeep bookmarks into the vector store.

Drives full and incremental syncs and owns the incremental cursor. Full and
incremental passes are serialized by a lock so that cursor updates are never
interleaved; single-bookmark operations bypass both the cursor and the lock.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Literal, Optional

from bookmark_search.db.vector_store import VectorStore
from bookmark_search.karakeep.client import KarakeepClient
from bookmark_search.models.document import IndexableDocument
from bookmark_search.models.sync import SyncResult, SyncState
from bookmark_search.services.indexing import IndexingPipeline
from bookmark_search.services.normalizer import has_indexable_content, normalize

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class SyncService:
    """
    Keeps the vector store in sync with a Karakeep instance.

    Coordinates fetching, normalization and indexing, and records the cursor
    for incremental syncs in a SyncState.
    """

    def __init__(
        self,
        karakeep: KarakeepClient,
        pipeline: IndexingPipeline,
        vector_store: VectorStore,
        state: Optional[SyncState] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize sync service.

        Args:
            karakeep: Karakeep API client.
            pipeline: Pipeline that embeds and stores documents.
            vector_store: Vector database (used for deletes).
            state: Cursor state; a fresh one is created if omitted.
            clock: Source of the current time (for testing).
        """
        self.karakeep = karakeep
        self.pipeline = pipeline
        self.vector_store = vector_store
        self.state = state if state is not None else SyncState()
        self.clock = clock or utc_now
        self._lock = asyncio.Lock()

    @property
    def is_syncing(self) -> bool:
        """Whether a full or incremental sync is in flight."""
        return self._lock.locked()

    def _prepare(self, bookmarks: list[dict[str, Any]]) -> tuple[list[IndexableDocument], int, int]:
        """
        Normalize fetched bookmarks.

        Malformed bookmarks are logged and counted instead of aborting the pass.

        Returns:
            (documents to index, skipped count, error count)
        """
        documents: list[IndexableDocument] = []
        skipped = 0
        errors = 0

        for bookmark in bookmarks:
            try:
                document = normalize(bookmark)

                # Skip bookmarks with no meaningful content
                if not has_indexable_content(document.text):
                    skipped += 1
                    continue

                documents.append(document)
            except Exception as e:
                bookmark_id = bookmark.get("id") if isinstance(bookmark, dict) else None
                logger.error(f"Error processing bookmark {bookmark_id}: {e}")
                errors += 1

        return documents, skipped, errors

    async def _process(self, bookmarks: list[dict[str, Any]], started: float) -> SyncResult:
        """Normalize and index fetched bookmarks."""
        documents, skipped, errors = self._prepare(bookmarks)

        await self.pipeline.index(documents)

        return SyncResult(
            total=len(bookmarks),
            indexed=len(documents),
            skipped=skipped,
            errors=errors,
            duration_ms=self._elapsed_ms(started),
        )

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)

    def _record(self, mode: Literal["full", "incremental"], result: SyncResult):
        self.state.last_mode = mode
        self.state.last_result = result
        self.state.syncs_completed += 1

    async def _sync_all(self) -> SyncResult:
        started = time.monotonic()
        logger.info("Starting full sync...")

        bookmarks = await self.karakeep.get_all_bookmarks()
        result = await self._process(bookmarks, started)

        self._record("full", result)
        logger.info(
            f"Sync complete: {result.indexed} indexed, {result.skipped} skipped, "
            f"{result.errors} errors in {result.duration_ms}ms"
        )
        return result

    async def sync_all(self) -> SyncResult:
        """
        Index every bookmark in Karakeep.

        Does not move the incremental cursor.

        Returns:
            Aggregate counts for the pass

        Raises:
            Exception: Karakeep, embedding or vector store failures
        """
        async with self._lock:
            return await self._sync_all()

    async def sync_incremental(self) -> SyncResult:
        """
        Index bookmarks modified since the last sync.

        The first call (no cursor yet) performs a full sync and then sets the
        cursor to the time that sync started. Later calls fetch only bookmarks
        modified after the cursor and move the cursor to the time the fetch
        was issued as soon as the fetch returns, before anything is indexed.
        Bookmarks changed while a pass is running are therefore picked up
        again by the next pass.

        Returns:
            Aggregate counts for the pass

        Raises:
            Exception: Karakeep, embedding or vector store failures
        """
        async with self._lock:
            since = self.state.last_synced_at

            if since is None:
                fetch_issued_at = self.clock()
                result = await self._sync_all()
                self.state.last_synced_at = fetch_issued_at
                return result

            started = time.monotonic()
            logger.info(f"Incremental sync since {since.isoformat()}")

            fetch_issued_at = self.clock()
            bookmarks = await self.karakeep.get_bookmarks_since(since)
            self.state.last_synced_at = fetch_issued_at

            if not bookmarks:
                logger.info("No new bookmarks to sync")
                result = SyncResult(duration_ms=self._elapsed_ms(started))
            else:
                result = await self._process(bookmarks, started)
                logger.info(
                    f"Incremental sync: {result.indexed} indexed, {result.skipped} skipped, "
                    f"{result.errors} errors in {result.duration_ms}ms"
                )

            self._record("incremental", result)
            return result

    async def sync_bookmark(self, bookmark_id: str) -> bool:
        """
        Index a single bookmark (for webhook updates).

        Args:
            bookmark_id: Karakeep bookmark ID

        Returns:
            True if the bookmark was indexed, False if it had no content

        Raises:
            Exception: If the bookmark can't be fetched, parsed or indexed
        """
        logger.info(f"Syncing bookmark: {bookmark_id}")

        bookmark = await self.karakeep.get_bookmark(bookmark_id)
        document = normalize(bookmark)

        if not has_indexable_content(document.text):
            logger.info(f"Bookmark {bookmark_id} has no content, skipping")
            return False

        await self.pipeline.index([document])
        logger.info(f"Bookmark {bookmark_id} synced")
        return True

    async def delete_bookmark(self, bookmark_id: str):
        """
        Remove a bookmark from the index.

        Args:
            bookmark_id: Karakeep bookmark ID
        """
        logger.info(f"Deleting bookmark from index: {bookmark_id}")
        await self.vector_store.delete([bookmark_id])
