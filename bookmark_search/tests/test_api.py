"""
Tests for the HTTP API.

Routes are exercised through FastAPI's TestClient with the service graph
replaced by mocks or in-memory components.
"""

import unittest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

from fastapi.testclient import TestClient
from qdrant_client import AsyncQdrantClient

from bookmark_search.api.dependencies import Services, get_services
from bookmark_search.config.settings import get_settings
from bookmark_search.db.vector_store import VectorStore
from bookmark_search.errors import KarakeepAPIError
from bookmark_search.models.document import SearchResult
from bookmark_search.models.sync import SyncResult, SyncState
from bookmark_search.services.indexing import IndexingPipeline
from bookmark_search.services.sync import SyncService
from bookmark_search.tests.fakes import FakeEmbeddingService, make_raw_bookmark


class APITestCase(unittest.TestCase):
    """Base class installing a mocked service graph."""

    def setUp(self):
        """Set up test fixtures."""
        # Import here so that settings come from the test environment
        from bookmark_search.main import app
        self.app = app

        self.vector_store = Mock()
        self.vector_store.count = AsyncMock(return_value=42)
        self.vector_store.search = AsyncMock(return_value=[])
        self.vector_store.clear = AsyncMock()
        self.vector_store.collection_name = "karakeep_bookmarks"
        self.vector_store.embedding_dim = 1536

        self.sync_service = Mock()
        self.sync_service.state = SyncState()
        self.sync_service.is_syncing = False
        self.sync_service.sync_all = AsyncMock()
        self.sync_service.sync_incremental = AsyncMock()
        self.sync_service.sync_bookmark = AsyncMock()
        self.sync_service.delete_bookmark = AsyncMock()

        self.services = Mock()
        self.services.settings = get_settings()
        self.services.vector_store = self.vector_store
        self.services.sync_service = self.sync_service

        self.app.dependency_overrides[get_services] = lambda: self.services
        self.client = TestClient(self.app)

    def tearDown(self):
        """Remove dependency overrides."""
        self.app.dependency_overrides.clear()


class TestAdminEndpoints(APITestCase):
    """Test health, stats, clear and version endpoints."""

    def test_root(self):
        """Test root endpoint."""
        response = self.client.get("/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "running")

    def test_health(self):
        """Test health check."""
        response = self.client.get("/health")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {
            "status": "ok",
            "vectorCount": 42,
            "karakeepUrl": get_settings().karakeep_url,
        })

    def test_health_vector_store_down(self):
        """Test health check when Qdrant is unreachable."""
        self.vector_store.count.side_effect = ConnectionError("qdrant unreachable")

        response = self.client.get("/health")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["status"], "error")
        self.assertIn("qdrant unreachable", response.json()["error"])

    def test_stats_before_first_sync(self):
        """Test stats when nothing has been synced yet."""
        response = self.client.get("/stats")

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["vectorCount"], 42)
        self.assertEqual(data["syncInterval"], get_settings().sync_interval_minutes)
        self.assertIsNone(data["lastSyncAt"])
        self.assertIsNone(data["lastResult"])
        self.assertFalse(data["syncing"])

    def test_stats_after_sync(self):
        """Test stats reporting the cursor and last result."""
        self.sync_service.state = SyncState(
            last_synced_at=datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc),
            last_mode="incremental",
            last_result=SyncResult(total=3, indexed=2, skipped=1, duration_ms=10),
            syncs_completed=2,
        )

        data = self.client.get("/stats").json()

        self.assertEqual(data["lastSyncAt"], "2024-06-01T12:00:00+00:00")
        self.assertEqual(data["lastMode"], "incremental")
        self.assertEqual(data["lastResult"]["durationMs"], 10)

    def test_clear(self):
        """Test clearing the index."""
        response = self.client.post("/clear")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True})
        self.vector_store.clear.assert_awaited_once()

    def test_clear_failure(self):
        """Test clear failure."""
        self.vector_store.clear.side_effect = RuntimeError("delete failed")

        response = self.client.post("/clear")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "delete failed"})

    def test_version(self):
        """Test version endpoint."""
        response = self.client.get("/version")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["service"], "Karakeep Semantic Search")


class TestSearchEndpoint(APITestCase):
    """Test the search endpoint."""

    def test_missing_query(self):
        """Test that q is required."""
        response = self.client.get("/search")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Query parameter 'q' is required"})
        self.vector_store.search.assert_not_called()

    def test_blank_query(self):
        """Test that a whitespace-only query is rejected."""
        response = self.client.get("/search", params={"q": "   "})
        self.assertEqual(response.status_code, 400)

    def test_search(self):
        """Test search results and response shape."""
        self.vector_store.search.return_value = [
            SearchResult(
                point_id="p1",
                bookmark_id="bm-1",
                score=0.9,
                title="Result",
                url="https://example.com",
                tags=["a"],
                created_at="2024-05-01T12:00:00Z",
            )
        ]

        response = self.client.get("/search", params={"q": "python", "limit": 5})

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["query"], "python")
        self.assertEqual(data["limit"], 5)
        self.assertIn("took_ms", data)
        self.assertEqual(data["results"][0]["bookmarkId"], "bm-1")
        self.assertEqual(data["results"][0]["createdAt"], "2024-05-01T12:00:00Z")
        self.vector_store.search.assert_awaited_once_with("python", 5)

    def test_default_limit(self):
        """Test that the default limit is 10."""
        self.client.get("/search", params={"q": "python"})
        self.vector_store.search.assert_awaited_once_with("python", 10)

    def test_non_numeric_limit(self):
        """Test that a malformed limit is a 400 with an error body."""
        response = self.client.get("/search", params={"q": "python", "limit": "abc"})

        self.assertEqual(response.status_code, 400)
        data = response.json()
        self.assertNotIn("detail", data)
        self.assertIn("limit", data["error"])
        self.vector_store.search.assert_not_called()

    def test_limit_out_of_range(self):
        """Test that limits outside 1..100 are rejected with an error body."""
        for limit in ("0", "101"):
            response = self.client.get("/search", params={"q": "python", "limit": limit})

            self.assertEqual(response.status_code, 400)
            self.assertEqual(list(response.json()), ["error"])

        self.vector_store.search.assert_not_called()

    def test_search_failure(self):
        """Test that backend errors become 500 responses."""
        self.vector_store.search.side_effect = RuntimeError("embedding failed")

        response = self.client.get("/search", params={"q": "python"})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "embedding failed"})


class TestSyncEndpoints(APITestCase):
    """Test sync endpoints."""

    def test_full_sync(self):
        """Test triggering a full sync."""
        self.sync_service.sync_all.return_value = SyncResult(
            total=5, indexed=3, skipped=1, errors=1, duration_ms=120
        )

        response = self.client.post("/sync")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {
            "total": 5,
            "indexed": 3,
            "skipped": 1,
            "errors": 1,
            "durationMs": 120,
        })

    def test_incremental_sync(self):
        """Test triggering an incremental sync."""
        self.sync_service.sync_incremental.return_value = SyncResult()

        response = self.client.post("/sync/incremental")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["total"], 0)
        self.sync_service.sync_incremental.assert_awaited_once()

    def test_sync_failure(self):
        """Test that a sync failure becomes a 500 response."""
        self.sync_service.sync_all.side_effect = KarakeepAPIError(401, "Unauthorized")

        response = self.client.post("/sync")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Karakeep API error: 401 Unauthorized"})

    def test_sync_bookmark(self):
        """Test syncing a single bookmark."""
        self.sync_service.sync_bookmark.return_value = True

        response = self.client.post("/sync/bookmark/abc123")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True, "bookmarkId": "abc123", "indexed": True})
        self.sync_service.sync_bookmark.assert_awaited_once_with("abc123")

    def test_sync_bookmark_not_found(self):
        """Test syncing a bookmark that doesn't exist in Karakeep."""
        self.sync_service.sync_bookmark.side_effect = KarakeepAPIError(404, "Not Found")

        response = self.client.post("/sync/bookmark/missing")

        self.assertEqual(response.status_code, 500)
        self.assertIn("404", response.json()["error"])

    def test_delete_bookmark(self):
        """Test removing a bookmark from the index."""
        response = self.client.delete("/bookmark/abc123")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True, "bookmarkId": "abc123"})
        self.sync_service.delete_bookmark.assert_awaited_once_with("abc123")


class TestEndToEnd(unittest.TestCase):
    """Sync then search through the API with in-memory components."""

    def setUp(self):
        """Set up test fixtures."""
        from bookmark_search.main import app
        self.app = app

        karakeep = Mock()
        karakeep.get_all_bookmarks = AsyncMock(return_value=[
            make_raw_bookmark("bm-1", title="Sourdough", content={"type": "text", "content": "bread baking guide"}),
            make_raw_bookmark("bm-2", title="Asyncio", content={"type": "text", "content": "python concurrency"}),
        ])
        karakeep.close = AsyncMock()

        embeddings = FakeEmbeddingService(dimensions=8)
        vector_store = VectorStore(AsyncQdrantClient(location=":memory:"), "e2e", embeddings)
        pipeline = IndexingPipeline(embeddings, vector_store)

        self.services = Services(
            settings=get_settings(),
            karakeep=karakeep,
            embedding_service=embeddings,
            vector_store=vector_store,
            pipeline=pipeline,
            sync_service=SyncService(karakeep, pipeline, vector_store),
        )
        self.app.dependency_overrides[get_services] = lambda: self.services
        self.client = TestClient(self.app)

    def tearDown(self):
        """Remove dependency overrides."""
        self.app.dependency_overrides.clear()

    def test_sync_then_search(self):
        """Test that synced bookmarks are searchable and counted."""
        sync_response = self.client.post("/sync")
        self.assertEqual(sync_response.json()["indexed"], 2)

        self.assertEqual(self.client.get("/health").json()["vectorCount"], 2)

        # The fake embedder maps identical text to identical vectors
        query = "Sourdough\n\nbread baking guide"
        results = self.client.get("/search", params={"q": query}).json()["results"]
        self.assertEqual(results[0]["bookmarkId"], "bm-1")
        self.assertEqual(results[0]["title"], "Sourdough")

        self.client.delete("/bookmark/bm-1")
        self.assertEqual(self.client.get("/health").json()["vectorCount"], 1)



class TestStartupCheck(unittest.IsolatedAsyncioTestCase):
    """Test the Karakeep connectivity check run at startup."""

    async def test_reachable(self):
        """Test that a reachable Karakeep is reported as such."""
        from bookmark_search.main import check_karakeep_connectivity

        services = Mock()
        services.settings = get_settings()
        services.karakeep.check_connection = AsyncMock(return_value=True)

        self.assertTrue(await check_karakeep_connectivity(services))

    async def test_unreachable_is_not_fatal(self):
        """Test that an unreachable Karakeep is logged instead of raised."""
        from bookmark_search.main import check_karakeep_connectivity

        services = Mock()
        services.settings = get_settings()
        services.karakeep.check_connection = AsyncMock(return_value=False)

        with self.assertLogs("bookmark_search.main", level="ERROR"):
            self.assertFalse(await check_karakeep_connectivity(services))


if __name__ == "__main__":
    unittest.main()
