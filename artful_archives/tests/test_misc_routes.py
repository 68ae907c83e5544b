"""
Tests for misc routes: health check.
"""

from fastapi.testclient import TestClient

from artful_archives.config import AppContext, Config
from artful_archives.server import create_app
from artful_archives.services.story_cache import StoryCacheManager


class TestHealthCheck:
    """Tests for /status endpoint."""

    def test_health_check_returns_ok(self, client):
        """Health check should return status ok."""
        response = client.get("/status")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert "version" in data
        assert data["remote_enabled"] is True
        assert data["downloads_enabled"] is True

    def test_health_check_offline_only(self, temp_db_path, test_db):
        """Without a CMS client or fetcher the service reports read-only mode."""
        config = Config(DB_PATH=temp_db_path, CACHE_DIR=None, API_BASE_URL="", DOWNLOAD_ENABLED=False)
        manager = StoryCacheManager(db=test_db, cache_dir=None, fetcher=None)
        context = AppContext(config=config, db=test_db, cache_manager=manager)

        with TestClient(create_app(context), raise_server_exceptions=False) as client:
            data = client.get("/status").json()
            assert data["remote_enabled"] is False
            assert data["downloads_enabled"] is False

            response = client.post("/cache/stories/7")
            assert response.status_code == 503

            # Nothing can be verified without an image directory
            response = client.post("/cache/stories/7/verify")
            assert response.status_code == 500
