"""
Pytest fixtures for cache tests.
"""

import os
import tempfile
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from artful_archives.api_client import StoryAPIClient
from artful_archives.config import AppContext, Config
from artful_archives.database import Database
from artful_archives.server import create_app
from artful_archives.services.story_cache import StoryCacheManager
from artful_archives.tests.factories import FakeFetcher, make_media, make_story


@pytest.fixture
def temp_db_path():
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        yield Path(f.name)
    # Cleanup
    if os.path.exists(f.name):
        os.unlink(f.name)


@pytest.fixture
def temp_cache_dir():
    """Create a temporary cache directory."""
    with tempfile.TemporaryDirectory() as d:
        yield Path(d)


@pytest.fixture
def test_db(temp_db_path):
    """Create a test database instance."""
    db = Database(temp_db_path)
    yield db


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def manager(test_db, temp_cache_dir, fetcher):
    """Cache manager over a temporary store and cache directory."""
    return StoryCacheManager(db=test_db, cache_dir=temp_cache_dir, fetcher=fetcher)


@pytest.fixture
def remote_stories():
    """Stories the mocked CMS API serves, keyed by id."""
    return {7: make_story(image=make_media(1, "https://x/a.jpg"))}


@pytest.fixture
def api_client(remote_stories):
    """CMS client backed by an in-memory transport."""

    def handler(request: httpx.Request) -> httpx.Response:
        story_id = int(request.url.path.rsplit("/", 1)[-1])
        story = remote_stories.get(story_id)
        if story is None:
            return httpx.Response(404, json={"error": "not found"})
        return httpx.Response(200, json={"data": story.model_dump(mode="json", by_alias=True)})

    return StoryAPIClient(base_url="https://cms.test", transport=httpx.MockTransport(handler))


def _make_client(config: Config, test_db: Database, manager: StoryCacheManager, api_client):
    context = AppContext(config=config, db=test_db, cache_manager=manager, api_client=api_client)
    return TestClient(create_app(context), raise_server_exceptions=False)


@pytest.fixture
def client(temp_db_path, temp_cache_dir, test_db, manager, api_client):
    """Test client with an isolated store, cache directory and CMS."""
    config = Config(DB_PATH=temp_db_path, CACHE_DIR=temp_cache_dir)
    with _make_client(config, test_db, manager, api_client) as test_client:
        yield test_client


@pytest.fixture
def client_with_auth(temp_db_path, temp_cache_dir, test_db, manager, api_client):
    """Test client with API key authentication enabled."""
    config = Config(DB_PATH=temp_db_path, CACHE_DIR=temp_cache_dir, AUTH_API_KEY="test-secret-key-12345")
    with _make_client(config, test_db, manager, api_client) as test_client:
        yield test_client
