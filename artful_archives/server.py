"""
Artful Archives offline cache API server

FastAPI application providing endpoints for:
- Offline story reading from the local cache
- Caching stories (and their images) fetched from the CMS
- Image verification, eviction and cache maintenance
- Cache statistics
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api_client import StoryAPIClient
from .config import AppContext, Config
from .database import Database
from .fetcher import ImageFetcher
from .routes import cache_router, misc_router
from .services.story_cache import StoryCacheManager

logger = logging.getLogger(__name__)


def build_context(config: Config) -> AppContext:
    """Create the shared services for one application instance."""
    db = Database(config.DB_PATH)
    fetcher = ImageFetcher(timeout=config.DOWNLOAD_TIMEOUT) if config.DOWNLOAD_ENABLED else None
    cache_manager = StoryCacheManager(
        db=db,
        cache_dir=config.CACHE_DIR,
        fetcher=fetcher,
        max_cache_size=config.max_cache_size_bytes,
    )
    api_client = None
    if config.API_BASE_URL:
        api_client = StoryAPIClient(
            base_url=config.API_BASE_URL,
            token=config.API_TOKEN,
            timeout=config.API_TIMEOUT,
        )
    else:
        logger.warning("API_BASE_URL not set; stories can only be read from the cache")

    return AppContext(config=config, db=db, cache_manager=cache_manager, api_client=api_client)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup application resources."""
    # Startup - skip if a context was provided (e.g., by tests)
    owns_context = getattr(app.state, "context", None) is None
    if owns_context:
        config = Config.from_env()
        logging.basicConfig(level=config.LOG_LEVEL.upper())
        app.state.context = build_context(config)
        logger.info(f"Cache database at {config.DB_PATH}, images under {config.CACHE_DIR}")

    yield

    # Shutdown
    if owns_context:
        try:
            await app.state.context.close()
        except Exception as e:
            logger.warning(f"Error closing CMS client: {e}")
        app.state.context = None


def create_app(context: AppContext | None = None) -> FastAPI:
    application = FastAPI(
        title="Artful Archives Cache API",
        version="1.0.0",
        lifespan=lifespan
    )
    application.state.context = context

    # Include routers
    application.include_router(misc_router)
    application.include_router(cache_router)
    return application


app = create_app()


def main():
    """Run the API server with uvicorn."""
    import uvicorn

    config = Config.from_env()
    uvicorn.run("artful_archives.server:app", host="127.0.0.1", port=config.PORT)


if __name__ == "__main__":
    main()
