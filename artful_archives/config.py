"""
Configuration and application context.

Settings come from the environment (optionally a .env file). The
AppContext is built once at startup and handed to whatever needs it;
there is no module-level mutable state.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from dotenv import load_dotenv
from fastapi import HTTPException, Request

if TYPE_CHECKING:
    from .api_client import StoryAPIClient
    from .database import Database
    from .services.story_cache import StoryCacheManager

# Load environment variables
load_dotenv()


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse boolean from environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _default_cache_dir() -> str:
    return str(Path.home() / ".cache" / "artful-archives")


@dataclass
class Config:
    """Application configuration."""
    DB_PATH: Path = field(default_factory=lambda: Path("./data/cache.db"))
    # Root of the image cache; cached file paths are stored relative to it
    CACHE_DIR: Path | None = field(default_factory=lambda: Path(_default_cache_dir()))

    # Remote CMS API
    API_BASE_URL: str = "http://api-router.cloud:8999"
    API_TOKEN: str = ""
    API_TIMEOUT: float = 30.0

    # Image downloads
    DOWNLOAD_TIMEOUT: int = 30
    DOWNLOAD_ENABLED: bool = True

    # 0 disables size enforcement
    MAX_CACHE_SIZE_MB: int = 500

    # Local service
    AUTH_API_KEY: str = ""
    PORT: int = 5010
    LOG_LEVEL: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """Build configuration from environment variables."""
        cache_dir = os.getenv("CACHE_DIR", _default_cache_dir())
        return cls(
            DB_PATH=Path(os.getenv("DB_PATH", "./data/cache.db")),
            CACHE_DIR=Path(cache_dir) if cache_dir else None,
            API_BASE_URL=os.getenv("API_BASE_URL", "http://api-router.cloud:8999"),
            API_TOKEN=os.getenv("API_TOKEN", ""),
            API_TIMEOUT=float(os.getenv("API_TIMEOUT", "30")),
            DOWNLOAD_TIMEOUT=int(os.getenv("DOWNLOAD_TIMEOUT", "30")),
            DOWNLOAD_ENABLED=_parse_bool(os.getenv("DOWNLOAD_ENABLED"), default=True),
            MAX_CACHE_SIZE_MB=int(os.getenv("MAX_CACHE_SIZE_MB", "500")),
            AUTH_API_KEY=os.getenv("AUTH_API_KEY", ""),
            PORT=int(os.getenv("PORT", "5010")),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        )

    @property
    def max_cache_size_bytes(self) -> int:
        return self.MAX_CACHE_SIZE_MB * 1024 * 1024


@dataclass
class AppContext:
    """Services shared by the running application, created once at startup."""
    config: Config
    db: "Database"
    cache_manager: "StoryCacheManager"
    api_client: "StoryAPIClient | None" = None

    async def close(self):
        if self.api_client:
            await self.api_client.close()


def get_context(request: Request) -> AppContext:
    """Dependency to get the application context."""
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise HTTPException(status_code=500, detail="Application not initialized")
    return context


def get_cache_manager(request: Request) -> "StoryCacheManager":
    """Dependency to get the story cache manager."""
    return get_context(request).cache_manager
