"""
Cache exceptions and HTTP exception utilities.

Domain errors are raised by the cache manager; the helpers at the bottom
map them (and missing resources) onto HTTP responses for the routes.
"""

from typing import TypeVar

from fastapi import HTTPException

T = TypeVar("T")


class CacheError(Exception):
    """Base class for cache failures surfaced to callers."""

    pass


class StoryNotCachedError(CacheError):
    """No cached row exists for the requested story."""

    def __init__(self, story_id: int):
        self.story_id = story_id
        super().__init__(f"Story {story_id} is not cached")


class CorruptCacheEntryError(CacheError):
    """A cached row exists but cannot be turned back into a Story."""

    def __init__(self, story_id: int, reason: str):
        self.story_id = story_id
        self.reason = reason
        super().__init__(f"Cached story {story_id} is unusable: {reason}")


class CacheDirectoryUnavailableError(CacheError):
    """The image cache directory is not configured or cannot be created."""

    pass


class DownloadError(CacheError):
    """An image could not be downloaded."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to download image from {url}: {reason}")


class EvictionError(CacheError):
    """Cached files could not be removed; rows were left in place."""

    def __init__(self, story_id: int | None, failed_paths: list[str]):
        self.story_id = story_id
        self.failed_paths = failed_paths
        target = f"story {story_id}" if story_id is not None else "cache"
        super().__init__(f"Could not delete {len(failed_paths)} file(s) for {target}")


def require_resource(resource: T | None, detail: str = "Resource not found") -> T:
    """
    Raise 404 if resource is None, otherwise return the resource.

    Usage:
        image = require_resource(manager.get_image(image_id), "Image not found")
    """
    if resource is None:
        raise HTTPException(status_code=404, detail=detail)
    return resource


def require_image(image: T | None) -> T:
    """Raise 404 if cached image is None."""
    return require_resource(image, "Image not cached")


def http_error_for(error: CacheError) -> HTTPException:
    """Map a cache error onto the HTTP response the routes return."""
    if isinstance(error, StoryNotCachedError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, CorruptCacheEntryError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, DownloadError):
        return HTTPException(status_code=502, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
