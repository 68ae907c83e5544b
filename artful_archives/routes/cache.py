"""
Cache routes: offline stories, caching, verification, eviction, maintenance.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse

from ..api_client import APIError, StoryNotFoundError
from ..auth import verify_api_key
from ..config import AppContext, get_context
from ..exceptions import CacheError, http_error_for, require_image
from ..schemas import (
    CachedImageResponse,
    CachedStorySummary,
    CacheReportResponse,
    CacheStatsResponse,
    OfflineStoryResponse,
    PruneResponse,
    VerifyReportResponse,
)
from ..services import StoryCacheManagerDep
from ..services.story_cache import CacheReport

router = APIRouter(prefix="/cache", tags=["cache"])


# ─────────────────────────────────────────────────────────────
# Stats & Listing (static paths first)
# ─────────────────────────────────────────────────────────────

@router.get("/stats")
async def cache_stats(manager: StoryCacheManagerDep) -> CacheStatsResponse:
    """Cache totals, freshness and disk usage."""
    return CacheStatsResponse.from_stats(manager.get_cache_stats())


@router.get("/stories")
async def list_cached_stories(manager: StoryCacheManagerDep) -> list[CachedStorySummary]:
    """Cached stories, most recently cached first."""
    return [CachedStorySummary.from_cache(cached) for cached in manager.get_cached_story_rows()]


@router.delete("", dependencies=[Depends(verify_api_key)])
async def clear_cache(manager: StoryCacheManagerDep) -> PruneResponse:
    """Remove every cached story and image."""
    try:
        result = await manager.clear_cache()
    except CacheError as e:
        raise http_error_for(e) from e
    return PruneResponse.from_result(result)


# ─────────────────────────────────────────────────────────────
# Maintenance
# ─────────────────────────────────────────────────────────────

@router.post("/maintenance/stale", dependencies=[Depends(verify_api_key)])
async def remove_stale(
    manager: StoryCacheManagerDep,
    days: int = Query(default=7, ge=0),
) -> PruneResponse:
    """Remove stories and images cached more than `days` days ago."""
    try:
        result = await manager.remove_stale_cache(days)
    except CacheError as e:
        raise http_error_for(e) from e
    return PruneResponse.from_result(result)


@router.post("/maintenance/enforce-limit", dependencies=[Depends(verify_api_key)])
async def enforce_limit(manager: StoryCacheManagerDep) -> dict:
    """Evict the oldest stories if the image cache is over its size limit."""
    try:
        removed = await manager.enforce_cache_size_limit()
    except CacheError as e:
        raise http_error_for(e) from e
    return {"stories_removed": removed}


# ─────────────────────────────────────────────────────────────
# Single Story
# ─────────────────────────────────────────────────────────────

@router.get("/stories/{story_id}")
async def get_offline_story(story_id: int, manager: StoryCacheManagerDep) -> OfflineStoryResponse:
    """Serve a cached story for offline reading."""
    try:
        offline = manager.load_offline(story_id)
    except CacheError as e:
        raise http_error_for(e) from e
    return OfflineStoryResponse.from_offline(offline)


@router.post("/stories/{story_id}", dependencies=[Depends(verify_api_key)])
async def cache_story(
    story_id: int,
    context: Annotated[AppContext, Depends(get_context)],
    images: bool = True,
) -> CacheReportResponse:
    """Fetch a story from the CMS and cache it, with its images by default."""
    if context.api_client is None:
        raise HTTPException(status_code=503, detail="CMS API not configured")

    try:
        story = await context.api_client.fetch_story(story_id)
    except StoryNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Story {story_id} not found on CMS") from e
    except APIError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e

    manager = context.cache_manager
    try:
        if images:
            report = await manager.cache(story)
        else:
            await manager.cache_story(story)
            report = CacheReport(story_id=story.id)
    except CacheError as e:
        raise http_error_for(e) from e
    return CacheReportResponse.from_report(report)


@router.post("/stories/{story_id}/verify", dependencies=[Depends(verify_api_key)])
async def verify_story(story_id: int, manager: StoryCacheManagerDep) -> VerifyReportResponse:
    """Check cached image files, restoring missing ones where possible."""
    try:
        report = await manager.verify(story_id)
    except CacheError as e:
        raise http_error_for(e) from e
    return VerifyReportResponse.from_report(report)


@router.delete("/stories/{story_id}", dependencies=[Depends(verify_api_key)])
async def evict_story(story_id: int, manager: StoryCacheManagerDep) -> dict:
    """Remove a story and its images from the cache."""
    try:
        removed = await manager.evict(story_id)
    except CacheError as e:
        raise http_error_for(e) from e
    if not removed:
        raise HTTPException(status_code=404, detail=f"Story {story_id} is not cached")
    return {"success": True}


# ─────────────────────────────────────────────────────────────
# Images
# ─────────────────────────────────────────────────────────────

@router.get("/stories/{story_id}/images")
async def list_story_images(story_id: int, manager: StoryCacheManagerDep) -> list[CachedImageResponse]:
    return [CachedImageResponse.from_cache(image) for image in manager.get_cached_images(story_id)]


@router.get("/images/{image_id}")
async def get_image_file(image_id: str, manager: StoryCacheManagerDep) -> FileResponse:
    """Serve a cached image file."""
    image = require_image(manager.get_image(image_id))
    path = manager.image_path(image)
    if path is None:
        raise HTTPException(status_code=404, detail="Image file missing from cache")
    return FileResponse(path, media_type=image.content_type or None)
