"""
Pydantic models for API request/response validation.
"""

from pydantic import BaseModel

from .database import CachedImage, CachedStory
from .domain import Story
from .services.story_cache import CacheReport, CacheStats, OfflineStory, PruneResult, VerifyReport


# ─────────────────────────────────────────────────────────────
# Cached Story Schemas
# ─────────────────────────────────────────────────────────────

class CachedStorySummary(BaseModel):
    """Cached story for list view."""
    id: int
    title: str
    slug: str
    excerpt: str
    workflow_stage: str
    readable: bool
    cached_at: str
    is_fresh: bool

    @classmethod
    def from_cache(cls, cached: CachedStory) -> "CachedStorySummary":
        return cls(
            id=cached.id,
            title=cached.title,
            slug=cached.slug,
            excerpt=cached.excerpt,
            workflow_stage=cached.workflow_stage_raw,
            readable=cached.workflow_stage is not None,
            cached_at=cached.cached_at.isoformat(),
            is_fresh=cached.is_cache_fresh,
        )


class CachedImageResponse(BaseModel):
    id: str
    story_id: int
    network_url: str
    image_type: str
    width: int | None = None
    height: int | None = None
    alternative_text: str | None = None
    caption: str | None = None
    content_type: str | None = None
    file_size: int | None = None
    cached_at: str
    last_verified_at: str | None = None
    is_fresh: bool

    @classmethod
    def from_cache(cls, image: CachedImage) -> "CachedImageResponse":
        return cls(
            id=image.id,
            story_id=image.story_id,
            network_url=image.network_url,
            image_type=image.image_type.value,
            width=image.width,
            height=image.height,
            alternative_text=image.alternative_text,
            caption=image.caption,
            content_type=image.content_type,
            file_size=image.file_size,
            cached_at=image.cached_at.isoformat(),
            last_verified_at=image.last_verified_at.isoformat() if image.last_verified_at else None,
            is_fresh=image.is_cache_fresh,
        )


class OfflineStoryResponse(BaseModel):
    """A story served from the cache, image URLs pointing at local files."""
    story: Story
    cached_at: str
    is_fresh: bool
    images: list[CachedImageResponse]
    missing_images: list[str]

    @classmethod
    def from_offline(cls, offline: OfflineStory) -> "OfflineStoryResponse":
        return cls(
            story=offline.story,
            cached_at=offline.cached_at.isoformat(),
            is_fresh=offline.is_fresh,
            images=[CachedImageResponse.from_cache(image) for image in offline.images],
            missing_images=offline.missing_images,
        )


# ─────────────────────────────────────────────────────────────
# Operation Results
# ─────────────────────────────────────────────────────────────

class CacheReportResponse(BaseModel):
    story_id: int
    downloaded: int
    skipped: int
    failed: list[str]

    @classmethod
    def from_report(cls, report: CacheReport) -> "CacheReportResponse":
        return cls(
            story_id=report.story_id,
            downloaded=report.downloaded,
            skipped=report.skipped,
            failed=report.failed,
        )


class ImageVerificationResponse(BaseModel):
    image_id: str
    network_url: str
    status: str


class VerifyReportResponse(BaseModel):
    story_id: int
    verified_at: str
    results: list[ImageVerificationResponse]

    @classmethod
    def from_report(cls, report: VerifyReport) -> "VerifyReportResponse":
        return cls(
            story_id=report.story_id,
            verified_at=report.verified_at.isoformat(),
            results=[
                ImageVerificationResponse(
                    image_id=r.image_id,
                    network_url=r.network_url,
                    status=r.status.value,
                )
                for r in report.results
            ],
        )


class PruneResponse(BaseModel):
    stories_removed: int
    images_removed: int

    @classmethod
    def from_result(cls, result: PruneResult) -> "PruneResponse":
        return cls(stories_removed=result.stories_removed, images_removed=result.images_removed)


class CacheStatsResponse(BaseModel):
    total_cached_stories: int
    fresh_cached_stories: int
    stale_cached_stories: int
    total_cached_images: int
    total_image_size: int
    disk_usage: int
    oldest_cache_date: str | None
    newest_cache_date: str | None
    description: str

    @classmethod
    def from_stats(cls, stats: CacheStats) -> "CacheStatsResponse":
        return cls(
            total_cached_stories=stats.total_cached_stories,
            fresh_cached_stories=stats.fresh_cached_stories,
            stale_cached_stories=stats.stale_cached_stories,
            total_cached_images=stats.total_cached_images,
            total_image_size=stats.total_image_size,
            disk_usage=stats.disk_usage,
            oldest_cache_date=stats.oldest_cache_date.isoformat() if stats.oldest_cache_date else None,
            newest_cache_date=stats.newest_cache_date.isoformat() if stats.newest_cache_date else None,
            description=stats.formatted_description,
        )
