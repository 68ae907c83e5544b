"""
Story cache service: keeps local mirrors of remote stories and their images.

The manager is the only writer of the local store and the image directory.
Story rows and image files are written independently; an image row is
inserted only after its file is completely on disk, and only while the
owning story row still exists.
"""

import asyncio
import hashlib
import logging
import os
import weakref
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse

from ..database import CachedImage, CachedStory, Database, ImageType
from ..database.models import utcnow
from ..domain import Story, StoryMedia
from ..exceptions import (
    CacheDirectoryUnavailableError,
    CorruptCacheEntryError,
    DownloadError,
    EvictionError,
    StoryNotCachedError,
)
from ..fetcher import FetchedImage, ImageSource

logger = logging.getLogger(__name__)

# Images live under <cache dir>/StoryImages; rows store paths relative to <cache dir>
IMAGE_SUBDIR = "StoryImages"
DEFAULT_MAX_CACHE_SIZE = 500 * 1024 * 1024
SIZE_LIMIT_EVICTION_FRACTION = 0.25


def format_bytes(size: int) -> str:
    """Human readable byte count (decimal units)."""
    value = float(size)
    for unit in ("bytes", "KB", "MB", "GB"):
        if value < 1000 or unit == "GB":
            return f"{int(value)} {unit}" if unit == "bytes" else f"{value:.1f} {unit}"
        value /= 1000
    return f"{value:.1f} GB"


def image_filename(url: str, story_id: int, image_type: ImageType) -> str:
    """Stable filename for an image: same URL, story and role always map to the same name."""
    url_hash = hashlib.sha256(url.encode()).hexdigest()[:16]
    suffix = PurePosixPath(urlparse(url).path).suffix.lstrip(".").lower()
    if not suffix.isalnum() or len(suffix) > 5:
        suffix = "jpg"
    return f"story_{story_id}_{image_type.value}_{url_hash}.{suffix}"


# ─────────────────────────────────────────────────────────────
# Results
# ─────────────────────────────────────────────────────────────

@dataclass
class CacheReport:
    """Outcome of caching one story with its images."""
    story_id: int
    downloaded: int = 0
    skipped: int = 0
    failed: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed


@dataclass
class OfflineStory:
    """A story rebuilt from the cache, with image URLs pointing at local files."""
    story: Story
    images: list[CachedImage]
    cached_at: datetime
    is_fresh: bool
    missing_images: list[str] = field(default_factory=list)


class VerificationStatus(str, Enum):
    PRESENT = "present"
    REDOWNLOADED = "redownloaded"
    UNAVAILABLE = "unavailable"


@dataclass
class ImageVerification:
    image_id: str
    network_url: str
    status: VerificationStatus


@dataclass
class VerifyReport:
    story_id: int
    verified_at: datetime
    results: list[ImageVerification] = field(default_factory=list)

    def count(self, status: VerificationStatus) -> int:
        return sum(1 for r in self.results if r.status is status)

    @property
    def unavailable(self) -> list[str]:
        return [r.network_url for r in self.results if r.status is VerificationStatus.UNAVAILABLE]


@dataclass
class PruneResult:
    stories_removed: int = 0
    images_removed: int = 0


@dataclass
class CacheStats:
    total_cached_stories: int
    fresh_cached_stories: int
    stale_cached_stories: int
    total_cached_images: int
    total_image_size: int
    disk_usage: int
    oldest_cache_date: datetime | None
    newest_cache_date: datetime | None

    @property
    def formatted_description(self) -> str:
        oldest = self.oldest_cache_date.isoformat() if self.oldest_cache_date else "N/A"
        newest = self.newest_cache_date.isoformat() if self.newest_cache_date else "N/A"
        return (
            "Cache Statistics\n"
            f"Stories: {self.total_cached_stories} total, "
            f"{self.fresh_cached_stories} fresh, {self.stale_cached_stories} stale\n"
            f"Images: {self.total_cached_images} ({format_bytes(self.total_image_size)})\n"
            f"Disk usage: {format_bytes(self.disk_usage)}\n"
            f"Oldest: {oldest}\n"
            f"Newest: {newest}"
        )


# ─────────────────────────────────────────────────────────────
# Manager
# ─────────────────────────────────────────────────────────────

class StoryCacheManager:
    """
    Coordinates the story store, the image directory and image downloads.

    Operations on the same story are serialized by a per-story lock. Every
    phase that mutates the store or the image directory holds the store
    lock; downloads run outside it so unrelated stories are not blocked.
    """

    def __init__(
        self,
        db: Database,
        cache_dir: Path | None,
        fetcher: ImageSource | None = None,
        max_cache_size: int = DEFAULT_MAX_CACHE_SIZE,
    ):
        self.db = db
        self.cache_dir = cache_dir
        self.fetcher = fetcher
        self.max_cache_size = max_cache_size
        self._store_lock = asyncio.Lock()
        # Entries vanish once no coroutine holds or awaits the lock
        self._story_locks: weakref.WeakValueDictionary[int, asyncio.Lock] = weakref.WeakValueDictionary()

        if self.cache_dir is not None:
            try:
                self.image_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.warning(f"Could not create image cache directory {self.image_dir}: {e}")
            logger.info(f"Story image cache at {self.image_dir}")
        else:
            logger.warning("No cache directory configured; images will not be cached")

    @property
    def image_dir(self) -> Path:
        return self._require_cache_dir() / IMAGE_SUBDIR

    def _require_cache_dir(self) -> Path:
        if self.cache_dir is None:
            raise CacheDirectoryUnavailableError("Cache directory is not configured")
        return self.cache_dir

    def _story_lock(self, story_id: int) -> asyncio.Lock:
        lock = self._story_locks.get(story_id)
        if lock is None:
            lock = asyncio.Lock()
            self._story_locks[story_id] = lock
        return lock

    # ─────────────────────────────────────────────────────────────
    # Story caching
    # ─────────────────────────────────────────────────────────────

    async def cache_story(self, story: Story):
        """Cache the story row only, replacing any previous snapshot."""
        async with self._story_lock(story.id):
            await self._write_story_row(story)

    async def cache(self, story: Story) -> CacheReport:
        """
        Cache a story and download its main and gallery images.

        Images already cached for this story (same URL) are not downloaded
        again. A failed image is logged and reported; it never aborts the
        rest of the call. Returns once every image attempt has settled.
        """
        async with self._story_lock(story.id):
            await self._write_story_row(story)

            report = CacheReport(story_id=story.id)
            pending: list[tuple[StoryMedia, ImageType]] = []
            for media, image_type in self._image_targets(story):
                if self.db.images.get_by_url(media.url, story.id):
                    report.skipped += 1
                else:
                    pending.append((media, image_type))

            if pending and (self.fetcher is None or self.cache_dir is None):
                logger.warning(f"Story {story.id}: image downloads unavailable, {len(pending)} image(s) not cached")
                report.failed.extend(media.url for media, _ in pending)
                return report

            results = await asyncio.gather(
                *(self._cache_image(story.id, media, image_type) for media, image_type in pending),
                return_exceptions=True,
            )

            for (media, _), result in zip(pending, results):
                if result is True:
                    report.downloaded += 1
                else:
                    if isinstance(result, BaseException):
                        logger.error(f"Unexpected error caching image {media.url}", exc_info=result)
                    report.failed.append(media.url)

        logger.info(
            f"Cached story {story.id} ('{story.title}'): {report.downloaded} downloaded, "
            f"{report.skipped} already cached, {len(report.failed)} failed"
        )
        return report

    async def _write_story_row(self, story: Story):
        cached = CachedStory.from_story(story)
        async with self._store_lock:
            self.db.stories.upsert(cached)

    @staticmethod
    def _image_targets(story: Story) -> list[tuple[StoryMedia, ImageType]]:
        """Main and gallery images, first occurrence of each URL only."""
        targets: list[tuple[StoryMedia, ImageType]] = []
        seen: set[str] = set()
        candidates = [(story.image, ImageType.MAIN)] if story.image else []
        candidates += [(media, ImageType.GALLERY) for media in story.images or []]
        for media, image_type in candidates:
            if media.url in seen:
                continue
            seen.add(media.url)
            targets.append((media, image_type))
        return targets

    async def _cache_image(self, story_id: int, media: StoryMedia, image_type: ImageType) -> bool:
        """Download one image, write it to disk, then record it. Returns success."""
        try:
            fetched = await self.fetcher.fetch(media.url)
        except DownloadError as e:
            logger.warning(f"Story {story_id}: {e}")
            return False

        relative_path = f"{IMAGE_SUBDIR}/{image_filename(media.url, story_id, image_type)}"

        async with self._store_lock:
            if not self.db.stories.exists(story_id):
                logger.info(f"Story {story_id} was evicted during download; discarding {media.url}")
                return False
            try:
                path = self._write_file(relative_path, fetched)
            except OSError as e:
                logger.warning(f"Story {story_id}: failed to write {relative_path}: {e}")
                return False

            image = CachedImage.create(
                network_url=media.url,
                local_file_path=relative_path,
                story_id=story_id,
                image_type=image_type,
                width=media.width,
                height=media.height,
                alternative_text=media.alternative_text,
                caption=media.caption,
                content_type=fetched.content_type or media.mime,
                file_size=fetched.size,
            )
            try:
                self.db.images.add(image)
            except Exception:
                path.unlink(missing_ok=True)
                raise

        logger.debug(f"Image cached: {relative_path} ({format_bytes(fetched.size)})")
        return True

    def _write_file(self, relative_path: str, fetched: FetchedImage) -> Path:
        """Write bytes via a temporary file so a partial write is never at the final path."""
        path = self._require_cache_dir() / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".part")
        try:
            tmp_path.write_bytes(fetched.data)
            os.replace(tmp_path, path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
        return path

    # ─────────────────────────────────────────────────────────────
    # Reading
    # ─────────────────────────────────────────────────────────────

    def load_offline(self, story_id: int) -> OfflineStory:
        """
        Rebuild a cached story for offline reading.

        Image URLs whose files are on disk are replaced by local file URIs.

        Raises:
            StoryNotCachedError: No cached row for the story
            CorruptCacheEntryError: The row's workflow stage is unknown
        """
        cached = self.db.stories.get(story_id)
        if cached is None:
            raise StoryNotCachedError(story_id)

        story = cached.to_story()
        if story is None:
            raise CorruptCacheEntryError(
                story_id, f"unknown workflow stage '{cached.workflow_stage_raw}'"
            )

        images = self.db.images.get_for_story(story_id)
        local_uris: dict[str, str] = {}
        missing: list[str] = []
        for image in images:
            if image.is_file_present(self.cache_dir):
                local_uris[image.network_url] = image.local_file_url(self.cache_dir).absolute().as_uri()
            else:
                missing.append(image.network_url)

        return OfflineStory(
            story=self._with_local_images(story, local_uris),
            images=images,
            cached_at=cached.cached_at,
            is_fresh=cached.is_cache_fresh,
            missing_images=missing,
        )

    @staticmethod
    def _with_local_images(story: Story, local_uris: dict[str, str]) -> Story:
        def localize(media: StoryMedia) -> StoryMedia:
            uri = local_uris.get(media.url)
            return media.model_copy(update={"url": uri}) if uri else media

        update = {}
        if story.image:
            update["image"] = localize(story.image)
        if story.images is not None:
            update["images"] = [localize(media) for media in story.images]
        return story.model_copy(update=update)

    def get_cached_story(self, story_id: int) -> Story | None:
        """The cached story as originally fetched (remote image URLs), or None."""
        cached = self.db.stories.get(story_id)
        return cached.to_story() if cached else None

    def get_all_cached_stories(self) -> list[Story]:
        """Every readable cached story, most recently cached first."""
        stories = []
        for cached in self.db.stories.get_all():
            story = cached.to_story()
            if story is None:
                logger.warning(f"Skipping unreadable cached story {cached.id}")
                continue
            stories.append(story)
        return stories

    def get_cached_story_rows(self) -> list[CachedStory]:
        return self.db.stories.get_all()

    def is_story_cached(self, story_id: int) -> bool:
        return self.db.stories.exists(story_id)

    def get_cached_image(self, network_url: str, story_id: int) -> CachedImage | None:
        return self.db.images.get_by_url(network_url, story_id)

    def get_cached_images(self, story_id: int) -> list[CachedImage]:
        return self.db.images.get_for_story(story_id)

    def get_image(self, image_id: str) -> CachedImage | None:
        return self.db.images.get(image_id)

    def image_path(self, image: CachedImage) -> Path | None:
        """Path of the image file if it is present on disk right now."""
        if not image.is_file_present(self.cache_dir):
            return None
        return image.local_file_url(self.cache_dir)

    # ─────────────────────────────────────────────────────────────
    # Verification
    # ─────────────────────────────────────────────────────────────

    async def verify(self, story_id: int) -> VerifyReport:
        """
        Check every cached image of a story.

        Missing files are downloaded again when a fetcher is available;
        otherwise (or on failure) the row is kept and reported unavailable.
        last_verified_at is updated for every image still in the store.

        Raises:
            CacheDirectoryUnavailableError: No cache directory is configured
            StoryNotCachedError: Nothing is cached for the story
        """
        self._require_cache_dir()
        async with self._story_lock(story_id):
            images = self.db.images.get_for_story(story_id)
            if not images and not self.db.stories.exists(story_id):
                raise StoryNotCachedError(story_id)

            outcomes = await asyncio.gather(
                *(self._verify_image(image) for image in images),
                return_exceptions=True,
            )

            verified_at = utcnow()
            report = VerifyReport(story_id=story_id, verified_at=verified_at)
            async with self._store_lock:
                for image, outcome in zip(images, outcomes):
                    if isinstance(outcome, BaseException):
                        logger.error(f"Unexpected error verifying image {image.id}", exc_info=outcome)
                        outcome = VerificationStatus.UNAVAILABLE
                    report.results.append(ImageVerification(image.id, image.network_url, outcome))
                    self.db.images.mark_verified(image.id, verified_at)

        missing = report.count(VerificationStatus.UNAVAILABLE)
        if missing:
            logger.warning(f"Story {story_id}: {missing} cached image(s) unavailable")
        return report

    async def _verify_image(self, image: CachedImage) -> VerificationStatus:
        if image.is_file_present(self.cache_dir):
            return VerificationStatus.PRESENT
        if self.fetcher is None:
            return VerificationStatus.UNAVAILABLE

        try:
            fetched = await self.fetcher.fetch(image.network_url)
        except DownloadError as e:
            logger.warning(f"Could not restore image {image.id}: {e}")
            return VerificationStatus.UNAVAILABLE

        async with self._store_lock:
            # The row may have been removed by clear or stale pruning during the download
            if self.db.images.get(image.id) is None:
                logger.info(f"Image {image.id} was removed during verification; discarding download")
                return VerificationStatus.UNAVAILABLE
            try:
                self._write_file(image.local_file_path, fetched)
            except OSError as e:
                logger.warning(f"Could not rewrite image {image.local_file_path}: {e}")
                return VerificationStatus.UNAVAILABLE
            self.db.images.update_file(
                image.id,
                content_type=fetched.content_type or image.content_type,
                file_size=fetched.size,
                cached_at=utcnow(),
            )
        logger.info(f"Restored missing image {image.local_file_path}")
        return VerificationStatus.REDOWNLOADED

    # ─────────────────────────────────────────────────────────────
    # Eviction & maintenance
    # ─────────────────────────────────────────────────────────────

    async def evict(self, story_id: int) -> bool:
        """
        Remove a story, its image rows and their files.

        Files are deleted first. If any cannot be deleted, EvictionError is
        raised and the rows are left in place so the eviction can be retried.
        Returns False if neither rows nor files existed for the story.
        """
        async with self._story_lock(story_id):
            async with self._store_lock:
                return self._evict_locked(story_id)

    def _evict_locked(self, story_id: int) -> bool:
        images = self.db.images.get_for_story(story_id)
        story_exists = self.db.stories.exists(story_id)

        paths: list[Path] = []
        if self.cache_dir is not None:
            paths = [self.cache_dir / image.local_file_path for image in images]
            if self.image_dir.is_dir():
                # Leftovers from interrupted writes or older rows
                paths += list(self.image_dir.glob(f"story_{story_id}_*"))

        if not images and not story_exists and not paths:
            return False

        failed: list[str] = []
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.error(f"Failed to delete cached file {path}: {e}")
                failed.append(str(path))

        if failed:
            raise EvictionError(story_id, failed)

        self.db.stories.delete_with_images(story_id)
        logger.info(f"Evicted story {story_id} ({len(images)} image(s))")
        return True

    async def clear_cache(self) -> PruneResult:
        """Delete every cached story, image row and image file."""
        async with self._store_lock:
            result = PruneResult(
                stories_removed=self.db.stories.count(),
                images_removed=self.db.images.count(),
            )

            failed: list[str] = []
            if self.cache_dir is not None and self.image_dir.is_dir():
                for path in self.image_dir.iterdir():
                    try:
                        path.unlink()
                    except OSError as e:
                        logger.error(f"Failed to delete cached file {path}: {e}")
                        failed.append(str(path))
            if failed:
                raise EvictionError(None, failed)

            self.db.stories.delete_all_with_images()

        logger.info(
            f"Cache cleared: removed {result.stories_removed} stories and {result.images_removed} images"
        )
        return result

    async def remove_stale_cache(self, older_than_days: int) -> PruneResult:
        """Evict stories cached before the cutoff and delete images cached before it."""
        cutoff = utcnow() - timedelta(days=older_than_days)
        result = PruneResult()

        for cached in self.db.stories.get_older_than(cutoff):
            if await self.evict(cached.id):
                result.stories_removed += 1

        async with self._store_lock:
            for image in self.db.images.get_older_than(cutoff):
                path = image.local_file_url(self.cache_dir)
                if path is not None:
                    try:
                        path.unlink(missing_ok=True)
                    except OSError as e:
                        logger.error(f"Failed to delete stale image {path}: {e}")
                        continue
                self.db.images.delete(image.id)
                result.images_removed += 1

        logger.info(
            f"Removed {result.stories_removed} stale stories and {result.images_removed} stale images "
            f"(older than {older_than_days} days)"
        )
        return result

    async def enforce_cache_size_limit(self) -> int:
        """
        Evict the oldest quarter of cached stories when disk usage exceeds the limit.

        Returns the number of stories evicted.
        """
        if self.max_cache_size <= 0:
            return 0

        usage = self.disk_usage()
        if usage <= self.max_cache_size:
            return 0

        logger.warning(
            f"Cache size ({format_bytes(usage)}) exceeds limit ({format_bytes(self.max_cache_size)})"
        )
        total = self.db.stories.count()
        count = max(1, int(total * SIZE_LIMIT_EVICTION_FRACTION)) if total else 0

        removed = 0
        for cached in self.db.stories.get_oldest(count):
            if await self.evict(cached.id):
                removed += 1
        logger.info(f"Removed {removed} oldest cache entries")
        return removed

    # ─────────────────────────────────────────────────────────────
    # Statistics
    # ─────────────────────────────────────────────────────────────

    def disk_usage(self) -> int:
        """Bytes used by files in the image directory."""
        if self.cache_dir is None or not self.image_dir.is_dir():
            return 0
        total = 0
        for path in self.image_dir.rglob("*"):
            if path.is_file() and not path.name.startswith("."):
                total += path.stat().st_size
        return total

    def get_cache_stats(self) -> CacheStats:
        stories = self.db.stories.get_all()
        fresh = sum(1 for story in stories if story.is_cache_fresh)
        cached_dates = [story.cached_at for story in stories]

        return CacheStats(
            total_cached_stories=len(stories),
            fresh_cached_stories=fresh,
            stale_cached_stories=len(stories) - fresh,
            total_cached_images=self.db.images.count(),
            total_image_size=self.db.images.total_file_size(),
            disk_usage=self.disk_usage(),
            oldest_cache_date=min(cached_dates) if cached_dates else None,
            newest_cache_date=max(cached_dates) if cached_dates else None,
        )
