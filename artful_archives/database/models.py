"""
Database models - dataclasses for cached entities.

CachedStory and CachedImage are plain data holders. The only filesystem
access they perform is the read-only presence check on CachedImage.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from ..domain import (
    Story,
    StoryAudio,
    StoryAuthor,
    StoryLocalization,
    StoryMedia,
    WorkflowStage,
)
from .codec import BlobDecodeError, BlobEncodeError, decode_blob, encode_blob

logger = logging.getLogger(__name__)

STORY_FRESHNESS = timedelta(hours=24)
IMAGE_FRESHNESS = timedelta(days=7)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ImageType(str, Enum):
    """The role an image plays in its story."""
    MAIN = "main"
    GALLERY = "gallery"
    THUMBNAIL = "thumbnail"
    OTHER = "other"


@dataclass
class CachedImage:
    id: str
    network_url: str
    local_file_path: str  # relative to the image cache directory
    image_type: ImageType
    story_id: int
    cached_at: datetime
    width: int | None = None
    height: int | None = None
    alternative_text: str | None = None
    caption: str | None = None
    content_type: str | None = None
    file_size: int | None = None
    last_verified_at: datetime | None = None

    @classmethod
    def create(
        cls,
        network_url: str,
        local_file_path: str,
        story_id: int,
        image_type: ImageType,
        width: int | None = None,
        height: int | None = None,
        alternative_text: str | None = None,
        caption: str | None = None,
        content_type: str | None = None,
        file_size: int | None = None,
    ) -> "CachedImage":
        """Create a new entry for an image that was just written to disk."""
        return cls(
            id=str(uuid.uuid4()),
            network_url=network_url,
            local_file_path=local_file_path,
            image_type=image_type,
            story_id=story_id,
            cached_at=utcnow(),
            width=width,
            height=height,
            alternative_text=alternative_text,
            caption=caption,
            content_type=content_type,
            file_size=file_size,
            last_verified_at=None,
        )

    def local_file_url(self, cache_dir: Path | None) -> Path | None:
        """Full path of the cached file, or None when the cache directory is unknown."""
        if cache_dir is None:
            return None
        return cache_dir / self.local_file_path

    def is_file_present(self, cache_dir: Path | None) -> bool:
        """Check, at call time, whether the cached file exists."""
        path = self.local_file_url(cache_dir)
        return path is not None and path.is_file()

    @property
    def cache_age(self) -> timedelta:
        return utcnow() - self.cached_at

    @property
    def is_cache_fresh(self) -> bool:
        return self.cache_age < IMAGE_FRESHNESS


# Nested story fields and the type each blob decodes to
NESTED_FIELDS: dict[str, tuple[str, Any]] = {
    "image": ("image_json", StoryMedia),
    "images": ("images_json", list[StoryMedia]),
    "audio": ("audio_json", StoryAudio),
    "localizations": ("localizations_json", list[StoryLocalization]),
    "created_by": ("created_by_json", StoryAuthor),
}


@dataclass
class CachedStory:
    id: int
    document_id: str
    title: str
    slug: str
    body_message: str
    excerpt: str
    visible: bool
    workflow_stage_raw: str
    created_at: datetime
    updated_at: datetime
    cached_at: datetime = field(default_factory=utcnow)
    locale: str | None = None
    published_at: datetime | None = None
    image_json: bytes | None = None
    images_json: bytes | None = None
    audio_json: bytes | None = None
    localizations_json: bytes | None = None
    created_by_json: bytes | None = None

    @classmethod
    def from_story(cls, story: Story) -> "CachedStory":
        """
        Snapshot a Story for offline storage.

        Each nested field is encoded independently. A field that fails to
        encode is left empty; the rest of the story is still cached.
        """
        cached = cls(
            id=story.id,
            document_id=story.document_id,
            title=story.title,
            slug=story.slug,
            body_message=story.body_message,
            excerpt=story.excerpt,
            visible=story.visible,
            workflow_stage_raw=story.workflow_stage.value,
            created_at=story.created_at,
            updated_at=story.updated_at,
            cached_at=utcnow(),
            locale=story.locale,
            published_at=story.published_at,
        )

        for name, (column, _) in NESTED_FIELDS.items():
            value = getattr(story, name)
            if value is None:
                continue
            try:
                setattr(cached, column, encode_blob(value))
            except BlobEncodeError as e:
                logger.warning(f"Story {story.id}: skipping '{name}' in cache: {e}")

        return cached

    def to_story(self) -> Story | None:
        """
        Rebuild the Story from this row.

        Nested fields that fail to decode come back as None. Returns None
        if the workflow stage tag is not a known stage.
        """
        stage = self.workflow_stage
        if stage is None:
            logger.warning(f"Cached story {self.id} has unknown workflow stage '{self.workflow_stage_raw}'")
            return None

        nested: dict[str, Any] = {}
        for name, (column, target) in NESTED_FIELDS.items():
            data = getattr(self, column)
            if data is None:
                nested[name] = None
                continue
            try:
                nested[name] = decode_blob(data, target)
            except BlobDecodeError as e:
                logger.warning(f"Cached story {self.id}: dropping '{name}': {e}")
                nested[name] = None

        return Story(
            id=self.id,
            document_id=self.document_id,
            title=self.title,
            slug=self.slug,
            body_message=self.body_message,
            excerpt=self.excerpt,
            workflow_stage=stage,
            visible=self.visible,
            locale=self.locale,
            created_at=self.created_at,
            updated_at=self.updated_at,
            published_at=self.published_at,
            strapi_attributes=None,  # not cached
            **nested,
        )

    @property
    def workflow_stage(self) -> WorkflowStage | None:
        return WorkflowStage.parse(self.workflow_stage_raw)

    @property
    def cache_age(self) -> timedelta:
        return utcnow() - self.cached_at

    @property
    def is_cache_fresh(self) -> bool:
        return self.cache_age < STORY_FRESHNESS
