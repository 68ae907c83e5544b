"""
Database row converters - convert SQLite rows to dataclasses and back.
"""

import sqlite3
from datetime import datetime, timezone

from .models import CachedImage, CachedStory, ImageType

# Unreadable cache timestamps fall back to the epoch so the row reads as stale
EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat(timespec="microseconds") if value else None


def _blob(value) -> bytes | None:
    return bytes(value) if value is not None else None


def row_to_cached_story(row: sqlite3.Row) -> CachedStory:
    """Convert a database row to a CachedStory."""
    cached_at = _parse_timestamp(row["cached_at"]) or EPOCH
    created_at = _parse_timestamp(row["created_at"]) or cached_at
    updated_at = _parse_timestamp(row["updated_at"]) or created_at

    return CachedStory(
        id=row["id"],
        document_id=row["document_id"],
        title=row["title"],
        slug=row["slug"],
        body_message=row["body_message"],
        excerpt=row["excerpt"],
        visible=bool(row["visible"]),
        workflow_stage_raw=row["workflow_stage_raw"],
        created_at=created_at,
        updated_at=updated_at,
        cached_at=cached_at,
        locale=row["locale"],
        published_at=_parse_timestamp(row["published_at"]),
        image_json=_blob(row["image_json"]),
        images_json=_blob(row["images_json"]),
        audio_json=_blob(row["audio_json"]),
        localizations_json=_blob(row["localizations_json"]),
        created_by_json=_blob(row["created_by_json"]),
    )


def cached_story_to_params(story: CachedStory) -> tuple:
    """Column values for an INSERT into cached_stories, in schema order."""
    return (
        story.id,
        story.document_id,
        story.title,
        story.slug,
        story.body_message,
        story.excerpt,
        story.visible,
        story.locale,
        story.image_json,
        story.images_json,
        story.audio_json,
        story.localizations_json,
        story.created_by_json,
        story.workflow_stage_raw,
        _format_timestamp(story.created_at),
        _format_timestamp(story.updated_at),
        _format_timestamp(story.published_at),
        _format_timestamp(story.cached_at),
    )


def row_to_cached_image(row: sqlite3.Row) -> CachedImage:
    """Convert a database row to a CachedImage."""
    try:
        image_type = ImageType(row["image_type"])
    except ValueError:
        image_type = ImageType.OTHER

    cached_at = _parse_timestamp(row["cached_at"]) or EPOCH

    return CachedImage(
        id=row["id"],
        network_url=row["network_url"],
        local_file_path=row["local_file_path"],
        image_type=image_type,
        story_id=row["story_id"],
        cached_at=cached_at,
        width=row["width"],
        height=row["height"],
        alternative_text=row["alternative_text"],
        caption=row["caption"],
        content_type=row["content_type"],
        file_size=row["file_size"],
        last_verified_at=_parse_timestamp(row["last_verified_at"]),
    )


def cached_image_to_params(image: CachedImage) -> tuple:
    """Column values for an INSERT into cached_images, in schema order."""
    return (
        image.id,
        image.network_url,
        image.local_file_path,
        image.image_type.value,
        image.width,
        image.height,
        image.alternative_text,
        image.caption,
        image.content_type,
        image.file_size,
        image.story_id,
        _format_timestamp(image.cached_at),
        _format_timestamp(image.last_verified_at),
    )
