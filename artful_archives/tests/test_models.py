"""
Tests for the cached entities: snapshot round-trips, freshness and file presence.
"""

import json
from datetime import timedelta
from pathlib import Path
from unittest.mock import patch

import pytest

from artful_archives.database import CachedImage, CachedStory, ImageType
from artful_archives.database import models
from artful_archives.database.codec import BlobEncodeError, decode_blob, encode_blob
from artful_archives.database.models import utcnow
from artful_archives.domain import StoryAudio, StoryMedia
from artful_archives.tests.factories import make_full_story, make_media, make_story


class TestCachedStoryRoundTrip:

    def test_full_story_round_trip(self):
        """Every cached field comes back; strapi attributes are not cached."""
        story = make_full_story()

        restored = CachedStory.from_story(story).to_story()

        assert restored == story.model_copy(update={"strapi_attributes": None})

    def test_gallery_order_is_preserved(self):
        story = make_full_story()
        restored = CachedStory.from_story(story).to_story()
        assert [m.url for m in restored.images] == [m.url for m in story.images]

    def test_story_without_nested_fields(self):
        cached = CachedStory.from_story(make_story())

        assert cached.image_json is None
        assert cached.images_json is None
        assert cached.audio_json is None
        assert cached.localizations_json is None
        assert cached.created_by_json is None
        assert cached.to_story() == make_story()

    def test_empty_gallery_is_not_the_same_as_no_gallery(self):
        cached = CachedStory.from_story(make_story(images=[]))
        assert cached.images_json is not None
        assert cached.to_story().images == []

    def test_nested_blobs_are_json_with_iso_dates(self):
        story = make_full_story()
        cached = CachedStory.from_story(story)

        audio = json.loads(cached.audio_json)
        assert audio["english"] == "https://cdn.example.com/audio/en.mp3"
        localizations = json.loads(cached.localizations_json)
        assert [loc["locale"] for loc in localizations] == ["es", "hi"]

    def test_scalar_fields_are_copied(self):
        story = make_full_story()
        cached = CachedStory.from_story(story)

        assert cached.id == story.id
        assert cached.document_id == story.document_id
        assert cached.workflow_stage_raw == "multilingual_audio_approved"
        assert cached.visible is True
        assert cached.published_at == story.published_at


class TestCachedStoryFailures:

    def test_audio_encode_failure_keeps_the_rest(self):
        """A nested field that fails to encode is left empty; caching continues."""
        story = make_full_story()

        def failing_for_audio(value):
            if isinstance(value, StoryAudio):
                raise BlobEncodeError("boom")
            return encode_blob(value)

        with patch.object(models, "encode_blob", side_effect=failing_for_audio):
            cached = CachedStory.from_story(story)

        assert cached.audio_json is None
        assert cached.image_json is not None
        assert cached.images_json is not None
        assert cached.localizations_json is not None
        assert cached.created_by_json is not None
        assert cached.title == story.title

        restored = cached.to_story()
        assert restored.audio is None
        assert restored.image == story.image

    @pytest.mark.parametrize("raw", ["archived", "", "Approved"])
    def test_unknown_stage_fails_closed(self, raw):
        cached = CachedStory.from_story(make_full_story())
        cached.workflow_stage_raw = raw

        assert cached.workflow_stage is None
        assert cached.to_story() is None

    def test_undecodable_blob_becomes_absent(self):
        cached = CachedStory.from_story(make_full_story())
        cached.created_by_json = b"{not json"
        cached.images_json = b'{"unexpected": "shape"}'

        restored = cached.to_story()

        assert restored is not None
        assert restored.created_by is None
        assert restored.images is None
        assert restored.audio is not None


class TestFreshness:

    def test_story_fresh_just_under_24_hours(self):
        cached = CachedStory.from_story(make_story())
        cached.cached_at = utcnow() - timedelta(hours=23, minutes=59)
        assert cached.is_cache_fresh

    def test_story_stale_just_over_24_hours(self):
        cached = CachedStory.from_story(make_story())
        cached.cached_at = utcnow() - timedelta(hours=24, minutes=1)
        assert not cached.is_cache_fresh

    def test_new_story_snapshot_is_fresh(self):
        assert CachedStory.from_story(make_story()).is_cache_fresh

    def test_image_fresh_just_under_7_days(self):
        image = CachedImage.create("https://x/a.jpg", "StoryImages/a.jpg", 7, ImageType.MAIN)
        image.cached_at = utcnow() - timedelta(days=6, hours=23)
        assert image.is_cache_fresh

    def test_image_stale_just_over_7_days(self):
        image = CachedImage.create("https://x/a.jpg", "StoryImages/a.jpg", 7, ImageType.MAIN)
        image.cached_at = utcnow() - timedelta(days=7, hours=1)
        assert not image.is_cache_fresh


class TestCachedImage:

    def test_create_sets_timestamps(self):
        image = CachedImage.create(
            "https://x/a.jpg", "StoryImages/a.jpg", 7, ImageType.GALLERY,
            width=10, height=20, content_type="image/jpeg", file_size=99,
        )
        assert image.last_verified_at is None
        assert utcnow() - image.cached_at < timedelta(seconds=5)
        assert image.width == 10
        assert image.file_size == 99

    def test_ids_are_unique(self):
        first = CachedImage.create("https://x/a.jpg", "a.jpg", 7, ImageType.MAIN)
        second = CachedImage.create("https://x/a.jpg", "a.jpg", 7, ImageType.MAIN)
        assert first.id != second.id

    def test_local_file_url_joins_cache_dir(self, temp_cache_dir):
        image = CachedImage.create("https://x/a.jpg", "StoryImages/a.jpg", 7, ImageType.MAIN)
        assert image.local_file_url(temp_cache_dir) == temp_cache_dir / "StoryImages" / "a.jpg"

    def test_local_file_url_unavailable_without_cache_dir(self):
        image = CachedImage.create("https://x/a.jpg", "StoryImages/a.jpg", 7, ImageType.MAIN)
        assert image.local_file_url(None) is None
        assert image.is_file_present(None) is False

    def test_file_presence_is_checked_on_demand(self, temp_cache_dir):
        image = CachedImage.create("https://x/a.jpg", "StoryImages/a.jpg", 7, ImageType.MAIN)
        assert not image.is_file_present(temp_cache_dir)

        path: Path = temp_cache_dir / "StoryImages" / "a.jpg"
        path.parent.mkdir(parents=True)
        path.write_bytes(b"data")
        assert image.is_file_present(temp_cache_dir)

        path.unlink()
        assert not image.is_file_present(temp_cache_dir)
        assert image.last_verified_at is None


class TestCodec:

    def test_list_round_trip(self):
        gallery = [make_media(1, "https://x/1.jpg"), make_media(2, "https://x/2.jpg")]
        assert decode_blob(encode_blob(gallery), list[StoryMedia]) == gallery

    def test_encoding_is_compact(self):
        assert b" " not in encode_blob(make_media(1, "https://x/1.jpg", alternative_text="a"))
