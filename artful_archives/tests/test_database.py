"""
Tests for the cache store repositories.
"""

import sqlite3
from datetime import timedelta

import pytest

from artful_archives.database import CachedImage, CachedStory, ImageType
from artful_archives.database.models import utcnow
from artful_archives.tests.factories import make_full_story, make_story


def _image(url: str, story_id: int = 7, image_type: ImageType = ImageType.MAIN) -> CachedImage:
    return CachedImage.create(url, f"StoryImages/{url.rsplit('/', 1)[-1]}", story_id, image_type, file_size=10)


class TestStoryRepository:

    def test_upsert_and_get(self, test_db):
        cached = CachedStory.from_story(make_full_story())
        test_db.stories.upsert(cached)

        loaded = test_db.stories.get(7)

        assert loaded == cached
        assert loaded.to_story() == cached.to_story()

    def test_upsert_replaces_previous_snapshot(self, test_db):
        test_db.stories.upsert(CachedStory.from_story(make_story(title="Old")))
        test_db.stories.upsert(CachedStory.from_story(make_story(title="New")))

        assert test_db.stories.count() == 1
        assert test_db.stories.get(7).title == "New"

    def test_get_missing(self, test_db):
        assert test_db.stories.get(99) is None
        assert not test_db.stories.exists(99)

    def test_get_all_most_recent_first(self, test_db):
        now = utcnow()
        for story_id, age in ((1, 3), (2, 1), (3, 2)):
            cached = CachedStory.from_story(make_story(id=story_id))
            cached.cached_at = now - timedelta(hours=age)
            test_db.stories.upsert(cached)

        assert [s.id for s in test_db.stories.get_all()] == [2, 3, 1]
        assert [s.id for s in test_db.stories.get_oldest(2)] == [1, 3]
        assert [s.id for s in test_db.stories.get_older_than(now - timedelta(hours=2))] == [1]

    def test_delete_with_images(self, test_db):
        test_db.stories.upsert(CachedStory.from_story(make_story(id=7)))
        test_db.stories.upsert(CachedStory.from_story(make_story(id=8)))
        test_db.images.add(_image("https://x/a.jpg", story_id=7))
        test_db.images.add(_image("https://x/b.jpg", story_id=8))

        assert test_db.stories.delete_with_images(7) is True
        assert test_db.stories.delete_with_images(7) is False
        assert not test_db.stories.exists(7)
        assert test_db.images.get_for_story(7) == []
        assert test_db.images.count() == 1

        assert test_db.stories.delete_all_with_images() == 1
        assert test_db.stories.count() == 0
        assert test_db.images.count() == 0

    def test_delete_with_images_is_one_transaction(self, test_db):
        test_db.stories.upsert(CachedStory.from_story(make_story()))
        test_db.images.add(_image("https://x/a.jpg"))
        with sqlite3.connect(test_db.db_path) as conn:
            conn.execute(
                "CREATE TRIGGER keep_stories BEFORE DELETE ON cached_stories "
                "BEGIN SELECT RAISE(ABORT, 'story rows are read-only'); END"
            )

        with pytest.raises(sqlite3.IntegrityError):
            test_db.stories.delete_with_images(7)

        assert test_db.stories.exists(7)
        assert test_db.images.count() == 1

    def test_unknown_stage_is_stored_verbatim(self, test_db):
        cached = CachedStory.from_story(make_story())
        cached.workflow_stage_raw = "archived"
        test_db.stories.upsert(cached)

        loaded = test_db.stories.get(7)
        assert loaded.workflow_stage_raw == "archived"
        assert loaded.to_story() is None

    def test_unreadable_cached_at_reads_as_stale(self, test_db):
        test_db.stories.upsert(CachedStory.from_story(make_story()))
        with sqlite3.connect(test_db.db_path) as conn:
            conn.execute("UPDATE cached_stories SET cached_at = 'garbage' WHERE id = 7")

        assert not test_db.stories.get(7).is_cache_fresh


class TestImageRepository:

    def test_add_and_lookup(self, test_db):
        image = _image("https://x/a.jpg")
        test_db.images.add(image)

        assert test_db.images.get(image.id) == image
        assert test_db.images.get_by_url("https://x/a.jpg", 7) == image
        assert test_db.images.get_by_url("https://x/a.jpg", 8) is None

    def test_one_row_per_url_and_story(self, test_db):
        first = _image("https://x/a.jpg")
        second = _image("https://x/a.jpg")
        test_db.images.add(first)
        test_db.images.add(second)

        assert test_db.images.count() == 1
        assert test_db.images.get_by_url("https://x/a.jpg", 7).id == second.id

    def test_same_url_in_two_stories(self, test_db):
        test_db.images.add(_image("https://x/a.jpg", story_id=7))
        test_db.images.add(_image("https://x/a.jpg", story_id=8))

        assert test_db.images.count() == 2
        assert len(test_db.images.get_for_story(7)) == 1

    def test_get_for_story_in_insertion_order(self, test_db):
        urls = [f"https://x/{n}.jpg" for n in range(5)]
        for url in urls:
            test_db.images.add(_image(url, image_type=ImageType.GALLERY))

        assert [i.network_url for i in test_db.images.get_for_story(7)] == urls

    def test_mark_verified(self, test_db):
        image = _image("https://x/a.jpg")
        test_db.images.add(image)
        verified_at = utcnow()

        test_db.images.mark_verified(image.id, verified_at)

        assert test_db.images.get(image.id).last_verified_at == verified_at

    def test_update_file(self, test_db):
        image = _image("https://x/a.jpg")
        test_db.images.add(image)
        later = image.cached_at + timedelta(minutes=5)

        test_db.images.update_file(image.id, content_type="image/png", file_size=42, cached_at=later)

        updated = test_db.images.get(image.id)
        assert updated.content_type == "image/png"
        assert updated.file_size == 42
        assert updated.cached_at == later

    def test_sizes_and_delete(self, test_db):
        test_db.images.add(_image("https://x/a.jpg", story_id=7))
        test_db.images.add(_image("https://x/b.jpg", story_id=7))
        test_db.images.add(_image("https://x/c.jpg", story_id=8))

        assert test_db.images.total_file_size() == 30
        image = test_db.images.get_for_story(8)[0]
        assert test_db.images.delete(image.id) is True
        assert test_db.images.delete(image.id) is False
        assert test_db.images.total_file_size() == 20

    def test_image_type_is_constrained(self, test_db):
        image = _image("https://x/a.jpg")
        test_db.images.add(image)
        with sqlite3.connect(test_db.db_path) as conn:
            with pytest.raises(sqlite3.IntegrityError):
                conn.execute("UPDATE cached_images SET image_type = 'banner'")
        assert test_db.images.get(image.id).image_type is ImageType.MAIN
