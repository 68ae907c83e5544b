"""
Cached story repository - row operations for offline story snapshots.
"""

from datetime import datetime

from .connection import DatabaseConnection
from .converters import cached_story_to_params, row_to_cached_story
from .models import CachedStory

_STORY_COLUMNS = (
    "id, document_id, title, slug, body_message, excerpt, visible, locale, "
    "image_json, images_json, audio_json, localizations_json, created_by_json, "
    "workflow_stage_raw, created_at, updated_at, published_at, cached_at"
)


class CachedStoryRepository:
    """Repository for cached story rows."""

    def __init__(self, db: DatabaseConnection):
        self._db = db

    def upsert(self, story: CachedStory):
        """Insert the row, replacing any existing row with the same id."""
        with self._db.conn() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO cached_stories ({_STORY_COLUMNS}) "
                f"VALUES ({', '.join('?' * 18)})",
                cached_story_to_params(story)
            )

    def get(self, story_id: int) -> CachedStory | None:
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT * FROM cached_stories WHERE id = ?", (story_id,)
            ).fetchone()
            return row_to_cached_story(row) if row else None

    def get_all(self) -> list[CachedStory]:
        """All cached stories, most recently cached first."""
        with self._db.conn() as conn:
            rows = conn.execute(
                "SELECT * FROM cached_stories ORDER BY cached_at DESC"
            ).fetchall()
            return [row_to_cached_story(row) for row in rows]

    def get_older_than(self, cutoff: datetime) -> list[CachedStory]:
        with self._db.conn() as conn:
            rows = conn.execute(
                "SELECT * FROM cached_stories WHERE cached_at < ? ORDER BY cached_at",
                (cutoff.isoformat(timespec="microseconds"),)
            ).fetchall()
            return [row_to_cached_story(row) for row in rows]

    def get_oldest(self, limit: int) -> list[CachedStory]:
        with self._db.conn() as conn:
            rows = conn.execute(
                "SELECT * FROM cached_stories ORDER BY cached_at LIMIT ?", (limit,)
            ).fetchall()
            return [row_to_cached_story(row) for row in rows]

    def exists(self, story_id: int) -> bool:
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT 1 FROM cached_stories WHERE id = ?", (story_id,)
            ).fetchone()
            return row is not None

    def count(self) -> int:
        with self._db.conn() as conn:
            return conn.execute("SELECT COUNT(*) FROM cached_stories").fetchone()[0]

    def delete_with_images(self, story_id: int) -> bool:
        """Delete a story and its image rows in one transaction. Returns True if the story row existed."""
        with self._db.conn() as conn:
            conn.execute("DELETE FROM cached_images WHERE story_id = ?", (story_id,))
            cursor = conn.execute("DELETE FROM cached_stories WHERE id = ?", (story_id,))
            return cursor.rowcount > 0

    def delete_all_with_images(self) -> int:
        """Delete every story and image row in one transaction. Returns the number of stories removed."""
        with self._db.conn() as conn:
            conn.execute("DELETE FROM cached_images")
            return conn.execute("DELETE FROM cached_stories").rowcount
