"""
Cached image repository - metadata rows for image files on disk.
"""

from datetime import datetime

from .connection import DatabaseConnection
from .converters import cached_image_to_params, row_to_cached_image
from .models import CachedImage

_IMAGE_COLUMNS = (
    "id, network_url, local_file_path, image_type, width, height, "
    "alternative_text, caption, content_type, file_size, story_id, "
    "cached_at, last_verified_at"
)


class CachedImageRepository:
    """Repository for cached image rows."""

    def __init__(self, db: DatabaseConnection):
        self._db = db

    def add(self, image: CachedImage):
        """Insert an image row, replacing any row for the same URL and story."""
        with self._db.conn() as conn:
            conn.execute(
                "DELETE FROM cached_images WHERE network_url = ? AND story_id = ?",
                (image.network_url, image.story_id)
            )
            conn.execute(
                f"INSERT INTO cached_images ({_IMAGE_COLUMNS}) "
                f"VALUES ({', '.join('?' * 13)})",
                cached_image_to_params(image)
            )

    def get(self, image_id: str) -> CachedImage | None:
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT * FROM cached_images WHERE id = ?", (image_id,)
            ).fetchone()
            return row_to_cached_image(row) if row else None

    def get_by_url(self, network_url: str, story_id: int) -> CachedImage | None:
        with self._db.conn() as conn:
            row = conn.execute(
                "SELECT * FROM cached_images WHERE network_url = ? AND story_id = ?",
                (network_url, story_id)
            ).fetchone()
            return row_to_cached_image(row) if row else None

    def get_for_story(self, story_id: int) -> list[CachedImage]:
        """Images belonging to a story, oldest first."""
        with self._db.conn() as conn:
            rows = conn.execute(
                "SELECT * FROM cached_images WHERE story_id = ? ORDER BY cached_at, rowid",
                (story_id,)
            ).fetchall()
            return [row_to_cached_image(row) for row in rows]

    def get_all(self) -> list[CachedImage]:
        with self._db.conn() as conn:
            rows = conn.execute(
                "SELECT * FROM cached_images ORDER BY cached_at, rowid"
            ).fetchall()
            return [row_to_cached_image(row) for row in rows]

    def get_older_than(self, cutoff: datetime) -> list[CachedImage]:
        with self._db.conn() as conn:
            rows = conn.execute(
                "SELECT * FROM cached_images WHERE cached_at < ?", (cutoff.isoformat(timespec="microseconds"),)
            ).fetchall()
            return [row_to_cached_image(row) for row in rows]

    def mark_verified(self, image_id: str, verified_at: datetime):
        with self._db.conn() as conn:
            conn.execute(
                "UPDATE cached_images SET last_verified_at = ? WHERE id = ?",
                (verified_at.isoformat(timespec="microseconds"), image_id)
            )

    def update_file(
        self,
        image_id: str,
        content_type: str | None,
        file_size: int,
        cached_at: datetime,
    ):
        """Record a re-downloaded file for an existing row."""
        with self._db.conn() as conn:
            conn.execute(
                """UPDATE cached_images
                   SET content_type = ?, file_size = ?, cached_at = ?
                   WHERE id = ?""",
                (content_type, file_size, cached_at.isoformat(timespec="microseconds"), image_id)
            )

    def delete(self, image_id: str) -> bool:
        with self._db.conn() as conn:
            cursor = conn.execute("DELETE FROM cached_images WHERE id = ?", (image_id,))
            return cursor.rowcount > 0

    def count(self) -> int:
        with self._db.conn() as conn:
            return conn.execute("SELECT COUNT(*) FROM cached_images").fetchone()[0]

    def total_file_size(self) -> int:
        with self._db.conn() as conn:
            return conn.execute(
                "SELECT COALESCE(SUM(file_size), 0) FROM cached_images"
            ).fetchone()[0]
