"""
Database connection management and schema initialization.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


class DatabaseConnection:
    """Manages database connection and schema."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @contextmanager
    def conn(self) -> Iterator[sqlite3.Connection]:
        """Get database connection with row factory. Commits on success, rolls back on error."""
        connection = sqlite3.connect(self.db_path)
        connection.row_factory = sqlite3.Row
        try:
            yield connection
            connection.commit()
        except BaseException:
            connection.rollback()
            raise
        finally:
            connection.close()

    def _init_schema(self):
        """Initialize database schema."""
        with self.conn() as connection:
            connection.executescript("""
                CREATE TABLE IF NOT EXISTS cached_stories (
                    id INTEGER PRIMARY KEY,
                    document_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    slug TEXT NOT NULL,
                    body_message TEXT NOT NULL,
                    excerpt TEXT NOT NULL,
                    visible BOOLEAN NOT NULL DEFAULT FALSE,
                    locale TEXT,
                    image_json BLOB,
                    images_json BLOB,
                    audio_json BLOB,
                    localizations_json BLOB,
                    created_by_json BLOB,
                    workflow_stage_raw TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL,
                    published_at TIMESTAMP,
                    cached_at TIMESTAMP NOT NULL
                );

                CREATE TABLE IF NOT EXISTS cached_images (
                    id TEXT PRIMARY KEY,
                    network_url TEXT NOT NULL,
                    local_file_path TEXT NOT NULL,
                    image_type TEXT NOT NULL
                        CHECK(image_type IN ('main', 'gallery', 'thumbnail', 'other')),
                    width INTEGER,
                    height INTEGER,
                    alternative_text TEXT,
                    caption TEXT,
                    content_type TEXT,
                    file_size INTEGER,
                    story_id INTEGER NOT NULL,
                    cached_at TIMESTAMP NOT NULL,
                    last_verified_at TIMESTAMP,
                    UNIQUE (network_url, story_id)
                );

                CREATE INDEX IF NOT EXISTS idx_cached_stories_cached ON cached_stories(cached_at DESC);
                CREATE INDEX IF NOT EXISTS idx_cached_images_story ON cached_images(story_id);
                CREATE INDEX IF NOT EXISTS idx_cached_images_cached ON cached_images(cached_at);
            """)

            # Migrations
            self._migrate_add_column(connection, "cached_images", "last_verified_at", "TIMESTAMP")

    def _migrate_add_column(
        self,
        conn: sqlite3.Connection,
        table: str,
        column: str,
        column_type: str
    ):
        """Add a column to a table if it doesn't exist."""
        cursor = conn.execute(f"PRAGMA table_info({table})")
        columns = [row[1] for row in cursor.fetchall()]
        if column not in columns:
            conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {column_type}")
