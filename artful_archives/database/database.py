"""
Database facade - provides unified access to the cache repositories.
"""

from pathlib import Path

from .connection import DatabaseConnection
from .image_repository import CachedImageRepository
from .story_repository import CachedStoryRepository


class Database:
    """
    Unified database access facade.

    One instance owns the local store; only the cache manager writes to it.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._connection = DatabaseConnection(db_path)

        # Initialize repositories
        self.stories = CachedStoryRepository(self._connection)
        self.images = CachedImageRepository(self._connection)
