"""
Database module - SQLite storage for cached stories and images.

Uses repository pattern for better separation of concerns.
"""

from .connection import DatabaseConnection
from .models import CachedImage, CachedStory, ImageType
from .story_repository import CachedStoryRepository
from .image_repository import CachedImageRepository
from .database import Database

__all__ = [
    "Database",
    "DatabaseConnection",
    "CachedImage",
    "CachedStory",
    "ImageType",
    "CachedStoryRepository",
    "CachedImageRepository",
]
