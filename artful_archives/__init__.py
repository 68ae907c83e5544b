"""
Artful Archives Cache

Offline cache for stories from the Artful Archives CMS: a SQLite mirror of
story snapshots, a local image store, and a FastAPI service for offline readers.
"""

__version__ = "1.0.0"
