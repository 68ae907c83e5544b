"""
API route modules.
"""

from .cache import router as cache_router
from .misc import router as misc_router

__all__ = [
    "cache_router",
    "misc_router",
]
