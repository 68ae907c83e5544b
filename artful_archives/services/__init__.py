"""
Service layer for business logic.

Services encapsulate business logic, keeping routes as thin HTTP adapters.
Each service receives its dependencies via constructor injection.

Usage in routes:
    from ..services import StoryCacheManagerDep

    @router.get("/cache/stats")
    async def cache_stats(manager: StoryCacheManagerDep):
        return manager.get_cache_stats()
"""

from typing import Annotated

from fastapi import Depends

from ..config import get_cache_manager

from .story_cache import StoryCacheManager

__all__ = [
    "StoryCacheManager",
    "StoryCacheManagerDep",
]

StoryCacheManagerDep = Annotated[StoryCacheManager, Depends(get_cache_manager)]
