"""
Miscellaneous routes: health check.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from ..config import AppContext, get_context

router = APIRouter(tags=["misc"])


@router.get("/status")
async def health_check(context: Annotated[AppContext, Depends(get_context)]) -> dict:
    """API health check."""
    return {
        "status": "ok",
        "version": "1.0.0",
        "auth_enabled": bool(context.config.AUTH_API_KEY),
        "remote_enabled": context.api_client is not None,
        "downloads_enabled": context.cache_manager.fetcher is not None,
    }
