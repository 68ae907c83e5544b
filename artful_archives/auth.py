"""
API key check for mutating cache endpoints.

Reads stay open so an offline reader never needs a key. When AUTH_API_KEY
is empty the check is skipped (local development).
"""

import secrets

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from .config import AppContext, get_context

API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "ApiKey"},
    )


def verify_api_key(
    context: AppContext = Depends(get_context),
    api_key: str | None = Security(API_KEY_HEADER),
) -> str:
    """
    Require the configured X-API-Key header.

    Returns:
        The accepted key, or "" when no key is configured

    Raises:
        HTTPException: 401 when the key is missing or wrong
    """
    expected = context.config.AUTH_API_KEY
    if not expected:
        return ""

    if not api_key:
        raise _unauthorized("Missing API key. Provide X-API-Key header.")
    if not secrets.compare_digest(api_key.encode(), expected.encode()):
        raise _unauthorized("Invalid API key")
    return api_key
