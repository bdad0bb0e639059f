"""
X-API-KEY authentication for search, embedding and admin routes.

Keys come from the comma-separated API_KEYS setting. With no keys set the
API runs open, which is only meant for local development.
"""

import secrets

import structlog
from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

from tasksearch.config.settings import get_settings

logger = structlog.get_logger(__name__)

api_key_header = APIKeyHeader(name="X-API-KEY", auto_error=False)

DEV_MODE_KEY = "dev-mode"


def _matches_any(candidate: str, valid_keys: list[str]) -> bool:
    return any(secrets.compare_digest(candidate, key) for key in valid_keys)


async def verify_api_key(api_key: str | None = Security(api_key_header)) -> str:
    """
    Resolve the caller's API key.

    Returns:
        The presented key, or DEV_MODE_KEY when no keys are configured

    Raises:
        HTTPException: 401 when the key is missing or unknown
    """
    settings = get_settings()
    valid_keys = settings.api_key_list

    if not valid_keys:
        if settings.is_production:
            logger.warning("API_KEYS is empty in production; requests are unauthenticated")
        return DEV_MODE_KEY

    if api_key is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Provide X-API-KEY header.",
        )

    if not _matches_any(api_key, valid_keys):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )

    return api_key
