"""
FastAPI Dependencies

Reusable providers for the cache service, settings and admin authentication.

The cache service is stored on app.state by the lifespan handler. When the
lifespan has not run (TestClient without a context manager), the lazy
process-wide singleton is used instead.
"""

import secrets
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from tagcache.application.services.cache_service import CacheService, get_cache_service
from tagcache.core.config.settings import Settings, get_settings
from tagcache.core.logging.logger import get_logger

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_cache(request: Request) -> CacheService:
    """Retrieve the CacheService from application state, or the singleton."""
    service = getattr(request.app.state, "cache_service", None)
    if service is None:
        service = get_cache_service()
        request.app.state.cache_service = service
    return service


async def verify_admin_access(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> None:
    """
    Require `Authorization: Bearer <ADMIN_SECRET>`.

    Every call is rejected while ADMIN_SECRET is unset.

    Raises:
        HTTPException: 401 if the token is missing or wrong
    """
    expected = settings.app.ADMIN_SECRET
    supplied = credentials.credentials if credentials else None

    if not expected or not supplied or not secrets.compare_digest(supplied, expected):
        logger.warning(
            "Admin access denied",
            stage="ADMIN.AUTH",
            secret_configured=bool(expected),
            token_supplied=bool(supplied),
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


# Type aliases for route signatures
CacheServiceDep = Annotated[CacheService, Depends(get_cache)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
