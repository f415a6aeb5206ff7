import secrets
from typing import Optional

from fastapi import HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from streamfeed.core.config import settings
from streamfeed.services.media import MediaChecker
from streamfeed.services.omdb import OmdbClient
from streamfeed.services.seed import SeedReconciler

admin_token_scheme = APIKeyHeader(name="X-Admin-Token", auto_error=False)


def get_reconciler(request: Request) -> SeedReconciler:
    return request.app.state.reconciler


def get_media(request: Request) -> MediaChecker:
    return request.app.state.media


def get_omdb() -> OmdbClient:
    return OmdbClient(settings.OMDB_API_KEY, base_url=settings.OMDB_URL)


def require_admin(token: Optional[str] = Security(admin_token_scheme)) -> str:
    """
    Guard for /admin routes. Returns the caller id used in audit entries.

    Raises:
        HTTPException: 403 when no admin token is configured or it does not match.
    """
    expected = settings.ADMIN_TOKEN
    if not expected or not token or not secrets.compare_digest(token, expected):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin privileges required")
    return "admin"
