"""Authentication and service dependencies for FastAPI."""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .resolver import SessionResolver
from ..api.errors import problem_from_error
from ..core.errors import SiteTrackerError, Unauthenticated
from ..domain.principal import Principal
from ..repositories.dependencies import get_session_repository, get_site_repository
from ..repositories.interfaces import SessionRepository, TrackedSiteRepository
from ..services.registrar import SiteRegistrar

# auto_error=False so a missing header gets the same 401 as a bad one
security = HTTPBearer(auto_error=False)


def get_session_resolver(
    sessions: SessionRepository = Depends(get_session_repository),
) -> SessionResolver:
    """Get a session resolver bound to the request's session store."""
    return SessionResolver(sessions)


def get_site_registrar(
    sites: TrackedSiteRepository = Depends(get_site_repository),
) -> SiteRegistrar:
    """Get a site registrar bound to the request's site store."""
    return SiteRegistrar(sites)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    resolver: SessionResolver = Depends(get_session_resolver),
) -> Principal:
    """
    Get the authenticated principal from the Bearer access token.

    Any credential failure becomes a 401 problem response; a session store
    failure becomes a 503, never a generic 500.
    """
    try:
        if credentials is None or not credentials.credentials:
            raise Unauthenticated("Authorization header is missing")
        return await resolver.resolve_token(credentials.credentials)
    except SiteTrackerError as exc:
        raise problem_from_error(exc) from exc
