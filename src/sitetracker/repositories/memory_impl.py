"""In-memory implementations of repository interfaces for testing."""

import threading
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .interfaces import SessionRepository, TrackedSiteRepository
from ..db.models import AuthSession, TrackedSite


def _copy_site(site: TrackedSite) -> TrackedSite:
    # Callers get detached copies so they cannot mutate stored state
    return TrackedSite(**site.to_dict())


class MemorySessionRepository(SessionRepository):
    """In-memory implementation of SessionRepository."""

    def __init__(self):
        self._sessions: Dict[str, AuthSession] = {}
        self._lock = threading.Lock()

    async def lookup(self, credential_id: str, now: datetime) -> Tuple[Optional[str], bool]:
        session = self._sessions.get(credential_id)
        if session is None:
            return None, False
        return session.user_id, session.is_live(now)

    async def create(
        self, access_uuid: str, user_id: str, expires_at: datetime, now: datetime
    ) -> AuthSession:
        session = AuthSession(
            access_uuid=access_uuid,
            user_id=user_id,
            created_at=now,
            expires_at=expires_at,
            revoked_at=None,
        )
        with self._lock:
            if access_uuid in self._sessions:
                raise ValueError(f"session {access_uuid} already exists")
            self._sessions[access_uuid] = session
        return session

    async def revoke(self, access_uuid: str, now: datetime) -> bool:
        with self._lock:
            session = self._sessions.get(access_uuid)
            if session is None:
                return False
            if session.revoked_at is None:
                session.revoked_at = now
            return True


class MemoryTrackedSiteRepository(TrackedSiteRepository):
    """In-memory implementation of TrackedSiteRepository."""

    def __init__(self):
        self._sites: Dict[str, TrackedSite] = {}
        self._owner_host_index: Dict[Tuple[str, str], str] = {}
        self._lock = threading.Lock()

    async def find_by_owner_and_host(
        self, owner_id: str, canonical_host: str
    ) -> Optional[TrackedSite]:
        site_id = self._owner_host_index.get((owner_id, canonical_host))
        if site_id is None:
            return None
        return _copy_site(self._sites[site_id])

    async def create_if_absent(
        self, site: TrackedSite
    ) -> Tuple[bool, Optional[TrackedSite]]:
        key = (site.owner_id, site.canonical_host)
        with self._lock:
            existing_id = self._owner_host_index.get(key)
            if existing_id is None and site.id in self._sites:
                existing_id = site.id
            if existing_id is not None:
                return False, _copy_site(self._sites[existing_id])

            self._sites[site.id] = _copy_site(site)
            self._owner_host_index[key] = site.id
            return True, None

    async def get_by_id(self, owner_id: str, site_id: str) -> Optional[TrackedSite]:
        site = self._sites.get(site_id)
        if site is None or site.owner_id != owner_id:
            return None
        return _copy_site(site)

    async def list_by_owner(self, owner_id: str) -> List[TrackedSite]:
        sites = [
            _copy_site(site) for site in self._sites.values()
            if site.owner_id == owner_id
        ]
        sites.sort(key=lambda s: (s.created_at, s.id))
        return sites
