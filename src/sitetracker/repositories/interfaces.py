"""Abstract repository interfaces for data access layer."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple

from ..db.models import AuthSession, TrackedSite


class SessionRepository(ABC):
    """Repository interface for access sessions."""

    def set_call_timeout(self, timeout: Optional[float]) -> None:
        """Bound later calls at the backend. In-process stores rely on task cancellation."""
        pass

    @abstractmethod
    async def lookup(self, credential_id: str, now: datetime) -> Tuple[Optional[str], bool]:
        """
        Look up the session behind a credential identifier.

        Returns:
            (principal_id, is_valid): principal_id is None when no session exists;
            is_valid is False when the session is expired or revoked.
        """
        pass

    @abstractmethod
    async def create(
        self, access_uuid: str, user_id: str, expires_at: datetime, now: datetime
    ) -> AuthSession:
        """Record a newly issued session."""
        pass

    @abstractmethod
    async def revoke(self, access_uuid: str, now: datetime) -> bool:
        """Revoke a session. Returns False if it did not exist."""
        pass


class TrackedSiteRepository(ABC):
    """Repository interface for TrackedSite entities.

    Implementations must make ``create_if_absent`` atomic with respect to
    ``(owner_id, canonical_host)``: of any number of concurrent calls for the
    same pair, exactly one creates.
    """

    def set_call_timeout(self, timeout: Optional[float]) -> None:
        """Bound later calls at the backend. In-process stores rely on task cancellation."""
        pass

    @abstractmethod
    async def find_by_owner_and_host(
        self, owner_id: str, canonical_host: str
    ) -> Optional[TrackedSite]:
        """Get the owner's site for a canonical host."""
        pass

    @abstractmethod
    async def create_if_absent(
        self, site: TrackedSite
    ) -> Tuple[bool, Optional[TrackedSite]]:
        """
        Insert ``site`` unless the owner already tracks its host.

        Returns:
            (True, None) when created, (False, existing) when rejected.
        """
        pass

    @abstractmethod
    async def get_by_id(self, owner_id: str, site_id: str) -> Optional[TrackedSite]:
        """Get a site by ID, only if it belongs to owner_id."""
        pass

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> List[TrackedSite]:
        """Get all sites for an owner, oldest first."""
        pass
