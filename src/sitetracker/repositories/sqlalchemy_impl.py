"""SQLAlchemy concrete implementations of repository interfaces."""

import functools
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .interfaces import SessionRepository, TrackedSiteRepository
from ..core.errors import StorageFailure
from ..db.database import CALL_TIMEOUT_KEY, apply_call_timeout
from ..db.models import AuthSession, TrackedSite
from ..store.conflicts import expected_conflict
from ..store.integrity_policy import ExpectedIntegrityTag


def storage_errors(method):
    """Translate driver/ORM errors into StorageFailure."""

    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            self._apply_call_timeout()
            return await method(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            if self._session.in_transaction():
                self._session.rollback()
            raise StorageFailure(
                f"{type(self).__name__}.{method.__name__} failed: {exc.__class__.__name__}",
                operation=method.__name__,
            ) from exc

    return wrapper


class BaseSQLAlchemyRepository:
    """Base SQLAlchemy repository implementation."""

    def __init__(self, session: Session):
        self._session = session

    def set_call_timeout(self, timeout: Optional[float]) -> None:
        """Bound lock waits and statements of later calls on this session."""
        self._session.info[CALL_TIMEOUT_KEY] = timeout

    def _apply_call_timeout(self) -> None:
        # New transactions pick the timeout up in the after_begin listener
        timeout = self._session.info.get(CALL_TIMEOUT_KEY)
        if timeout is not None and self._session.in_transaction():
            apply_call_timeout(self._session.connection(), timeout)


class SQLAlchemySessionRepository(BaseSQLAlchemyRepository, SessionRepository):
    """SQLAlchemy implementation of SessionRepository."""

    @storage_errors
    async def lookup(self, credential_id: str, now: datetime) -> Tuple[Optional[str], bool]:
        session = self._session.get(AuthSession, credential_id)
        if session is None:
            return None, False
        return session.user_id, session.is_live(now)

    @storage_errors
    async def create(
        self, access_uuid: str, user_id: str, expires_at: datetime, now: datetime
    ) -> AuthSession:
        session = AuthSession(
            access_uuid=access_uuid,
            user_id=user_id,
            created_at=now,
            expires_at=expires_at,
        )
        self._session.add(session)
        self._session.commit()
        return session

    @storage_errors
    async def revoke(self, access_uuid: str, now: datetime) -> bool:
        session = self._session.get(AuthSession, access_uuid)
        if session is None:
            return False
        if session.revoked_at is None:
            session.revoked_at = now
            self._session.commit()
        return True


class SQLAlchemyTrackedSiteRepository(BaseSQLAlchemyRepository, TrackedSiteRepository):
    """SQLAlchemy implementation of TrackedSiteRepository.

    Atomicity of create_if_absent comes from the uq_tracked_site_owner_host
    constraint and the primary key; the losing writer's IntegrityError is
    turned into (False, existing).
    """

    @storage_errors
    async def find_by_owner_and_host(
        self, owner_id: str, canonical_host: str
    ) -> Optional[TrackedSite]:
        return (
            self._session.query(TrackedSite)
            .filter(
                and_(
                    TrackedSite.owner_id == owner_id,
                    TrackedSite.canonical_host == canonical_host,
                )
            )
            .first()
        )

    @storage_errors
    async def create_if_absent(
        self, site: TrackedSite
    ) -> Tuple[bool, Optional[TrackedSite]]:
        context = {"operation": "create_tracked_site", "entity_id": site.id}
        with expected_conflict(
            self._session,
            {ExpectedIntegrityTag.SITE_HOST_DUPLICATE, ExpectedIntegrityTag.SITE_ID_DUPLICATE},
            context,
        ):
            self._session.add(site)
            self._session.flush()

        if "integrity_tag" not in context:
            return True, None

        existing = (
            self._session.query(TrackedSite)
            .filter(
                or_(
                    and_(
                        TrackedSite.owner_id == site.owner_id,
                        TrackedSite.canonical_host == site.canonical_host,
                    ),
                    TrackedSite.id == site.id,
                )
            )
            .first()
        )
        return False, existing

    @storage_errors
    async def get_by_id(self, owner_id: str, site_id: str) -> Optional[TrackedSite]:
        return (
            self._session.query(TrackedSite)
            .filter(and_(TrackedSite.id == site_id, TrackedSite.owner_id == owner_id))
            .first()
        )

    @storage_errors
    async def list_by_owner(self, owner_id: str) -> List[TrackedSite]:
        return (
            self._session.query(TrackedSite)
            .filter(TrackedSite.owner_id == owner_id)
            .order_by(TrackedSite.created_at, TrackedSite.id)
            .all()
        )
