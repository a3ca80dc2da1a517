"""SQLAlchemy models for the site tracker."""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.types import TypeDecorator

from .database import Base


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime that always comes back as UTC.

    SQLite drops tzinfo on the way out, so it is restored on load.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            raise ValueError("naive datetimes are not accepted")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class AuthSession(Base):
    """A live access session, keyed by the access token's credential id."""

    __tablename__ = "auth_sessions"

    access_uuid = Column(String(36), primary_key=True)
    user_id = Column(String(64), nullable=False)
    created_at = Column(
        UTCDateTime(),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    expires_at = Column(UTCDateTime(), nullable=False)
    revoked_at = Column(UTCDateTime(), nullable=True)

    __table_args__ = (
        Index("ix_auth_session_user_id", "user_id"),
        Index("ix_auth_session_expires_at", "expires_at"),
    )

    def is_live(self, now: datetime) -> bool:
        """Return True if the session is neither revoked nor expired at ``now``."""
        return self.revoked_at is None and self.expires_at > now

    def __repr__(self) -> str:
        return f"<AuthSession(access_uuid={self.access_uuid}, user_id={self.user_id}, expires_at={self.expires_at})>"


class TrackedSite(Base):
    """A destination registered for tracking by one owner."""

    __tablename__ = "tracked_sites"

    id = Column(String(64), primary_key=True)
    owner_id = Column(String(64), nullable=False)
    name = Column(String(100), nullable=False)
    canonical_host = Column(String(255), nullable=False)
    url = Column(Text, nullable=False)
    tracked = Column(Boolean, nullable=False, default=False)
    created_at = Column(UTCDateTime(), nullable=False)
    updated_at = Column(UTCDateTime(), nullable=False)

    __table_args__ = (
        UniqueConstraint("owner_id", "canonical_host", name="uq_tracked_site_owner_host"),
        Index("ix_tracked_site_owner_created", "owner_id", "created_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "canonical_host": self.canonical_host,
            "url": self.url,
            "tracked": self.tracked,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<TrackedSite(id={self.id}, owner_id={self.owner_id}, canonical_host='{self.canonical_host}')>"
