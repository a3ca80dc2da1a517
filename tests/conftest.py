"""Pytest configuration and shared fixtures."""

import os
from datetime import datetime, timedelta, timezone
from typing import Generator

import pytest

# Must be set before sitetracker reads its configuration
os.environ.setdefault(
    "SITETRACKER_JWT_SECRET_KEY",
    "t3st-Only-Signing-Key-9f8e7d6c5b4a3210-ZyXwVuTsRqPoNm",
)
os.environ.setdefault("SITETRACKER_STORE_TIMEOUT_SECONDS", "2")

from sqlalchemy.orm import sessionmaker  # noqa: E402

from sitetracker.auth.issuer import SessionIssuer  # noqa: E402
from sitetracker.auth.jwt_auth import AccessTokenManager  # noqa: E402
from sitetracker.auth.resolver import SessionResolver  # noqa: E402
from sitetracker.db.database import create_database_engine, init_db  # noqa: E402
from sitetracker.domain.principal import Principal  # noqa: E402
from sitetracker.repositories.memory_impl import (  # noqa: E402
    MemorySessionRepository,
    MemoryTrackedSiteRepository,
)
from sitetracker.services.registrar import SiteRegistrar  # noqa: E402


class FixedClock:
    """Clock that returns a set instant until moved."""

    def __init__(self, now: datetime):
        self.current = now
        self.calls = 0

    def now(self) -> datetime:
        self.calls += 1
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def owner() -> Principal:
    return Principal("u1")


@pytest.fixture
def other_owner() -> Principal:
    return Principal("u2")


@pytest.fixture
def session_repo() -> MemorySessionRepository:
    return MemorySessionRepository()


@pytest.fixture
def site_repo() -> MemoryTrackedSiteRepository:
    return MemoryTrackedSiteRepository()


@pytest.fixture
def registrar(site_repo, clock) -> SiteRegistrar:
    return SiteRegistrar(site_repo, clock=clock, default_timeout=1.0)


@pytest.fixture
def resolver(session_repo) -> SessionResolver:
    # Token expiry is checked against wall time, so the resolver uses it too
    return SessionResolver(session_repo, default_timeout=1.0)


@pytest.fixture
def token_manager() -> AccessTokenManager:
    return AccessTokenManager()


@pytest.fixture
def issuer(session_repo, token_manager) -> SessionIssuer:
    return SessionIssuer(session_repo, token_manager=token_manager)


@pytest.fixture
def db_engine(tmp_path):
    """File-backed SQLite engine with the schema created."""
    engine = create_database_engine(f"sqlite:///{tmp_path / 'sitetracker.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Session factory bound to the test database."""
    return sessionmaker(
        autocommit=False, autoflush=False, expire_on_commit=False, bind=db_engine
    )


@pytest.fixture
def db_session(session_factory) -> Generator:
    session = session_factory()
    yield session
    session.close()
