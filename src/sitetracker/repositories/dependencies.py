"""Dependency injection for repository layer."""

from fastapi import Depends
from sqlalchemy.orm import Session

from ..db.database import get_db
from .sqlalchemy_impl import (
    SQLAlchemySessionRepository,
    SQLAlchemyTrackedSiteRepository,
)


def get_session_repository(db: Session = Depends(get_db)) -> SQLAlchemySessionRepository:
    """Get session repository instance."""
    return SQLAlchemySessionRepository(db)


def get_site_repository(db: Session = Depends(get_db)) -> SQLAlchemyTrackedSiteRepository:
    """Get tracked-site repository instance."""
    return SQLAlchemyTrackedSiteRepository(db)
