"""
Transaction helpers for writes that may lose a uniqueness race.

An expected IntegrityError rolls the transaction back and is reported
through the context dict; anything else rolls back and propagates.
"""

from contextlib import contextmanager
from typing import Any, Dict, Set

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .integrity_policy import (
    ExpectedIntegrityTag,
    classify_integrity_error,
    log_expected_violation,
    log_unexpected_violation,
)


@contextmanager
def expected_conflict(
    session: Session,
    expected_tags: Set[ExpectedIntegrityTag],
    operation_context: Dict[str, Any],
):
    """
    Run a write and commit it, absorbing expected unique violations.

    Args:
        session: SQLAlchemy session
        expected_tags: Integrity violation tags that mean "already exists"
        operation_context: Context dict; receives "integrity_tag" on conflict

    Usage:
        context = {"operation": "create_site", "entity_id": site.id}
        with expected_conflict(session, {ExpectedIntegrityTag.SITE_HOST_DUPLICATE}, context):
            session.add(site)

        if "integrity_tag" in context:
            # another writer created it first
            ...
    """
    try:
        yield
        session.commit()

    except IntegrityError as exc:
        session.rollback()

        tag = classify_integrity_error(exc)
        if tag is not None and tag in expected_tags:
            operation_context["integrity_tag"] = tag
            log_expected_violation(tag, exc, operation_context)
        else:
            log_unexpected_violation(exc, operation_context)
            raise

    except Exception:
        session.rollback()
        raise
