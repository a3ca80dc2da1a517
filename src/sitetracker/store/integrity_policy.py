"""
Integrity policy for classifying expected IntegrityError exceptions.

Distinguishes unique-constraint violations that mean "another writer got
there first" (an expected outcome of concurrent registration) from integrity
errors that indicate real failures.
"""

import re
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError  # type: ignore

from ..utils.logging_config import get_logger

logger = get_logger('database')


class ExpectedIntegrityTag(Enum):
    """Tags for expected integrity constraint violations."""

    SITE_HOST_DUPLICATE = "site_host_duplicate"
    SITE_ID_DUPLICATE = "site_id_duplicate"


# SQLite reports the columns, PostgreSQL the constraint name
CONSTRAINT_TAG_MAP: Dict[str, ExpectedIntegrityTag] = {
    "tracked_sites.owner_id, tracked_sites.canonical_host": ExpectedIntegrityTag.SITE_HOST_DUPLICATE,
    "uq_tracked_site_owner_host": ExpectedIntegrityTag.SITE_HOST_DUPLICATE,
    "tracked_sites.id": ExpectedIntegrityTag.SITE_ID_DUPLICATE,
    "tracked_sites_pkey": ExpectedIntegrityTag.SITE_ID_DUPLICATE,
}

_PG_CONSTRAINT = re.compile(r'unique constraint "([^"]+)"')


def _error_message(exc: IntegrityError) -> str:
    return str(exc.orig) if exc.orig else str(exc)


def is_unique_violation(exc: IntegrityError) -> bool:
    """Check if the IntegrityError is a unique constraint violation."""
    error_msg = _error_message(exc)
    return (
        "UNIQUE constraint failed" in error_msg
        or "duplicate key value violates unique constraint" in error_msg
    )


def extract_constraint_name(exc: IntegrityError) -> Optional[str]:
    """Extract constraint name (or SQLite column list) from IntegrityError."""
    diag = getattr(exc.orig, "diag", None)
    constraint_name = getattr(diag, "constraint_name", None)
    if constraint_name:
        return constraint_name

    error_msg = _error_message(exc)

    # SQLite format: "UNIQUE constraint failed: table.column1, table.column2"
    if "UNIQUE constraint failed:" in error_msg:
        return error_msg.split("UNIQUE constraint failed:", 1)[1].strip()

    match = _PG_CONSTRAINT.search(error_msg)
    if match:
        return match.group(1)

    return None


def classify_integrity_error(exc: IntegrityError) -> Optional[ExpectedIntegrityTag]:
    """
    Classify an IntegrityError to determine if it's an expected constraint violation.

    Args:
        exc: The IntegrityError exception to classify

    Returns:
        ExpectedIntegrityTag if this is an expected violation, None otherwise
    """
    if not is_unique_violation(exc):
        return None

    constraint_name = extract_constraint_name(exc)
    if constraint_name is None:
        return None

    return CONSTRAINT_TAG_MAP.get(constraint_name)


def log_expected_violation(
    tag: ExpectedIntegrityTag, exc: IntegrityError, context: Dict[str, Any]
) -> None:
    """Log an expected integrity violation at INFO level with structured context."""
    logger.info(
        "Expected integrity violation (concurrent writer won)",
        extra={
            "integrity_tag": tag.value,
            "constraint_name": extract_constraint_name(exc),
            "operation": context.get("operation", "unknown"),
            "entity_id": context.get("entity_id"),
            "outcome": "already_exists",
        },
    )


def log_unexpected_violation(exc: IntegrityError, context: Dict[str, Any]) -> None:
    """Log an unexpected integrity violation at ERROR level."""
    logger.error(
        "Unexpected integrity violation",
        extra={
            "constraint_name": extract_constraint_name(exc),
            "operation": context.get("operation", "unknown"),
            "entity_id": context.get("entity_id"),
            "error_message": str(exc),
        },
        exc_info=exc,
    )
