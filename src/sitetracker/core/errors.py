"""Error taxonomy for the site tracker core.

Every failure the core reports is one of these types. Only
``StorageFailure`` is retryable; all others are terminal for the request.
"""

from typing import Any, Dict, Optional


class SiteTrackerError(Exception):
    """Base class for classified failures."""

    code = "site_tracker_error"
    retryable = False

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context


class Unauthenticated(SiteTrackerError):
    """Credential is missing, malformed, expired or revoked."""

    code = "unauthenticated"


class InvalidRegistration(SiteTrackerError):
    """Registration input failed validation."""

    code = "invalid_registration"

    def __init__(self, message: str, errors: Optional[list] = None, **context: Any):
        super().__init__(message, **context)
        self.errors = errors or []


class InvalidURL(InvalidRegistration):
    """The submitted URL has no parseable host."""

    code = "invalid_url"


class AlreadyExists(SiteTrackerError):
    """The owner already tracks this host."""

    code = "already_exists"

    def __init__(self, message: str, existing=None, **context: Any):
        super().__init__(message, **context)
        self.existing = existing


class NotFound(SiteTrackerError):
    """No site with this id is visible to the caller."""

    code = "not_found"


class StorageFailure(SiteTrackerError):
    """A collaborator was unavailable or timed out."""

    code = "storage_failure"
    retryable = True
