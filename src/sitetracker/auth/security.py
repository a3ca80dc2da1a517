"""Security utilities for bearer credentials."""

from typing import Optional
from uuid import UUID

from ..core.errors import Unauthenticated


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Extract the token from an ``Authorization: Bearer <token>`` header value.

    Raises:
        Unauthenticated: If the header is absent or not a bearer credential
    """
    if not authorization:
        raise Unauthenticated("Authorization header is missing")

    parts = authorization.strip().split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise Unauthenticated("Authorization header must be 'Bearer <token>'")

    return parts[1]


def validate_credential_id_format(credential_id: str) -> str:
    """
    Validate that a credential identifier has the expected format.

    Credential identifiers are the access_uuid claims issued with access
    tokens: canonical lowercase UUID text.

    Returns:
        str: The credential identifier

    Raises:
        Unauthenticated: If the identifier is empty or malformed
    """
    if not credential_id or not isinstance(credential_id, str):
        raise Unauthenticated("Credential cannot be empty")

    try:
        parsed = UUID(credential_id)
    except ValueError:
        raise Unauthenticated("Invalid credential format")

    if str(parsed) != credential_id:
        raise Unauthenticated("Invalid credential format")

    return credential_id
