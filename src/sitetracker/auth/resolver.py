"""Resolve bearer credentials to principals."""

import asyncio
from typing import Optional

from .jwt_auth import AccessTokenManager
from .security import extract_bearer_token, validate_credential_id_format
from ..config import get_config
from ..core.clock import Clock, system_clock
from ..core.errors import StorageFailure, Unauthenticated
from ..domain.principal import Principal
from ..repositories.interfaces import SessionRepository
from ..utils.logging_config import get_logger, log_exception

logger = get_logger('auth')


class SessionResolver:
    """Looks up the principal behind a credential. Read only."""

    def __init__(
        self,
        sessions: SessionRepository,
        clock: Clock = system_clock,
        token_manager: Optional[AccessTokenManager] = None,
        default_timeout: Optional[float] = None,
    ):
        self._sessions = sessions
        self._clock = clock
        self._token_manager = token_manager
        if default_timeout is None:
            default_timeout = get_config().app.store_timeout_seconds
        self._default_timeout = default_timeout

    async def resolve(self, credential_id: str, timeout: Optional[float] = None) -> Principal:
        """
        Resolve a credential identifier to its principal.

        Args:
            credential_id: access_uuid extracted from the bearer token
            timeout: Upper bound in seconds for the session lookup

        Raises:
            Unauthenticated: Malformed credential, no session, expired or
                revoked session, or the lookup timed out
            StorageFailure: The session store failed
        """
        validate_credential_id_format(credential_id)
        timeout = self._default_timeout if timeout is None else timeout
        self._sessions.set_call_timeout(timeout)

        try:
            principal_id, is_valid = await asyncio.wait_for(
                self._sessions.lookup(credential_id, self._clock.now()), timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Session lookup timed out",
                extra={"credential_id": credential_id, "timeout": timeout},
            )
            raise Unauthenticated("Session lookup timed out")
        except StorageFailure as exc:
            log_exception('auth', exc, {"operation": "session_lookup"})
            raise

        if principal_id is None:
            logger.info("Unknown session", extra={"credential_id": credential_id})
            raise Unauthenticated("Invalid or expired session")
        if not is_valid:
            logger.info("Expired or revoked session", extra={"credential_id": credential_id})
            raise Unauthenticated("Invalid or expired session")

        return Principal(principal_id)

    async def resolve_token(self, token: str, timeout: Optional[float] = None) -> Principal:
        """
        Decode a bearer access token and resolve its session.

        The token's user_id claim must agree with the session store.

        Raises:
            Unauthenticated: Invalid token or session
            StorageFailure: The session store failed
        """
        if self._token_manager is None:
            self._token_manager = AccessTokenManager(clock=self._clock)

        details = self._token_manager.extract_access_details(token)
        principal = await self.resolve(details.access_uuid, timeout=timeout)

        if principal.id != details.user_id:
            logger.warning(
                "Token subject does not match session owner",
                extra={"credential_id": details.access_uuid},
            )
            raise Unauthenticated("Invalid or expired session")

        return principal

    async def resolve_header(
        self, authorization: Optional[str], timeout: Optional[float] = None
    ) -> Principal:
        """Resolve a raw ``Authorization`` header value for transports without HTTPBearer."""
        return await self.resolve_token(extract_bearer_token(authorization), timeout=timeout)
