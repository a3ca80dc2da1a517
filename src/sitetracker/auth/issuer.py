"""Issue and revoke access sessions."""

from typing import Optional

from .jwt_auth import AccessTokenManager, IssuedToken
from ..core.clock import Clock, system_clock
from ..repositories.interfaces import SessionRepository
from ..utils.logging_config import get_logger

logger = get_logger('auth')


class SessionIssuer:
    """Pairs access-token issuance with the session record the resolver reads."""

    def __init__(
        self,
        sessions: SessionRepository,
        token_manager: Optional[AccessTokenManager] = None,
        clock: Clock = system_clock,
    ):
        self._sessions = sessions
        self._clock = clock
        self._token_manager = token_manager or AccessTokenManager(clock=clock)

    async def issue(self, user_id: str) -> IssuedToken:
        """Create an access token for user_id and record its session."""
        issued = self._token_manager.create_access_token(user_id)
        await self._sessions.create(
            access_uuid=issued.access_uuid,
            user_id=user_id,
            expires_at=issued.expires_at,
            now=self._clock.now(),
        )
        logger.info("Issued access session", extra={"user_id": user_id, "credential_id": issued.access_uuid})
        return issued

    async def revoke(self, access_uuid: str) -> bool:
        """Revoke a session; later resolution of its credential fails."""
        revoked = await self._sessions.revoke(access_uuid, self._clock.now())
        if revoked:
            logger.info("Revoked access session", extra={"credential_id": access_uuid})
        return revoked
