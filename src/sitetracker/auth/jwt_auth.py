"""JWT access tokens carrying the session credential identifier."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from uuid import uuid4

import jwt

from ..config import get_config
from ..core.clock import Clock, system_clock
from ..core.errors import Unauthenticated


@dataclass(frozen=True)
class AccessDetails:
    """Claims the session lookup needs from an access token."""

    access_uuid: str
    user_id: str


@dataclass(frozen=True)
class IssuedToken:
    token: str
    access_uuid: str
    expires_at: datetime


class AccessTokenManager:
    """Issues and decodes HS256 access tokens."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        expires_minutes: Optional[int] = None,
        algorithm: Optional[str] = None,
        clock: Clock = system_clock,
    ):
        auth_config = get_config().auth
        self.secret_key = secret_key or auth_config.jwt_secret_key
        self.algorithm = algorithm or auth_config.jwt_algorithm
        self.expires_minutes = expires_minutes or auth_config.access_token_expires_minutes
        self._clock = clock

    def create_access_token(
        self, user_id: str, additional_claims: Optional[Dict[str, Any]] = None
    ) -> IssuedToken:
        """
        Create an access token for a user.

        The caller must record the returned access_uuid in the session store,
        otherwise the token resolves to no principal.
        """
        now = self._clock.now()
        expires_at = now + timedelta(minutes=self.expires_minutes)
        access_uuid = str(uuid4())

        payload = {
            "sub": user_id,
            "user_id": user_id,
            "access_uuid": access_uuid,
            "iat": now,
            "exp": expires_at,
            "type": "access",
        }
        if additional_claims:
            payload.update(additional_claims)

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        return IssuedToken(token=token, access_uuid=access_uuid, expires_at=expires_at)

    def extract_access_details(self, token: str) -> AccessDetails:
        """
        Verify an access token and return its credential claims.

        Raises:
            Unauthenticated: If the token is invalid, expired, of the wrong
                type or missing claims
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise Unauthenticated("Access token has expired")
        except jwt.InvalidTokenError:
            raise Unauthenticated("Invalid access token")

        if payload.get("type") != "access":
            raise Unauthenticated("Invalid token type")

        access_uuid = payload.get("access_uuid")
        user_id = payload.get("user_id")
        if not isinstance(access_uuid, str) or not isinstance(user_id, str) or not user_id:
            raise Unauthenticated("Access token is missing claims")

        return AccessDetails(access_uuid=access_uuid, user_id=user_id)
