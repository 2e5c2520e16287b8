"""
JWT session token creation and verification.

Tokens are standard HS256 JWTs (``header.payload.signature``) carrying the
user's ``id`` and ``email`` plus ``iat`` / ``exp``.  Nothing is stored
server-side: a token is valid while its signature checks out and ``exp``
lies in the future.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt
from pydantic import BaseModel

from auth.errors import InvalidTokenError
from config.settings import AuthConfig

logger = logging.getLogger(__name__)

_REQUIRED_CLAIMS = ["id", "email", "iat", "exp"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenClaims(BaseModel):
    id: str
    email: str
    issued_at: datetime
    expires_at: datetime


class TokenCodec:
    """Issue and verify session tokens for one signing configuration."""

    def __init__(
        self,
        auth_config: AuthConfig,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._secret = auth_config.jwt_secret
        self._algorithm = auth_config.jwt_algorithm
        self._lifetime = timedelta(seconds=auth_config.jwt_expiry_seconds)
        self._clock = clock or _utcnow

    def issue(self, user_id: str, email: str) -> str:
        """Create a signed token containing ``id``, ``email`` and expiry."""
        now = self._clock().replace(microsecond=0)
        payload = {
            "id": str(user_id),
            "email": email,
            "iat": int(now.timestamp()),
            "exp": int((now + self._lifetime).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Verify signature, structure and expiry, returning the claims.

        Raises ``InvalidTokenError`` on any failure.  Expiry is checked
        against this codec's clock rather than the wall clock so tests can
        move time.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": _REQUIRED_CLAIMS,
                },
            )
        except jwt.PyJWTError as exc:
            logger.debug("Token rejected: %s", type(exc).__name__)
            raise InvalidTokenError(str(exc)) from exc

        try:
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError) as exc:
            raise InvalidTokenError("malformed timestamp claim") from exc

        if expires_at <= self._clock():
            logger.debug("Token rejected: expired at %s", expires_at.isoformat())
            raise InvalidTokenError("token expired")

        if not isinstance(payload["id"], str) or not isinstance(payload["email"], str):
            raise InvalidTokenError("malformed identity claims")

        return TokenClaims(
            id=payload["id"],
            email=payload["email"],
            issued_at=issued_at,
            expires_at=expires_at,
        )
