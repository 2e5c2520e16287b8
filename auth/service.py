"""
Session service — registration, login and token-based lookup.

Pure business logic with no HTTP dependencies.  Raises ``AuthError``
subclasses that the API layer maps to status codes.  The caller owns the
``AsyncSession`` and its transaction; the service only flushes.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.errors import (
    AccountDisabledError,
    DuplicateAccountError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    InvalidTokenError,
    UserNotFoundError,
)
from auth.jwt import TokenClaims, TokenCodec
from auth.models import AuthResult, User, UserProfile
from auth.password import hash_password_async, verify_password_async
from config.settings import AuthConfig

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class SessionService:
    def __init__(
        self,
        session: AsyncSession,
        auth_config: AuthConfig,
        codec: Optional[TokenCodec] = None,
    ) -> None:
        self._session = session
        self._config = auth_config
        self._codec = codec or TokenCodec(auth_config)

    async def _find_by_email(self, email: str) -> Optional[User]:
        result = await self._session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    def _issue(self, user: User) -> AuthResult:
        token = self._codec.issue(str(user.id), user.email)
        return AuthResult(user=UserProfile.model_validate(user), token=token)

    async def register(
        self,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> AuthResult:
        """
        Create an active user and issue its first token.

        The unique constraint on ``users.email`` decides duplicates, so two
        concurrent registrations for the same address cannot both succeed.
        """
        email = normalize_email(email)
        password_hash = await hash_password_async(password, self._config.bcrypt_rounds)

        user = User(
            id=uuid.uuid4(),
            email=email,
            password_hash=password_hash,
            first_name=first_name or None,
            last_name=last_name or None,
            is_active=True,
        )
        self._session.add(user)
        try:
            await self._session.flush()
        except IntegrityError:
            await self._session.rollback()
            if await self._find_by_email(email) is not None:
                logger.info("Registration rejected: %s already exists", email)
                raise DuplicateAccountError() from None
            raise
        await self._session.refresh(user)

        logger.info("Registered user %s (%s)", user.email, user.id)
        return self._issue(user)

    async def login(self, email: str, password: str) -> AuthResult:
        """Check credentials, stamp ``last_login`` and issue a fresh token."""
        email = normalize_email(email)
        user = await self._find_by_email(email)
        if user is None:
            logger.info("Login failed: unknown email")
            raise InvalidCredentialsError()

        if not user.is_active:
            logger.info("Login refused: account %s is disabled", user.id)
            raise AccountDisabledError()

        if not await verify_password_async(password, user.password_hash):
            logger.info("Login failed: bad password for %s", user.id)
            raise InvalidCredentialsError()

        user.last_login = datetime.now(timezone.utc)
        await self._session.flush()
        await self._session.refresh(user)

        logger.info("Login: %s (%s)", user.email, user.id)
        return self._issue(user)

    def verify_session(self, token: str) -> TokenClaims:
        """Decode a token; malformed, forged and expired all look the same."""
        try:
            return self._codec.verify(token)
        except InvalidTokenError as exc:
            raise InvalidOrExpiredTokenError() from exc

    async def _get_user(self, user_id: str | uuid.UUID) -> User:
        try:
            uid = user_id if isinstance(user_id, uuid.UUID) else uuid.UUID(str(user_id))
        except ValueError:
            raise UserNotFoundError() from None

        user = await self._session.get(User, uid)
        if user is None:
            raise UserNotFoundError()
        return user

    async def get_user_by_id(self, user_id: str | uuid.UUID) -> UserProfile:
        return UserProfile.model_validate(await self._get_user(user_id))

    async def authenticate(self, token: str) -> UserProfile:
        """
        Resolve a bearer token to the profile of a live, active user.

        A valid token whose user has since vanished is treated like any
        other bad token.
        """
        claims = self.verify_session(token)
        try:
            user = await self._get_user(claims.id)
        except UserNotFoundError:
            raise InvalidOrExpiredTokenError(UserNotFoundError.default_message) from None

        if not user.is_active:
            raise AccountDisabledError()
        return UserProfile.model_validate(user)
