"""
FastAPI dependencies for authentication.

Provides ``db_session``, ``get_session_service`` and
``get_current_user`` dependencies used by the auth routes.
"""

from __future__ import annotations

from typing import AsyncGenerator, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from auth.errors import MissingTokenError
from auth.models import UserProfile
from auth.service import SessionService
from config.settings import AuthConfig, config
from database.session import get_db_session

_bearer_scheme = HTTPBearer(auto_error=False)


async def db_session(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a DB session for route handlers."""
    yield session


def get_auth_config() -> AuthConfig:
    return config.auth_config()


def get_session_service(
    session: AsyncSession = Depends(db_session),
    auth_config: AuthConfig = Depends(get_auth_config),
) -> SessionService:
    return SessionService(session, auth_config)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    service: SessionService = Depends(get_session_service),
) -> UserProfile:
    """
    Extract and verify the Bearer token, returning the authenticated
    user's profile.
    """
    if credentials is None or not credentials.credentials:
        raise MissingTokenError()
    return await service.authenticate(credentials.credentials)
