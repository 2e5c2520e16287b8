"""
Auth API routes — register, login, profile, health.

Route prefix: /api/auth
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from auth.dependencies import get_current_user, get_session_service
from auth.models import AuthResult, UserProfile
from auth.service import SessionService


router = APIRouter(tags=["auth"])


# ── Request schemas ────────────────────────────────────────────────────


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)
    first_name: Optional[str] = Field(None, alias="firstName", max_length=50)
    last_name: Optional[str] = Field(None, alias="lastName", max_length=50)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


def _envelope(data: Dict[str, Any]) -> Dict[str, Any]:
    return {"success": True, "data": data}


def _auth_payload(result: AuthResult) -> Dict[str, Any]:
    return _envelope(result.model_dump(mode="json", by_alias=True))


# ── Endpoints ──────────────────────────────────────────────────────────


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    req: RegisterRequest,
    service: SessionService = Depends(get_session_service),
) -> Dict[str, Any]:
    """Register a new user and return it with a session token."""
    result = await service.register(
        req.email,
        req.password,
        first_name=req.first_name,
        last_name=req.last_name,
    )
    return _auth_payload(result)


@router.post("/login")
async def login(
    req: LoginRequest,
    service: SessionService = Depends(get_session_service),
) -> Dict[str, Any]:
    """Login with email + password."""
    result = await service.login(req.email, req.password)
    return _auth_payload(result)


@router.get("/me")
async def me(current_user: UserProfile = Depends(get_current_user)) -> Dict[str, Any]:
    """Profile of the bearer of the token."""
    return _envelope({"user": current_user.model_dump(mode="json", by_alias=True)})


@router.get("/health")
async def health() -> Dict[str, Any]:
    return {
        "success": True,
        "message": "Auth service is healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
