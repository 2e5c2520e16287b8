"""Auth-facing views of the ``User`` record.

``User`` is re-exported from the database package.  ``UserProfile`` is the
only shape a user ever leaves the service in; it has no password field.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from database.models import User  # noqa: F401

__all__ = ["AuthResult", "User", "UserProfile"]


class UserProfile(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: uuid.UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class AuthResult(BaseModel):
    user: UserProfile
    token: str
