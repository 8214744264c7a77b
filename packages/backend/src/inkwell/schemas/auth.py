"""Pydantic schemas for the auth routes.

Learn: Pydantic v2 models validate request/response data. Responses are
serialized with camelCase aliases (accessToken, createdAt) because the
browser client consumes them directly; Python code keeps snake_case.
Note there is no refresh_token field anywhere: it only travels as a cookie.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ─── Requests ───────────────────────────────────────────

class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=20)
    email: str = Field(..., max_length=255, pattern=r"^\S+@\S+\.\S+$")
    password: str = Field(..., min_length=6)

    @field_validator("username", "email", mode="before")
    @classmethod
    def strip_whitespace(cls, v):
        # Length and pattern rules apply to the trimmed value
        return v.strip() if isinstance(v, str) else v


# ─── Responses ──────────────────────────────────────────

class UserSummary(_CamelModel):
    id: uuid.UUID
    username: str
    email: str


class UserRead(UserSummary):
    created_at: datetime


class SessionResponse(_CamelModel):
    """Login/register result."""
    access_token: str
    user: UserSummary


class AccessTokenResponse(_CamelModel):
    access_token: str


class MeResponse(_CamelModel):
    user: UserRead


class MessageResponse(_CamelModel):
    message: str
