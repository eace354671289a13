"""Schemas for register / login."""

import re

from pydantic import Field, field_validator

from taskmarket.schemas.common import ApiModel

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class LoginRequest(ApiModel):
    email: str = Field(..., description="Account email.")
    password: str = Field(..., min_length=6)

    @field_validator("email")
    @classmethod
    def _valid_email(cls, v: str) -> str:
        v = v.strip()
        if not _EMAIL_RE.match(v):
            raise ValueError("invalid email")
        return v


class RegisterRequest(LoginRequest):
    name: str | None = None


class UserOut(ApiModel):
    id: str
    email: str
    role: str


class RegisterResponse(ApiModel):
    user: UserOut
    token: str


class TokenResponse(ApiModel):
    token: str
