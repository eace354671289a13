"""
Shared FastAPI dependencies: bearer-token auth and body validation.
"""

from typing import Any, TypeVar

from fastapi import Header, HTTPException
from pydantic import BaseModel, ValidationError

from taskmarket.core.auth import AuthUser, get_auth_user

M = TypeVar("M", bound=BaseModel)


def optional_user(authorization: str | None = Header(default=None)) -> AuthUser | None:
    return get_auth_user(authorization)


def require_user(authorization: str | None = Header(default=None)) -> AuthUser:
    user = get_auth_user(authorization)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def parse_body(model: type[M], payload: Any, detail: str = "Invalid request") -> M:
    """Validate a raw JSON body; any problem is a 400 with the given detail."""
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid request body")
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=detail) from e
