"""Auth endpoints: register and login."""

import logging
from typing import Any

from fastapi import APIRouter, Body, HTTPException

from taskmarket.api.deps import parse_body
from taskmarket.core.auth import check_password, hash_password, sign_token
from taskmarket.schemas.auth import LoginRequest, RegisterRequest, RegisterResponse, TokenResponse, UserOut
from taskmarket.services.user_store import EmailInUseError, create_user, get_user_by_email

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])


def _token_for(user: dict[str, Any]) -> str:
    return sign_token({"id": user["id"], "email": user["email"], "role": user["role"]})


@router.post("/register", response_model=RegisterResponse, summary="Create an account and return a token")
def register(payload: Any = Body(None)) -> RegisterResponse:
    body = parse_body(RegisterRequest, payload, detail="Validation failed")
    email = body.email.strip().lower()
    logger.info("[api:register] attempt email=%s", email)
    if get_user_by_email(email):
        raise HTTPException(status_code=400, detail="Email already in use")
    try:
        user = create_user(email, hash_password(body.password), body.name)
    except EmailInUseError as e:
        raise HTTPException(status_code=409, detail="Email already in use") from e
    return RegisterResponse(
        user=UserOut(id=user["id"], email=user["email"], role=user["role"]),
        token=_token_for(user),
    )


@router.post("/login", response_model=TokenResponse, summary="Exchange credentials for a token")
def login(payload: Any = Body(None)) -> TokenResponse:
    body = parse_body(LoginRequest, payload)
    user = get_user_by_email(body.email.strip().lower())
    if not user or not user.get("password_hash"):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not check_password(body.password, user["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return TokenResponse(token=_token_for(user))
