"""
Auth helpers: JWT (HS256) signing/verification and bcrypt password hashing.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any

import bcrypt
import jwt

from taskmarket.core.config import JWT_ALGORITHM, JWT_EXPIRES_SECONDS, JWT_SECRET

logger = logging.getLogger(__name__)


@dataclass
class AuthUser:
    id: str
    email: str = ""
    role: str | None = None


def sign_token(payload: dict[str, Any], expires_in: int = JWT_EXPIRES_SECONDS) -> str:
    claims = dict(payload)
    claims["exp"] = int(time.time()) + expires_in
    return jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> dict[str, Any] | None:
    """Decode a token; None when it is expired, tampered or malformed."""
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("[auth:verify_token] expired token")
        return None
    except jwt.InvalidTokenError:
        return None


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(10)).decode()


def check_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False


def get_auth_user(authorization: str | None) -> AuthUser | None:
    """Resolve 'Bearer <token>' to the user it was issued for."""
    parts = (authorization or "").split(" ")
    token = parts[1] if len(parts) > 1 else ""
    if not token:
        return None
    payload = verify_token(token)
    if not payload or not payload.get("id"):
        return None
    return AuthUser(id=str(payload["id"]), email=payload.get("email") or "", role=payload.get("role"))
