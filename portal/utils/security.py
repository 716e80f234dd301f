"""Credential helpers: password hashing, bearer tokens and reset tokens.

Hashing goes through passlib and tokens through python-jose; nothing here
implements a primitive of its own.
"""
from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from portal import config
from portal.utils.time import utc_now

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=config.BCRYPT_ROUNDS)


class InvalidTokenError(Exception):
    """Bearer token is malformed, has a bad signature or has expired."""


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


def create_access_token(user_id: int, expires_minutes: int | None = None) -> str:
    """Issue a signed bearer token whose subject is the user id."""
    minutes = config.ACCESS_TOKEN_EXPIRE_MINUTES if expires_minutes is None else expires_minutes
    now = utc_now()
    payload = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=minutes)).timestamp()),
    }
    return jwt.encode(payload, config.SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except JWTError as e:
        raise InvalidTokenError(str(e)) from e
    sub = payload.get("sub")
    if not sub or not str(sub).isdigit():
        raise InvalidTokenError("token subject missing")
    return payload


def hash_reset_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def generate_reset_token() -> tuple[str, str]:
    """Return (raw token for the link, digest to store)."""
    raw = secrets.token_urlsafe(32)
    return raw, hash_reset_token(raw)


__all__ = [
    "InvalidTokenError",
    "hash_password",
    "verify_password",
    "create_access_token",
    "decode_access_token",
    "generate_reset_token",
    "hash_reset_token",
]
