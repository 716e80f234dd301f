"""Account lifecycle: sign-up, login, token refresh and password reset.

Functions here work on a SQLAlchemy session and raise ``AuthError`` for
expected failures; the HTTP layer maps those to status codes. Sign-out has no
server side: bearer tokens are stateless and the client simply drops them.
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portal import config
from portal.models.db import User, UserRole
from portal.models.schemas.auth import SignupRequest, LoginRequest, ResetPasswordRequest
from portal.utils import get_logger, log_business_event
from portal.utils.security import (
    create_access_token,
    generate_reset_token,
    hash_password,
    hash_reset_token,
    verify_password,
)
from portal.utils.time import as_utc, utc_now

logger = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_RESET_TOKEN = "Password reset token is invalid or has expired"
FORGOT_PASSWORD_MESSAGE = "If an account exists for that email, a password reset link has been sent"

_dummy_password_hash: str | None = None


class AuthError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@dataclass
class IssuedSession:
    token: str
    user: User


def _issue(user: User) -> IssuedSession:
    return IssuedSession(token=create_access_token(user.id), user=user)


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def signup(db: Session, data: SignupRequest, request_id: str | None = None) -> IssuedSession:
    if find_user_by_email(db, data.email):
        logger.warning("Signup rejected: duplicate email", email=data.email, request_id=request_id)
        raise AuthError(409, f"User with email '{data.email}' already exists")

    role = UserRole.ADMIN if data.email in config.ADMIN_EMAILS else UserRole.USER
    user = User(
        name=data.name.strip(),
        email=data.email,
        password_hash=hash_password(data.password),
        role=role,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        # Lost a race with a concurrent signup for the same email
        db.rollback()
        logger.warning("Signup rejected: integrity error", email=data.email, error=str(e), request_id=request_id)
        raise AuthError(409, f"User with email '{data.email}' already exists")
    db.refresh(user)

    log_business_event(
        event_type="user_signed_up",
        details={"email": user.email, "role": user.role.value},
        user_id=user.id,
        request_id=request_id,
    )
    return _issue(user)


def _unknown_user_hash() -> str:
    global _dummy_password_hash
    if _dummy_password_hash is None:
        _dummy_password_hash = hash_password(secrets.token_urlsafe(16))
    return _dummy_password_hash


def login(db: Session, data: LoginRequest, request_id: str | None = None) -> IssuedSession:
    user = find_user_by_email(db, data.email)
    # Same message and the same bcrypt cost for unknown email and bad password
    password_hash = user.password_hash if user is not None else _unknown_user_hash()
    if not verify_password(data.password, password_hash) or user is None:
        logger.warning("Login failed", email=data.email, request_id=request_id)
        raise AuthError(401, INVALID_CREDENTIALS)
    if not user.is_active:
        logger.warning("Login refused for inactive user", user_id=user.id, request_id=request_id)
        raise AuthError(403, "Account is disabled")

    log_business_event(event_type="user_logged_in", details={"email": user.email}, user_id=user.id, request_id=request_id)
    return _issue(user)


def refresh(user: User) -> IssuedSession:
    """Re-issue a token for an already authenticated user."""
    logger.debug("Token refreshed", user_id=user.id)
    return _issue(user)


def request_password_reset(db: Session, email: str, request_id: str | None = None) -> tuple[User, str] | None:
    """Store a fresh reset digest for an active user.

    Returns ``(user, raw_token)`` or ``None`` when no active account matches;
    callers must answer identically in both cases.
    """
    user = find_user_by_email(db, email)
    if user is None or not user.is_active:
        logger.info("Password reset requested for unknown or inactive account", request_id=request_id)
        return None

    raw, digest = generate_reset_token()
    user.reset_password_token = digest
    user.reset_password_expires = utc_now() + timedelta(minutes=config.RESET_TOKEN_EXPIRE_MINUTES)
    db.commit()
    db.refresh(user)

    log_business_event(
        event_type="password_reset_requested",
        details={"expires_in_minutes": config.RESET_TOKEN_EXPIRE_MINUTES},
        user_id=user.id,
        request_id=request_id,
    )
    return user, raw


def reset_password(db: Session, data: ResetPasswordRequest, request_id: str | None = None) -> User:
    if data.password != data.password_confirm:
        raise AuthError(400, "Passwords do not match")

    user = db.query(User).filter(User.reset_password_token == hash_reset_token(data.token)).first()
    if user is None:
        logger.warning("Password reset with unknown token", request_id=request_id)
        raise AuthError(400, INVALID_RESET_TOKEN)

    expires = user.reset_password_expires
    if expires is None or as_utc(expires) <= utc_now():
        user.reset_password_token = None
        user.reset_password_expires = None
        db.commit()
        logger.warning("Password reset with expired token", user_id=user.id, request_id=request_id)
        raise AuthError(400, INVALID_RESET_TOKEN)

    user.password_hash = hash_password(data.password)
    # Single use
    user.reset_password_token = None
    user.reset_password_expires = None
    db.commit()
    db.refresh(user)

    log_business_event(event_type="password_reset_completed", details={}, user_id=user.id, request_id=request_id)
    return user


__all__ = [
    "AuthError",
    "IssuedSession",
    "FORGOT_PASSWORD_MESSAGE",
    "INVALID_CREDENTIALS",
    "INVALID_RESET_TOKEN",
    "find_user_by_email",
    "signup",
    "login",
    "refresh",
    "request_password_reset",
    "reset_password",
]
