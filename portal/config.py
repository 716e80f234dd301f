"""Core application configuration.

Secrets, token lifetimes, rate limits and client defaults are centralized here
so they can be adjusted without diving into service logic. Values come from
environment variables with development defaults; they are plain module
constants (mutable dicts allowed so tests can monkeypatch values).
"""
from __future__ import annotations

import os

# --------------------------------- Tokens --------------------------------- #
SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-change-me")
JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
# Bearer tokens are stateless; sign-out happens client side.
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)))

# ----------------------------- Password reset ----------------------------- #
RESET_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("RESET_TOKEN_EXPIRE_MINUTES", "60"))
FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")
# Optional HTTP hook that delivers reset links (mail relay, chat bot, ...).
RESET_WEBHOOK_URL: str | None = os.getenv("RESET_WEBHOOK_URL") or None
RESET_WEBHOOK_TIMEOUT: float = float(os.getenv("RESET_WEBHOOK_TIMEOUT", "10"))

# -------------------------------- Accounts -------------------------------- #
PASSWORD_MIN_LENGTH: int = int(os.getenv("PASSWORD_MIN_LENGTH", "8"))
BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Emails granted the ADMIN role when they sign up.
_admins_raw = os.getenv("ADMIN_EMAILS", "")
ADMIN_EMAILS: set[str] = {e.strip().lower() for e in _admins_raw.split(",") if e.strip()}

# ------------------------------ Rate limiting ----------------------------- #
RATE_LIMIT_SETTINGS: dict[str, dict[str, int]] = {
    # Everything not matched by a narrower category
    "default": {"limit": 1000, "window_seconds": 3600},
    # Credential endpoints (signup, login, forgot, reset, refresh) per client address
    "auth": {"limit": 30, "window_seconds": 300},
}

# ---------------------------------- HTTP ---------------------------------- #
CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE: str | None = os.getenv("LOG_FILE", "logs/portal.log") or None

# --------------------------------- Client --------------------------------- #
# Base URL the client layer talks to. Auth routes live at /auth and /api/auth,
# so this is the server root rather than an /api prefix.
API_BASE_URL: str = os.getenv("API_BASE_URL", "http://localhost:8000")
CLIENT_REQUEST_TIMEOUT: float = float(os.getenv("CLIENT_REQUEST_TIMEOUT", "30"))

__all__ = [
    "SECRET_KEY",
    "JWT_ALGORITHM",
    "ACCESS_TOKEN_EXPIRE_MINUTES",
    "RESET_TOKEN_EXPIRE_MINUTES",
    "FRONTEND_URL",
    "RESET_WEBHOOK_URL",
    "RESET_WEBHOOK_TIMEOUT",
    "PASSWORD_MIN_LENGTH",
    "BCRYPT_ROUNDS",
    "ADMIN_EMAILS",
    "RATE_LIMIT_SETTINGS",
    "CORS_ORIGINS",
    "LOG_LEVEL",
    "LOG_FILE",
    "API_BASE_URL",
    "CLIENT_REQUEST_TIMEOUT",
]
