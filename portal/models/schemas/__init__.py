from .base import Envelope, ErrorResponse, MessagePayload
from .users import UserRead, UserUpdate
from .auth import (
    SignupRequest, LoginRequest, ForgotPasswordRequest, ResetPasswordRequest, AuthPayload
)
from .applications import ApplicationCreate, ApplicationRead, ApplicationStatusUpdate

__all__ = [
    # Base
    "Envelope",
    "ErrorResponse",
    "MessagePayload",

    # Users
    "UserRead",
    "UserUpdate",

    # Auth
    "SignupRequest",
    "LoginRequest",
    "ForgotPasswordRequest",
    "ResetPasswordRequest",
    "AuthPayload",

    # Applications
    "ApplicationCreate",
    "ApplicationRead",
    "ApplicationStatusUpdate",
]
