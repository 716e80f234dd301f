"""
Authentication endpoints.

``session_router`` (mounted at ``/auth``) creates sessions: signup and login.
``router`` (mounted at ``/api/auth``) covers forgot/reset password and token
refresh. Every success body is wrapped as ``{"response": ...}``.
"""
import time
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from portal.api.deps import get_current_user, get_db
from portal.models.db import User
from portal.models.schemas.auth import (
    AuthPayload, ForgotPasswordRequest, LoginRequest, ResetPasswordRequest, SignupRequest
)
from portal.models.schemas.base import Envelope, MessagePayload
from portal.models.schemas.users import UserRead
from portal.services import auth as auth_service
from portal.services.auth import AuthError, IssuedSession
from portal.services.notifications import build_reset_url, send_password_reset
from portal.utils import get_logger, log_performance

session_router = APIRouter()
router = APIRouter()
logger = get_logger(__name__)

def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get("X-Request-ID", "unknown")

def _auth_envelope(issued: IssuedSession) -> Envelope[AuthPayload]:
    return Envelope[AuthPayload](
        response=AuthPayload(token=issued.token, user=UserRead.model_validate(issued.user))
    )

def _as_http(error: AuthError) -> HTTPException:
    headers = {"WWW-Authenticate": "Bearer"} if error.status_code == status.HTTP_401_UNAUTHORIZED else None
    return HTTPException(status_code=error.status_code, detail=error.message, headers=headers)

@session_router.post(
    "/signup",
    response_model=Envelope[AuthPayload],
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
    description="Register a user and return a bearer token plus the new profile"
)
async def signup(
    body: SignupRequest,
    request: Request,
    db: Session = Depends(get_db)
) -> Envelope[AuthPayload]:
    start_time = time.time()
    request_id = _request_id(request)
    log = logger.bind(request_id=request_id)
    log.info("Signup started", email=body.email)

    try:
        issued = auth_service.signup(db, body, request_id=request_id)
    except AuthError as e:
        raise _as_http(e)

    log_performance(
        operation="signup",
        duration_ms=(time.time() - start_time) * 1000,
        additional_data={"user_id": issued.user.id}
    )
    return _auth_envelope(issued)

@session_router.post(
    "/login",
    response_model=Envelope[AuthPayload],
    summary="Sign in",
    description="Exchange email and password for a bearer token"
)
async def login(
    body: LoginRequest,
    request: Request,
    db: Session = Depends(get_db)
) -> Envelope[AuthPayload]:
    request_id = _request_id(request)
    log = logger.bind(request_id=request_id)
    log.info("Login started", email=body.email)

    try:
        issued = auth_service.login(db, body, request_id=request_id)
    except AuthError as e:
        raise _as_http(e)

    log.info("Login succeeded", user_id=issued.user.id)
    return _auth_envelope(issued)

@router.post(
    "/forgot",
    response_model=Envelope[MessagePayload],
    summary="Request a password reset link"
)
async def forgot_password(
    body: ForgotPasswordRequest,
    request: Request,
    db: Session = Depends(get_db)
) -> Envelope[MessagePayload]:
    """Answer identically whether or not the account exists."""
    request_id = _request_id(request)
    log = logger.bind(request_id=request_id)
    log.info("Password reset requested")

    issued = auth_service.request_password_reset(db, body.email, request_id=request_id)
    if issued is not None:
        user, raw_token = issued
        delivered = await send_password_reset(user, build_reset_url(raw_token))
        if not delivered:
            log.error("Password reset link was not delivered", user_id=user.id)

    return Envelope[MessagePayload](response=MessagePayload(message=auth_service.FORGOT_PASSWORD_MESSAGE))

@router.post(
    "/reset",
    response_model=Envelope[MessagePayload],
    summary="Reset password with an emailed token"
)
async def reset_password(
    body: ResetPasswordRequest,
    request: Request,
    db: Session = Depends(get_db)
) -> Envelope[MessagePayload]:
    request_id = _request_id(request)
    try:
        user = auth_service.reset_password(db, body, request_id=request_id)
    except AuthError as e:
        raise _as_http(e)

    logger.info("Password reset completed", user_id=user.id, request_id=request_id)
    return Envelope[MessagePayload](response=MessagePayload(message="Password has been reset"))

@router.get(
    "/refresh",
    response_model=Envelope[AuthPayload],
    summary="Refresh the bearer token",
    description="Requires a valid bearer token; returns a new token and the current profile"
)
async def refresh_token(
    request: Request,
    current_user: User = Depends(get_current_user)
) -> Envelope[AuthPayload]:
    logger.info("Token refresh", user_id=current_user.id, request_id=_request_id(request))
    return _auth_envelope(auth_service.refresh(current_user))
