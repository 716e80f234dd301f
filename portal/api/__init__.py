"""
API router initialization and setup.

Session creation lives at ``/auth``; everything else under ``/api``.
"""
from fastapi import APIRouter
from portal.models.schemas.base import ErrorResponse
from .endpoints import auth, applications, users

# Documented on every route; the exception handlers in main produce these bodies
ERROR_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Missing or invalid bearer token"},
    422: {"model": ErrorResponse, "description": "Request validation failed"},
    429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
}

auth_router = APIRouter(responses=ERROR_RESPONSES)

auth_router.include_router(
    auth.session_router,
    tags=["auth"]
)

api_router = APIRouter(responses=ERROR_RESPONSES)

api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["auth"]
)

api_router.include_router(
    applications.router,
    prefix="/applications",
    tags=["applications"],
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}
)

api_router.include_router(
    users.router,
    prefix="/users",
    tags=["users"],
    responses={403: {"model": ErrorResponse}}
)
