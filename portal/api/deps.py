"""
Dependencies for authentication, database sessions, and common access checks.
"""
from typing import Generator, Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from portal.database import SessionLocal
from portal.models.db import User, Application
from portal.models.enums import UserRole
from portal.utils import get_logger
from portal.utils.security import InvalidTokenError, decode_access_token

logger = get_logger(__name__)
# auto_error off so a missing header is a 401 like every other auth failure
security = HTTPBearer(auto_error=False)

def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.
    Ensures proper session lifecycle management with automatic cleanup.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error("Database session error", error=str(e), exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()

def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Resolve the user behind the ``Authorization: Bearer <token>`` header.

    Raises:
        HTTPException: 401 if the header is missing, the token does not
        verify, or the user no longer exists / is inactive
    """
    if credentials is None or not credentials.credentials:
        logger.warning("Authentication failed: missing bearer token")
        raise _unauthorized("Not authenticated")

    try:
        payload = decode_access_token(credentials.credentials)
    except InvalidTokenError as e:
        logger.warning("Authentication failed: invalid token", error=str(e))
        raise _unauthorized("Invalid or expired token")

    user = db.query(User).filter(
        User.id == int(payload["sub"]),
        User.is_active == True
    ).first()

    if not user:
        logger.warning("Authentication failed: user missing or inactive", user_id=payload["sub"])
        raise _unauthorized("Invalid or expired token")

    logger.debug("User authenticated", user_id=user.id, user_role=user.role)
    return user

def require_admin(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Dependency that requires ADMIN role.

    Raises:
        HTTPException: If user is not an admin
    """
    if current_user.role != UserRole.ADMIN:
        logger.warning(
            "Access denied: admin required",
            user_id=current_user.id,
            user_role=current_user.role
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )

    return current_user

def get_application_if_authorized(
    application_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Application:
    """Fetch an application and enforce ownership.

    Access rules:
      * ADMIN: any application
      * USER: only applications they own

    Raises 404 if the application does not exist, 403 on an ownership mismatch.
    """
    application = db.query(Application).filter(Application.id == application_id).first()
    if not application:
        logger.warning("Application not found during access check", application_id=application_id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Application not found")
    if current_user.role != UserRole.ADMIN and application.user_id != current_user.id:
        logger.warning(
            "Application access denied",
            user_id=current_user.id,
            application_id=application_id,
            owner_id=application.user_id,
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return application
