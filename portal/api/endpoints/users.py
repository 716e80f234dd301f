"""
User profile endpoints (own profile plus the admin directory).
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session
import time
from portal.api.deps import get_db, get_current_user, require_admin
from portal.models.db import User
from portal.models.enums import UserRole
from portal.models.schemas.base import Envelope
from portal.models.schemas.users import UserRead, UserUpdate
from portal.utils import get_logger, log_business_event, log_performance

router = APIRouter()
logger = get_logger(__name__)

@router.get(
    "/me",
    response_model=Envelope[UserRead],
    summary="Current user profile"
)
async def read_me(current_user: User = Depends(get_current_user)) -> Envelope[UserRead]:
    return Envelope[UserRead](response=UserRead.model_validate(current_user))

@router.put(
    "/me",
    response_model=Envelope[UserRead],
    summary="Update current user profile"
)
async def update_me(
    body: UserUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Envelope[UserRead]:
    request_id = getattr(request.state, "request_id", "unknown")
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No profile fields supplied"
        )

    for field_name, value in changes.items():
        setattr(current_user, field_name, value.strip() if isinstance(value, str) else value)
    db.commit()
    db.refresh(current_user)

    log_business_event(
        event_type="profile_updated",
        details={"fields": sorted(changes)},
        user_id=current_user.id,
        request_id=request_id
    )
    return Envelope[UserRead](response=UserRead.model_validate(current_user))


@router.get(
    "/",
    response_model=Envelope[List[UserRead]],
    summary="List users",
    description="Admin directory of accounts, optionally filtered by role"
)
@router.get("", response_model=Envelope[List[UserRead]], include_in_schema=False)
async def list_users(
    request: Request,
    admin: User = Depends(require_admin),
    role: Optional[UserRole] = Query(None, description="Filter by user role"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db)
) -> Envelope[List[UserRead]]:
    start_time = time.time()
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    users = query.order_by(User.id).offset(skip).limit(limit).all()

    log_performance(
        operation="list_users",
        duration_ms=(time.time() - start_time) * 1000,
        additional_data={"returned": len(users), "role_filter": role, "admin_id": admin.id}
    )
    logger.info("User directory listed", admin_id=admin.id, returned=len(users), request_id=getattr(request.state, "request_id", "unknown"))
    return Envelope[List[UserRead]](response=[UserRead.model_validate(u) for u in users])
