"""
Application endpoints: submission, listing and the review-status workflow.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from sqlalchemy.orm import Session
import time
from portal.api.deps import get_db, get_current_user, get_application_if_authorized, require_admin
from portal.models.db import Application, User
from portal.models.enums import ApplicationStatus, UserRole
from portal.models.schemas.applications import ApplicationCreate, ApplicationRead, ApplicationStatusUpdate
from portal.models.schemas.base import Envelope
from portal.utils import get_logger, log_business_event, log_performance

router = APIRouter()
logger = get_logger(__name__)

@router.post(
    "/",
    response_model=Envelope[ApplicationRead],
    status_code=status.HTTP_201_CREATED,
    summary="Submit an application"
)
@router.post("", response_model=Envelope[ApplicationRead], status_code=status.HTTP_201_CREATED, include_in_schema=False)
async def create_application(
    body: ApplicationCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Envelope[ApplicationRead]:
    """New applications always start in ``submitted``."""
    request_id = getattr(request.state, "request_id", "unknown")

    application = Application(
        user_id=current_user.id,
        title=body.title,
        details=body.details,
        status=ApplicationStatus.SUBMITTED,
    )
    db.add(application)
    db.commit()
    db.refresh(application)

    log_business_event(
        event_type="application_created",
        details={"application_id": application.id, "title": application.title},
        user_id=current_user.id,
        request_id=request_id
    )
    return Envelope[ApplicationRead](response=ApplicationRead.model_validate(application))

@router.get(
    "/",
    response_model=Envelope[List[ApplicationRead]],
    summary="List applications",
    description="Admins see every application; other users see their own"
)
@router.get("", response_model=Envelope[List[ApplicationRead]], include_in_schema=False)
async def list_applications(
    request: Request,
    status_filter: Optional[ApplicationStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Envelope[List[ApplicationRead]]:
    start_time = time.time()
    request_id = getattr(request.state, "request_id", "unknown")

    query = db.query(Application)
    if current_user.role != UserRole.ADMIN:
        query = query.filter(Application.user_id == current_user.id)
    if status_filter:
        query = query.filter(Application.status == status_filter)

    applications = (
        query.order_by(Application.created_at.desc(), Application.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )

    duration_ms = (time.time() - start_time) * 1000
    log_performance(
        operation="list_applications",
        duration_ms=duration_ms,
        additional_data={"returned": len(applications), "status_filter": status_filter}
    )
    logger.info(
        "Applications listed",
        user_id=current_user.id,
        returned=len(applications),
        request_id=request_id
    )
    return Envelope[List[ApplicationRead]](
        response=[ApplicationRead.model_validate(a) for a in applications]
    )

@router.get(
    "/{application_id}",
    response_model=Envelope[ApplicationRead],
    summary="Get one application"
)
async def get_application(
    application: Application = Depends(get_application_if_authorized)
) -> Envelope[ApplicationRead]:
    return Envelope[ApplicationRead](response=ApplicationRead.model_validate(application))

@router.put(
    "/{application_id}/status",
    response_model=Envelope[ApplicationRead],
    summary="Change application status",
    description="Admin only. The status must be one of: " + ", ".join(ApplicationStatus.values())
)
async def update_application_status(
    application_id: int,
    body: ApplicationStatusUpdate,
    request: Request,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
) -> Envelope[ApplicationRead]:
    request_id = getattr(request.state, "request_id", "unknown")

    application = db.query(Application).filter(Application.id == application_id).first()
    if not application:
        logger.warning(
            "Status update failed: application not found",
            application_id=application_id,
            request_id=request_id
        )
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Application with id {application_id} not found"
        )

    previous = application.status
    if previous == body.status:
        logger.info(
            "Status update is a no-op",
            application_id=application_id,
            status=body.status.value,
            request_id=request_id
        )
        return Envelope[ApplicationRead](response=ApplicationRead.model_validate(application))

    application.status = body.status
    application.status_updated_by = admin.id
    db.commit()
    db.refresh(application)

    log_business_event(
        event_type="application_status_changed",
        details={
            "application_id": application.id,
            "from_status": previous.value,
            "to_status": application.status.value,
        },
        user_id=admin.id,
        request_id=request_id
    )
    return Envelope[ApplicationRead](response=ApplicationRead.model_validate(application))
