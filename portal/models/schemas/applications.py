"""
Pydantic schemas for applications and their status workflow.
"""
from datetime import datetime
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, ConfigDict
from ..enums import ApplicationStatus

class ApplicationCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    details: Dict[str, Any] = Field(default_factory=dict, description="Free-form form answers")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "title": "Spring cohort",
            "details": {"school": "MIT", "graduation_year": 2027}
        }
    })

class ApplicationRead(BaseModel):
    id: int
    user_id: int
    title: str
    details: Dict[str, Any]
    status: ApplicationStatus
    status_updated_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class ApplicationStatusUpdate(BaseModel):
    """Anything outside ``ApplicationStatus`` is rejected with a 422."""
    status: ApplicationStatus
