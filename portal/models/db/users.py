from __future__ import annotations
"""SQLAlchemy model for users (applicants and admins)."""
from typing import TYPE_CHECKING
from sqlalchemy import Integer, String, DateTime, Boolean, Enum
from sqlalchemy.orm import relationship, Mapped, mapped_column

if TYPE_CHECKING:  # pragma: no cover
    from .applications import Application
from sqlalchemy.sql import func
from portal.database import Base
from ..enums import UserRole

class User(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    # Always stored lower-case so lookups are case-insensitive
    email: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[UserRole] = mapped_column(Enum(UserRole), default=UserRole.USER, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # SHA-256 digest of the outstanding reset token; raw token only travels in the link
    reset_password_token: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    reset_password_expires: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    applications: Mapped[list["Application"]] = relationship(
        "Application", back_populates="user", foreign_keys="Application.user_id"
    )
