from .users import User
from .applications import Application
from ..enums import UserRole, ApplicationStatus

__all__ = [
    "User",
    "Application",
    "UserRole",
    "ApplicationStatus",
]
