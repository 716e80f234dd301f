"""Central Enum definitions for core domain states.

Shared by the DB models, the request/response schemas and the client layer
so the allowed values live in exactly one place.
"""
from __future__ import annotations
import enum


class UserRole(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class ApplicationStatus(str, enum.Enum):
    SUBMITTED = "submitted"
    REVIEWED = "reviewed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]

    @classmethod
    def is_valid(cls, value: object) -> bool:
        return isinstance(value, str) and value in cls.values()


__all__ = [
    "UserRole",
    "ApplicationStatus",
]
