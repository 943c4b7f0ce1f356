"""Shared enumerations used across modules."""

from __future__ import annotations

from enum import StrEnum
from typing import Iterable, TypeVar

EnumType = TypeVar("EnumType", bound=StrEnum)


def enum_values(enum_cls: Iterable[EnumType]) -> list[str]:
    """Return the .value for each enum member (used by SQLAlchemy)."""
    return [member.value for member in enum_cls]


class UserRole(StrEnum):
    ADMIN = "admin"
    PROFESSIONAL = "professional"
    CONTENT_MANAGER = "content_manager"
    FINANCIAL = "financial"


class AppointmentStatus(StrEnum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AppointmentType(StrEnum):
    REGULAR = "regular"
    FIRST_TIME = "first_time"
    EMERGENCY = "emergency"
