"""Domain models for the user directory service."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

_EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_MIN_NAME_LENGTH = 2

NAME_ERROR = "Name must be at least 2 characters long"
EMAIL_ERROR = "Valid email is required"


@dataclass(frozen=True)
class User:
    """Snapshot of a user record held by the store."""

    id: str
    name: str
    email: str
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class UserPatch:
    """Partial update; ``None`` fields are left untouched."""

    name: Optional[str] = None
    email: Optional[str] = None


class EventType(str, Enum):
    """Kinds of mutation pushed to connected clients."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class UserEvent:
    type: EventType
    user: User

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "user": self.user.to_dict()}


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_PATTERN.fullmatch(email))


def is_valid_name(name: str) -> bool:
    return len(name.strip()) >= _MIN_NAME_LENGTH


def validate_new_user(name: Optional[str], email: Optional[str]) -> List[str]:
    """Return the validation errors for a user about to be created."""

    errors: List[str] = []
    if not name or not is_valid_name(name):
        errors.append(NAME_ERROR)
    if not email or not is_valid_email(email):
        errors.append(EMAIL_ERROR)
    return errors


def validate_patch(patch: UserPatch) -> List[str]:
    """Validate only the fields present on ``patch``."""

    errors: List[str] = []
    if patch.name is not None and not is_valid_name(patch.name):
        errors.append(NAME_ERROR)
    if patch.email is not None and not is_valid_email(patch.email):
        errors.append(EMAIL_ERROR)
    return errors


__all__ = [
    "EMAIL_ERROR",
    "EventType",
    "NAME_ERROR",
    "User",
    "UserEvent",
    "UserPatch",
    "is_valid_email",
    "is_valid_name",
    "validate_new_user",
    "validate_patch",
]
