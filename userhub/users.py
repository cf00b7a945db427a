"""Validation and orchestration for user operations.

:class:`UserService` is the only caller of the repository's mutating methods.
It validates input, maps store failures onto an :class:`ErrorKind`, and pushes
a :class:`~userhub.models.UserEvent` through the connection registry once a
mutation has succeeded. No method raises: every call returns a
:class:`ServiceResult`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from .connections import ConnectionRegistry
from .models import EventType, User, UserEvent, UserPatch, validate_new_user, validate_patch
from .repository import EmailAlreadyExistsError, UserNotFoundError, UserRepository

logger = logging.getLogger("userhub.users")

T = TypeVar("T")

USER_ID_REQUIRED = "User ID is required"
USER_NOT_FOUND = "User not found"
INVALID_PAGINATION = "Invalid pagination parameters"
MAX_PAGE_SIZE = 100


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """Outcome of a service call: either ``data``/``message`` or ``error``."""

    data: Optional[T] = None
    message: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: T, message: str) -> "ServiceResult[T]":
        return cls(data=data, message=message)

    @classmethod
    def failure(cls, error: str, kind: ErrorKind) -> "ServiceResult[T]":
        return cls(error=error, error_kind=kind)


@dataclass(frozen=True)
class UserPage:
    users: List[User]
    total: int
    offset: int
    limit: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "users": [user.to_dict() for user in self.users],
            "total": self.total,
            "offset": self.offset,
            "limit": self.limit,
        }


@dataclass(frozen=True)
class UserStats:
    total_users: int
    connections_count: int

    def to_dict(self) -> Dict[str, int]:
        return {"totalUsers": self.total_users, "connectionsCount": self.connections_count}


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class UserService:
    def __init__(self, repository: UserRepository, registry: ConnectionRegistry) -> None:
        self._repository = repository
        self._registry = registry

    async def get_all_users(self) -> ServiceResult[List[User]]:
        try:
            users = self._repository.find_all()
        except Exception:
            logger.exception("Error fetching users")
            return ServiceResult.failure("Failed to retrieve users", ErrorKind.UNEXPECTED)
        return ServiceResult.success(users, f"Retrieved {len(users)} users")

    async def get_user_by_id(self, user_id: str) -> ServiceResult[User]:
        try:
            if _is_blank(user_id):
                return ServiceResult.failure(USER_ID_REQUIRED, ErrorKind.VALIDATION)
            user = self._repository.find_by_id(user_id)
        except Exception:
            logger.exception("Error fetching user %s", user_id)
            return ServiceResult.failure("Failed to retrieve user", ErrorKind.UNEXPECTED)
        if user is None:
            return ServiceResult.failure(USER_NOT_FOUND, ErrorKind.NOT_FOUND)
        return ServiceResult.success(user, "User retrieved successfully")

    async def create_user(self, name: Optional[str], email: Optional[str]) -> ServiceResult[User]:
        try:
            errors = validate_new_user(name, email)
            if errors:
                return ServiceResult.failure(", ".join(errors), ErrorKind.VALIDATION)
            user = self._repository.create(name, email)
        except EmailAlreadyExistsError as exc:
            logger.info("Rejected user creation for %s: %s", email, exc)
            return ServiceResult.failure(str(exc), ErrorKind.CONFLICT)
        except Exception:
            logger.exception("Error creating user")
            return ServiceResult.failure("Failed to create user", ErrorKind.UNEXPECTED)

        logger.info("Created user %s", user.id)
        await self._broadcast(UserEvent(EventType.CREATED, user))
        return ServiceResult.success(user, "User created successfully")

    async def update_user(self, user_id: str, patch: UserPatch) -> ServiceResult[User]:
        try:
            if _is_blank(user_id):
                return ServiceResult.failure(USER_ID_REQUIRED, ErrorKind.VALIDATION)
            errors = validate_patch(patch)
            if errors:
                return ServiceResult.failure(", ".join(errors), ErrorKind.VALIDATION)
            user = self._repository.update(user_id, patch)
        except UserNotFoundError:
            return ServiceResult.failure(USER_NOT_FOUND, ErrorKind.NOT_FOUND)
        except EmailAlreadyExistsError as exc:
            logger.info("Rejected update of user %s: %s", user_id, exc)
            return ServiceResult.failure(str(exc), ErrorKind.CONFLICT)
        except Exception:
            logger.exception("Error updating user %s", user_id)
            return ServiceResult.failure("Failed to update user", ErrorKind.UNEXPECTED)

        logger.info("Updated user %s", user.id)
        await self._broadcast(UserEvent(EventType.UPDATED, user))
        return ServiceResult.success(user, "User updated successfully")

    async def delete_user(self, user_id: str) -> ServiceResult[User]:
        try:
            if _is_blank(user_id):
                return ServiceResult.failure(USER_ID_REQUIRED, ErrorKind.VALIDATION)
            user = self._repository.delete(user_id)
        except UserNotFoundError:
            return ServiceResult.failure(USER_NOT_FOUND, ErrorKind.NOT_FOUND)
        except Exception:
            logger.exception("Error deleting user %s", user_id)
            return ServiceResult.failure("Failed to delete user", ErrorKind.UNEXPECTED)

        logger.info("Deleted user %s", user.id)
        await self._broadcast(UserEvent(EventType.DELETED, user))
        return ServiceResult.success(user, "User deleted successfully")

    async def get_users_paginated(self, offset: int = 0, limit: int = 10) -> ServiceResult[UserPage]:
        try:
            if offset < 0 or limit <= 0 or limit > MAX_PAGE_SIZE:
                return ServiceResult.failure(INVALID_PAGINATION, ErrorKind.VALIDATION)
            users = self._repository.find_paginated(offset, limit)
            total = self._repository.count()
        except Exception:
            logger.exception("Error fetching paginated users")
            return ServiceResult.failure("Failed to retrieve users", ErrorKind.UNEXPECTED)
        page = UserPage(users=users, total=total, offset=offset, limit=limit)
        return ServiceResult.success(page, f"Retrieved {len(users)} of {total} users")

    async def get_user_stats(self) -> ServiceResult[UserStats]:
        try:
            stats = UserStats(
                total_users=self._repository.count(),
                connections_count=self._registry.get_connection_count(),
            )
        except Exception:
            logger.exception("Error fetching user stats")
            return ServiceResult.failure("Failed to retrieve user statistics", ErrorKind.UNEXPECTED)
        return ServiceResult.success(stats, "User statistics retrieved successfully")

    async def user_exists_by_email(self, email: str) -> bool:
        try:
            return self._repository.find_by_email(email) is not None
        except Exception:
            logger.exception("Error checking user existence by email")
            return False

    async def _broadcast(self, event: UserEvent) -> None:
        try:
            await self._registry.broadcast(event)
        except Exception:
            logger.exception("Error broadcasting %s event for user %s", event.type.value, event.user.id)


__all__ = [
    "ErrorKind",
    "INVALID_PAGINATION",
    "MAX_PAGE_SIZE",
    "ServiceResult",
    "USER_ID_REQUIRED",
    "USER_NOT_FOUND",
    "UserPage",
    "UserService",
    "UserStats",
]
