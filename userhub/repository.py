"""In-memory storage for user records."""

from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Tuple

from .models import User, UserPatch

DEMO_USERS: Tuple[Tuple[str, str, str], ...] = (
    ("1", "John Doe", "john@example.com"),
    ("2", "Jane Smith", "jane@example.com"),
    ("3", "Alex Johnson", "alex@example.com"),
)


class UserStoreError(Exception):
    """Base class for failures reported by :class:`UserRepository`."""


class UserNotFoundError(UserStoreError, KeyError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"User {user_id!r} not found")
        self.user_id = user_id

    def __str__(self) -> str:
        return self.args[0]


class EmailAlreadyExistsError(UserStoreError, ValueError):
    def __init__(self, email: str) -> None:
        super().__init__("User with this email already exists")
        self.email = email


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _generate_id() -> str:
    return str(uuid.uuid4())


class UserRepository:
    """Owns the live user collection.

    Users are kept in insertion order. Every read hands back an immutable
    :class:`User` snapshot, and every check-then-mutate sequence runs under a
    single lock so the email uniqueness and not-found checks cannot be
    invalidated by a concurrent writer.
    """

    def __init__(
        self,
        users: Iterable[User] = (),
        *,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _generate_id,
    ) -> None:
        self._users: List[User] = list(users)
        self._clock = clock
        self._id_factory = id_factory
        self._lock = threading.Lock()

    def seed_demo_users(self) -> None:
        """Replace the collection with the fixed demonstration records."""

        now = self._clock()
        with self._lock:
            self._users = [
                User(id=user_id, name=name, email=email, created_at=now, updated_at=now)
                for user_id, name, email in DEMO_USERS
            ]

    def find_all(self) -> List[User]:
        with self._lock:
            return list(self._users)

    def find_by_id(self, user_id: str) -> Optional[User]:
        with self._lock:
            index = self._index_of_locked(user_id)
            return self._users[index] if index is not None else None

    def find_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            return self._find_by_email_locked(email)

    def create(self, name: str, email: str) -> User:
        """Append a new user, refusing emails already held by a live user."""

        with self._lock:
            if self._find_by_email_locked(email) is not None:
                raise EmailAlreadyExistsError(email)
            now = self._clock()
            user = User(
                id=self._id_factory(),
                name=name,
                email=email,
                created_at=now,
                updated_at=now,
            )
            self._users.append(user)
            return user

    def update(self, user_id: str, patch: UserPatch) -> User:
        """Merge the provided fields of ``patch`` into an existing user."""

        with self._lock:
            index = self._index_of_locked(user_id)
            if index is None:
                raise UserNotFoundError(user_id)

            if patch.email is not None:
                owner = self._find_by_email_locked(patch.email)
                if owner is not None and owner.id != user_id:
                    raise EmailAlreadyExistsError(patch.email)

            current = self._users[index]
            updated = replace(
                current,
                name=patch.name if patch.name is not None else current.name,
                email=patch.email if patch.email is not None else current.email,
                updated_at=self._clock(),
            )
            self._users[index] = updated
            return updated

    def delete(self, user_id: str) -> User:
        """Remove a user and return it as it was just before removal."""

        with self._lock:
            index = self._index_of_locked(user_id)
            if index is None:
                raise UserNotFoundError(user_id)
            return self._users.pop(index)

    def exists(self, user_id: str) -> bool:
        with self._lock:
            return self._index_of_locked(user_id) is not None

    def count(self) -> int:
        with self._lock:
            return len(self._users)

    def find_paginated(self, offset: int = 0, limit: int = 10) -> List[User]:
        if offset < 0 or limit <= 0:
            return []
        with self._lock:
            return self._users[offset : offset + limit]

    def _index_of_locked(self, user_id: str) -> Optional[int]:
        for index, user in enumerate(self._users):
            if user.id == user_id:
                return index
        return None

    def _find_by_email_locked(self, email: str) -> Optional[User]:
        for user in self._users:
            if user.email == email:
                return user
        return None


__all__ = [
    "DEMO_USERS",
    "EmailAlreadyExistsError",
    "UserNotFoundError",
    "UserRepository",
    "UserStoreError",
]
