from __future__ import annotations

import itertools
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from typing import Callable

import pytest

from userhub.models import UserPatch
from userhub.repository import (
    DEMO_USERS,
    EmailAlreadyExistsError,
    UserNotFoundError,
    UserRepository,
)


def _ticking_clock() -> Callable[[], datetime]:
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    ticks = itertools.count()
    return lambda: start + timedelta(seconds=next(ticks))


@pytest.fixture()
def repository() -> UserRepository:
    repo = UserRepository(clock=_ticking_clock())
    repo.seed_demo_users()
    return repo


def test_seed_loads_demo_users_in_order(repository: UserRepository) -> None:
    users = repository.find_all()
    assert [(u.id, u.name, u.email) for u in users] == list(DEMO_USERS)
    assert repository.count() == 3


def test_create_assigns_fresh_id_and_timestamps(repository: UserRepository) -> None:
    user = repository.create("Ann Lee", "ann@x.com")

    assert user.id not in {"1", "2", "3"}
    assert user.created_at == user.updated_at
    assert repository.count() == 4
    assert repository.find_all()[-1] == user
    assert repository.find_by_email("ann@x.com") == user


def test_create_rejects_duplicate_email(repository: UserRepository) -> None:
    with pytest.raises(EmailAlreadyExistsError) as excinfo:
        repository.create("Johnny", "john@example.com")

    assert "already exists" in str(excinfo.value)
    assert repository.count() == 3


def test_email_match_is_case_sensitive(repository: UserRepository) -> None:
    repository.create("Shouty John", "JOHN@example.com")
    assert repository.count() == 4


def test_returned_users_cannot_mutate_store(repository: UserRepository) -> None:
    snapshot = repository.find_by_id("1")
    assert snapshot is not None
    with pytest.raises(FrozenInstanceError):
        snapshot.name = "Mallory"  # type: ignore[misc]

    listing = repository.find_all()
    listing.clear()
    assert repository.count() == 3


def test_update_merges_only_provided_fields(repository: UserRepository) -> None:
    before = repository.find_by_id("2")
    assert before is not None

    updated = repository.update("2", UserPatch(name="Jane Doe"))

    assert updated.name == "Jane Doe"
    assert updated.email == before.email
    assert updated.created_at == before.created_at
    assert updated.updated_at > before.updated_at
    assert repository.find_by_id("2") == updated


def test_update_to_own_email_is_not_a_conflict(repository: UserRepository) -> None:
    updated = repository.update("1", UserPatch(email="john@example.com"))
    assert updated.email == "john@example.com"


def test_update_to_other_users_email_conflicts(repository: UserRepository) -> None:
    with pytest.raises(EmailAlreadyExistsError):
        repository.update("2", UserPatch(email="john@example.com"))
    assert repository.find_by_id("2").email == "jane@example.com"  # type: ignore[union-attr]


def test_update_and_delete_unknown_id(repository: UserRepository) -> None:
    with pytest.raises(UserNotFoundError):
        repository.update("99", UserPatch(name="Nobody"))
    with pytest.raises(UserNotFoundError):
        repository.delete("99")
    assert repository.count() == 3


def test_delete_returns_snapshot_and_frees_email(repository: UserRepository) -> None:
    removed = repository.delete("3")

    assert removed.email == "alex@example.com"
    assert repository.find_by_id("3") is None
    assert not repository.exists("3")

    again = repository.create("Alex Again", "alex@example.com")
    assert again.id != "3"


@pytest.mark.parametrize(
    ("offset", "limit", "expected_ids"),
    [
        (0, 2, ["1", "2"]),
        (1, 10, ["2", "3"]),
        (2, 1, ["3"]),
        (3, 5, []),
        (50, 5, []),
    ],
)
def test_find_paginated_slices_insertion_order(
    repository: UserRepository, offset: int, limit: int, expected_ids: list[str]
) -> None:
    page = repository.find_paginated(offset, limit)
    assert [user.id for user in page] == expected_ids


def test_concurrent_creates_with_colliding_email_keep_uniqueness() -> None:
    repository = UserRepository()
    workers = 16
    barrier = threading.Barrier(workers)

    def attempt(index: int) -> bool:
        barrier.wait()
        try:
            repository.create(f"Writer {index}", "shared@example.com")
        except EmailAlreadyExistsError:
            return False
        return True

    with ThreadPoolExecutor(max_workers=workers) as pool:
        outcomes = list(pool.map(attempt, range(workers)))

    assert outcomes.count(True) == 1
    assert repository.count() == 1
