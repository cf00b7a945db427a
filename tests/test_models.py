from __future__ import annotations

from datetime import datetime, timezone

import pytest

from userhub.models import (
    EMAIL_ERROR,
    NAME_ERROR,
    EventType,
    User,
    UserEvent,
    UserPatch,
    is_valid_email,
    validate_new_user,
    validate_patch,
)


@pytest.mark.parametrize(
    "email",
    ["john@example.com", "a@b.co", "first.last@sub.domain.org"],
)
def test_accepts_basic_email_shapes(email: str) -> None:
    assert is_valid_email(email)


@pytest.mark.parametrize(
    "email",
    ["", "plainaddress", "no-at.example.com", "user@nodot", "two@@example.com", "sp ace@example.com", "user@example.com\n"],
)
def test_rejects_malformed_email(email: str) -> None:
    assert not is_valid_email(email)


def test_new_user_errors_are_collected_in_order() -> None:
    assert validate_new_user(" A ", "broken") == [NAME_ERROR, EMAIL_ERROR]
    assert validate_new_user(None, None) == [NAME_ERROR, EMAIL_ERROR]
    assert validate_new_user("Al", "al@example.com") == []


def test_patch_validation_ignores_absent_fields() -> None:
    assert validate_patch(UserPatch()) == []
    assert validate_patch(UserPatch(email="nope")) == [EMAIL_ERROR]
    assert validate_patch(UserPatch(name="x")) == [NAME_ERROR]


def test_event_serialises_user_snapshot() -> None:
    stamp = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    user = User(id="7", name="Ann Lee", email="ann@x.com", created_at=stamp, updated_at=stamp)

    payload = UserEvent(EventType.DELETED, user).to_dict()

    assert payload == {
        "type": "deleted",
        "user": {
            "id": "7",
            "name": "Ann Lee",
            "email": "ann@x.com",
            "createdAt": "2024-01-02T03:04:05+00:00",
            "updatedAt": "2024-01-02T03:04:05+00:00",
        },
    }
