"""In-memory user directory with real-time change notifications."""

from __future__ import annotations

from typing import Any

from .config import Settings, load_settings
from .connections import ConnectionRegistry
from .repository import UserRepository
from .users import UserService


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the HTTP + WebSocket application."""

    from .api import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "ConnectionRegistry",
    "Settings",
    "UserRepository",
    "UserService",
    "create_app",
    "load_settings",
]
