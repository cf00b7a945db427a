"""Shared-secret authentication for the user API."""
from __future__ import annotations

import secrets

from fastapi import Request

INVALID_API_KEY_CODE = "INVALID_API_KEY"
INVALID_API_KEY_MESSAGE = "Please provide a valid API KEY in the authorization header"


class InvalidAPIKeyError(Exception):
    """Raised when a request does not carry the configured API key."""

    code = INVALID_API_KEY_CODE
    message = INVALID_API_KEY_MESSAGE


class APIKeyAuth:
    """Compare the ``Authorization`` header to a static key in constant time.

    Looser than an exact header match on purpose: surrounding whitespace is
    stripped and a ``Bearer <key>`` form is accepted alongside the bare key.
    """

    def __init__(self, api_key: str) -> None:
        cleaned = api_key.strip()
        if not cleaned:
            raise ValueError("An API key must be provided")
        self._api_key = cleaned

    def verify(self, header: str | None) -> bool:
        if not header:
            return False
        provided = header.strip()
        scheme, _, remainder = provided.partition(" ")
        if scheme.lower() == "bearer" and remainder.strip():
            provided = remainder.strip()
        return secrets.compare_digest(provided.encode("utf-8"), self._api_key.encode("utf-8"))

    async def __call__(self, request: Request) -> None:
        if not self.verify(request.headers.get("authorization")):
            raise InvalidAPIKeyError()


__all__ = [
    "APIKeyAuth",
    "INVALID_API_KEY_CODE",
    "INVALID_API_KEY_MESSAGE",
    "InvalidAPIKeyError",
]
