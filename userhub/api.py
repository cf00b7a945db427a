"""FastAPI application exposing the user directory over HTTP and WebSockets."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, WebSocket, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field
from starlette.websockets import WebSocketDisconnect

from .config import Settings, load_settings
from .connections import ConnectionRegistry, WebSocketSink
from .models import User, UserPatch
from .repository import UserRepository
from .security import APIKeyAuth, InvalidAPIKeyError
from .users import INVALID_PAGINATION, USER_NOT_FOUND, UserService

logger = logging.getLogger("userhub.api")

API_PREFIX = "/api/v1"
DOCS_URL = f"{API_PREFIX}/docs"
EVENTS_PATH = "/ws/users"


class CreateUserRequest(BaseModel):
    name: str = Field(..., description="Full name of the user")
    email: str = Field(..., description="Email address of the user")


class UpdateUserRequest(BaseModel):
    name: Optional[str] = Field(default=None, description="Full name of the user")
    email: Optional[str] = Field(default=None, description="Email address of the user")

    def to_patch(self) -> UserPatch:
        return UserPatch(name=self.name, email=self.email)


def success_response(data: Any, message: Optional[str] = None, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    payload: Dict[str, Any] = {"success": True, "data": data}
    if message:
        payload["message"] = message
    return JSONResponse(status_code=status_code, content=payload)


def error_response(error: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


def _lookup_status(error: str) -> int:
    if error == USER_NOT_FOUND:
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_400_BAD_REQUEST


def _write_status(error: str) -> int:
    if error == USER_NOT_FOUND:
        return status.HTTP_404_NOT_FOUND
    if "already exists" in error:
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


def _parse_int(value: str) -> Optional[int]:
    try:
        return int(value.strip())
    except ValueError:
        return None


def _user_payload(user: Optional[User]) -> Optional[Dict[str, Any]]:
    return user.to_dict() if user is not None else None


def register_user_routes(app: FastAPI, service: UserService, auth: APIKeyAuth) -> None:
    """Expose the user CRUD endpoints under ``/api/v1/users``."""

    router = APIRouter(prefix=f"{API_PREFIX}/users", tags=["Users"], dependencies=[Depends(auth)])

    @router.get("", summary="Get all users")
    async def list_users() -> JSONResponse:
        result = await service.get_all_users()
        if not result.ok:
            return error_response(result.error, status.HTTP_500_INTERNAL_SERVER_ERROR)
        return success_response([user.to_dict() for user in result.data], result.message)

    @router.get("/stats", summary="Get user statistics")
    async def user_stats() -> JSONResponse:
        result = await service.get_user_stats()
        if not result.ok:
            return error_response(result.error, status.HTTP_500_INTERNAL_SERVER_ERROR)
        return success_response(result.data.to_dict(), result.message)

    @router.get("/paginated/{offset}/{limit}", summary="Get users with pagination")
    async def paginated_users(offset: str, limit: str) -> JSONResponse:
        offset_value = _parse_int(offset)
        limit_value = _parse_int(limit)
        if offset_value is None or limit_value is None:
            return error_response(INVALID_PAGINATION, status.HTTP_400_BAD_REQUEST)

        result = await service.get_users_paginated(offset_value, limit_value)
        if not result.ok:
            return error_response(result.error, status.HTTP_400_BAD_REQUEST)
        return success_response(result.data.to_dict(), result.message)

    @router.get("/{user_id}", summary="Get user by ID")
    async def read_user(user_id: str) -> JSONResponse:
        result = await service.get_user_by_id(user_id)
        if not result.ok:
            return error_response(result.error, _lookup_status(result.error))
        return success_response(_user_payload(result.data), result.message)

    @router.post("", summary="Create a new user")
    async def create_user(payload: CreateUserRequest) -> JSONResponse:
        result = await service.create_user(payload.name, payload.email)
        if not result.ok:
            return error_response(result.error, _write_status(result.error))
        return success_response(_user_payload(result.data), result.message, status.HTTP_201_CREATED)

    @router.put("/{user_id}", summary="Update user by ID")
    async def update_user(user_id: str, payload: UpdateUserRequest) -> JSONResponse:
        result = await service.update_user(user_id, payload.to_patch())
        if not result.ok:
            return error_response(result.error, _write_status(result.error))
        return success_response(_user_payload(result.data), result.message)

    @router.delete("/{user_id}", summary="Delete user by ID")
    async def delete_user(user_id: str) -> JSONResponse:
        result = await service.delete_user(user_id)
        if not result.ok:
            return error_response(result.error, _lookup_status(result.error))
        return success_response(
            {"message": result.message, "user": _user_payload(result.data)},
            result.message,
        )

    app.include_router(router)


def register_event_routes(app: FastAPI, registry: ConnectionRegistry) -> None:
    """Expose the WebSocket endpoint that streams user events."""

    @app.websocket(EVENTS_PATH)
    async def user_events(websocket: WebSocket) -> None:
        await websocket.accept()
        sink = WebSocketSink(websocket)
        registry.add_connection(sink)
        logger.info("WebSocket connection opened")

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                text = message.get("text")
                if text is None:
                    text = (message.get("bytes") or b"").decode("utf-8", errors="replace")
                logger.info("WebSocket message received: %s", text)
                if not await registry.send_to_connection(sink, f"Received: {text}"):
                    break
        except WebSocketDisconnect:
            pass
        finally:
            registry.remove_connection(sink)
            logger.info("WebSocket connection closed")


def create_app(
    settings: Settings | None = None,
    *,
    repository: UserRepository | None = None,
    registry: ConnectionRegistry | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application for the user directory."""

    if settings is None:
        settings = load_settings()

    if repository is None:
        repository = UserRepository()
        if settings.seed_demo_users:
            repository.seed_demo_users()

    if registry is None:
        registry = ConnectionRegistry()

    service = UserService(repository, registry)
    auth = APIKeyAuth(settings.api_key)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info("User directory ready with %s users", repository.count())
        yield
        await registry.close_all_connections()

    app = FastAPI(
        title="User Directory API",
        description="User management with real-time change notifications",
        version="1.0.0",
        docs_url=DOCS_URL,
        redoc_url=None,
        openapi_url=f"{API_PREFIX}/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.repository = repository
    app.state.registry = registry
    app.state.service = service

    @app.exception_handler(InvalidAPIKeyError)
    async def handle_invalid_api_key(_: object, exc: InvalidAPIKeyError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"code": exc.code, "message": exc.message},
        )

    @app.get("/", response_class=PlainTextResponse, tags=["General"])
    async def index() -> str:
        return f"Hello from the user directory, explore the API documentation at {DOCS_URL}"

    @app.get("/health", response_class=PlainTextResponse, tags=["General"])
    async def healthcheck() -> str:
        return "OK"

    register_user_routes(app, service, auth)
    register_event_routes(app, registry)

    return app


__all__ = [
    "CreateUserRequest",
    "UpdateUserRequest",
    "create_app",
    "error_response",
    "register_event_routes",
    "register_user_routes",
    "success_response",
]
