"""Tracking and fan-out for WebSocket clients subscribed to user events."""
from __future__ import annotations

import json
import logging
import threading
from typing import List, Protocol, Set

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from .models import UserEvent

logger = logging.getLogger("userhub.connections")


class EventSink(Protocol):
    """Outbound channel the registry can push text frames into."""

    async def send(self, message: str) -> None:
        ...

    async def close(self) -> None:
        ...


class WebSocketSink:
    """Expose a Starlette websocket through the :class:`EventSink` capability."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket

    async def send(self, message: str) -> None:
        if self._websocket.application_state == WebSocketState.DISCONNECTED:
            raise ConnectionError("WebSocket is already closed")
        await self._websocket.send_text(message)

    async def close(self) -> None:
        if self._websocket.application_state != WebSocketState.DISCONNECTED:
            await self._websocket.close()


class ConnectionRegistry:
    """Set of open event sinks with best-effort broadcast.

    A sink whose send fails is treated as dead and evicted on the spot. Sends
    always iterate over a copy of the set so connections opening or closing
    mid-broadcast never disturb the loop.
    """

    def __init__(self) -> None:
        self._connections: Set[EventSink] = set()
        self._lock = threading.Lock()

    def add_connection(self, sink: EventSink) -> None:
        with self._lock:
            self._connections.add(sink)
            total = len(self._connections)
        logger.info("WebSocket connection added. Total connections: %s", total)

    def remove_connection(self, sink: EventSink) -> None:
        with self._lock:
            self._connections.discard(sink)
            total = len(self._connections)
        logger.info("WebSocket connection removed. Total connections: %s", total)

    def get_connection_count(self) -> int:
        with self._lock:
            return len(self._connections)

    async def broadcast(self, event: UserEvent) -> None:
        """Serialise ``event`` once and push it to every open connection."""

        message = json.dumps(event.to_dict())
        targets = self._snapshot()
        if not targets:
            logger.info("No WebSocket connections to broadcast to")
            return

        delivered, failed = await self._fan_out(targets, message)
        logger.info(
            "Broadcasted %s event to %s connections (%s failures)",
            event.type.value,
            delivered,
            failed,
        )

    async def broadcast_message(self, message: str) -> None:
        await self._fan_out(self._snapshot(), message)

    async def send_to_connection(self, sink: EventSink, message: str) -> bool:
        try:
            await sink.send(message)
        except Exception:
            logger.exception("Failed to send message to specific connection")
            self._evict(sink)
            return False
        return True

    async def close_all_connections(self) -> None:
        for sink in self._snapshot():
            try:
                await sink.close()
            except Exception:
                logger.exception("Error closing WebSocket connection")
        with self._lock:
            self._connections.clear()
        logger.info("All WebSocket connections closed")

    async def _fan_out(self, targets: List[EventSink], message: str) -> tuple[int, int]:
        delivered = 0
        failed = 0
        for sink in targets:
            try:
                await sink.send(message)
            except Exception:
                logger.exception("Failed to send message to WebSocket connection")
                self._evict(sink)
                failed += 1
            else:
                delivered += 1
        return delivered, failed

    def _snapshot(self) -> List[EventSink]:
        with self._lock:
            return list(self._connections)

    def _evict(self, sink: EventSink) -> None:
        with self._lock:
            self._connections.discard(sink)


__all__ = ["ConnectionRegistry", "EventSink", "WebSocketSink"]
