"""
WebSocket Manager - Handles real-time connections and broadcasts.

This module manages WebSocket connections and pushes explorer events
(layout frames, node selection, errors, render counts) to renderers.
"""
from fastapi import WebSocket
from typing import Optional, Set
import json
import asyncio
import logging

logger = logging.getLogger(__name__)


class WebSocketManager:
    """
    Manages WebSocket connections and broadcasts.

    All connected clients receive every event; messages carry the
    explorer_id so a client can ignore diagrams it does not display.
    """

    def __init__(self):
        self._connections: Set[WebSocket] = set()
        self._lock: Optional[asyncio.Lock] = None

    def _get_lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    def reset(self):
        """Forget all connections (the event loop that owned them is gone)."""
        self._connections = set()
        self._lock = None

    async def connect(self, websocket: WebSocket):
        """Accept and register a new WebSocket connection."""
        await websocket.accept()
        async with self._get_lock():
            self._connections.add(websocket)
        logger.info("WebSocket connected. Total connections: %d", len(self._connections))

    async def disconnect(self, websocket: WebSocket):
        """Remove a WebSocket connection."""
        async with self._get_lock():
            self._connections.discard(websocket)
        logger.info("WebSocket disconnected. Total connections: %d", len(self._connections))

    async def broadcast(self, message: dict):
        """
        Broadcast a message to all connected clients.

        Failed sends (disconnected clients) are handled gracefully.
        """
        if not self._connections:
            return

        # Serialize once for all clients
        message_text = json.dumps(message)

        # Track failed connections for cleanup
        failed: Set[WebSocket] = set()

        async with self._get_lock():
            for websocket in self._connections:
                try:
                    await websocket.send_text(message_text)
                except Exception:
                    failed.add(websocket)

            # Remove failed connections
            self._connections -= failed

        if failed:
            logger.info("Dropped %d unreachable WebSocket clients", len(failed))

    async def notify_frame(self, explorer_id: str, frame: dict):
        """Send the latest node positions of a running layout."""
        await self.broadcast({"type": "positions", "explorer_id": explorer_id, **frame})

    async def notify_node_selected(self, explorer_id: str, type_name: str):
        """Tell query generators which type the user focused."""
        await self.broadcast({
            "type": "node_selected",
            "explorer_id": explorer_id,
            "type_name": type_name
        })

    async def notify_error(self, explorer_id: str, message: str):
        await self.broadcast({
            "type": "error",
            "explorer_id": explorer_id,
            "message": message
        })

    async def notify_rendered(self, explorer_id: str, node_count: int, edge_count: int):
        await self.broadcast({
            "type": "rendered",
            "explorer_id": explorer_id,
            "node_count": node_count,
            "edge_count": edge_count
        })

    @property
    def connection_count(self) -> int:
        """Get the number of active connections."""
        return len(self._connections)


# Global instance
ws_manager = WebSocketManager()
