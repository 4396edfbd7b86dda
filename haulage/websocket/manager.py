import asyncio
import json
import logging
from typing import Any, Dict, Set
from fastapi import WebSocket
from collections import defaultdict

logger = logging.getLogger(__name__)

class WebSocketManager:
    def __init__(self):
        self.active_connections: Dict[str, Set[WebSocket]] = defaultdict(set)
        self.lock = asyncio.Lock()

    async def connect(self, user_id: str, websocket: WebSocket):
        """Accept a user's WebSocket and register it"""
        await websocket.accept()

        async with self.lock:
            self.active_connections[user_id].add(websocket)

        logger.info(f"User {user_id} connected to WebSocket. Total connections: {len(self.active_connections[user_id])}")

    async def disconnect(self, user_id: str, websocket: WebSocket):
        async with self.lock:
            if user_id in self.active_connections:
                self.active_connections[user_id].discard(websocket)
                if not self.active_connections[user_id]:
                    del self.active_connections[user_id]

        logger.info(f"User {user_id} disconnected from WebSocket")

    async def send_personal_notification(self, user_id: str, notification: Dict[str, Any]) -> int:
        """Push a notification to every socket of one user; returns deliveries"""
        async with self.lock:
            connections = list(self.active_connections.get(user_id, ()))

        if not connections:
            logger.debug(f"No active WebSocket connections for user {user_id}")
            return 0

        message = json.dumps({
            "type": "notification",
            "action": "new",
            "data": notification
        })

        results = await asyncio.gather(
            *(connection.send_text(message) for connection in connections),
            return_exceptions=True
        )

        delivered = 0
        async with self.lock:
            for connection, result in zip(connections, results):
                if isinstance(result, Exception):
                    logger.warning(f"Removing broken connection for user {user_id}: {result}")
                    self.active_connections[user_id].discard(connection)
                else:
                    delivered += 1
            if user_id in self.active_connections and not self.active_connections[user_id]:
                del self.active_connections[user_id]

        return delivered

ws_manager = WebSocketManager()
