"""
WebSocket realtime router for live reaction updates.

Subscribers listen on a bus channel such as "/topic/42/reactions"; the
reactions router publishes to it after every toggle.
"""

import asyncio
import json
import logging
from collections import defaultdict
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from sqlalchemy import select

from app.db import async_session_maker
from app.models.post import Post
from app.models.topic import Topic
from app.models.user import User
from app.services.guardian import Guardian
from app.services.reaction_manager import ToggleResult

logger = logging.getLogger(__name__)
router = APIRouter(tags=["realtime"])


class ConnectionManager:
    """Manage WebSocket subscriptions per bus channel."""

    def __init__(self):
        # channel -> set of WebSocket connections
        self.active_connections: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, channel: str) -> None:
        """Accept and register a WebSocket connection."""
        await websocket.accept()
        async with self._lock:
            self.active_connections[channel].add(websocket)
        logger.info(f"WebSocket subscribed to {channel}")

    async def disconnect(self, websocket: WebSocket, channel: str) -> None:
        """Remove a WebSocket connection."""
        async with self._lock:
            if channel in self.active_connections:
                self.active_connections[channel].discard(websocket)
                if not self.active_connections[channel]:
                    del self.active_connections[channel]
        logger.info(f"WebSocket unsubscribed from {channel}")

    async def publish(self, channel: str, message: dict[str, Any]) -> int:
        """Send message to every subscriber of channel. Returns deliveries."""
        async with self._lock:
            connections = list(self.active_connections.get(channel, ()))

        delivered = 0
        disconnected = []
        for connection in connections:
            try:
                await connection.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Failed to send to WebSocket on {channel}: {e}")
                disconnected.append(connection)

        # Clean up disconnected
        for conn in disconnected:
            await self.disconnect(conn, channel)
        return delivered

    def get_connection_count(self, channel: str) -> int:
        """Get number of active connections for a channel."""
        return len(self.active_connections.get(channel, ()))


# Global connection manager
manager = ConnectionManager()


async def verify_websocket_access(websocket: WebSocket, topic_id: int) -> Topic | None:
    """Return the topic if the connecting viewer may see it."""
    session_token = websocket.cookies.get("session_token")

    async with async_session_maker() as db:
        user = None
        if session_token:
            result = await db.execute(
                select(User).where(User.session_token == session_token)
            )
            user = result.scalar_one_or_none()
            if user and not (user.is_active and user.is_session_valid()):
                user = None

        result = await db.execute(select(Topic).where(Topic.id == topic_id))
        topic = result.scalar_one_or_none()
        if not Guardian(user).can_see_topic(topic):
            return None
        return topic


@router.websocket("/ws/topics/{topic_id}/reactions")
async def websocket_topic_reactions(websocket: WebSocket, topic_id: int):
    """WebSocket endpoint for reaction changes in one topic."""
    topic = await verify_websocket_access(websocket, topic_id)
    if not topic:
        await websocket.close(code=4003)
        return

    channel = topic.reactions_channel
    await manager.connect(websocket, channel)

    try:
        await websocket.send_json({"type": "connected", "channel": channel})

        while True:
            try:
                data = await websocket.receive_json()

                # Handle ping/pong for keepalive
                if data.get("type") == "ping":
                    await websocket.send_json({"type": "pong"})

            except WebSocketDisconnect:
                break
            except json.JSONDecodeError:
                continue

    finally:
        await manager.disconnect(websocket, channel)


async def publish_reaction_change(post: Post, result: ToggleResult) -> None:
    """Tell subscribers of the post's topic which reaction aggregates changed."""
    channel = post.topic.reactions_channel
    try:
        await manager.publish(channel, {"type": "acted", "post_id": post.id})
        await manager.publish(channel, {
            "type": "reactions",
            "post_id": post.id,
            "reactions": result.changed_reactions,
        })
    except Exception as e:
        logger.error(f"Reaction broadcast error on {channel}: {e}")
