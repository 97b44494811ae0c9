from __future__ import annotations

import asyncio
import logging

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class NotificationHub:
    """Registry of open notification sockets, keyed by recipient.

    The websocket route registers sockets; sync request handlers reach
    ``publish`` through ``anyio.from_thread`` once a notification is stored.
    """

    def __init__(self) -> None:
        self._sockets: dict[str, list[WebSocket]] = {}
        self._guard = asyncio.Lock()

    def _forget(self, user_id: str, closed: list[WebSocket]) -> None:
        remaining = [item for item in self._sockets.get(user_id, []) if item not in closed]
        if remaining:
            self._sockets[user_id] = remaining
        else:
            self._sockets.pop(user_id, None)

    async def connect(self, user_id: str, websocket: WebSocket) -> int:
        await websocket.accept()
        async with self._guard:
            sockets = self._sockets.setdefault(user_id, [])
            if websocket not in sockets:
                sockets.append(websocket)
            open_count = len(sockets)
        logger.debug("Coverage feed opened for user %s (%d socket(s))", user_id, open_count)
        return open_count

    async def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        async with self._guard:
            self._forget(user_id, [websocket])

    async def publish(self, user_id: str, payload: dict) -> int:
        async with self._guard:
            targets = list(self._sockets.get(user_id, []))

        delivered = 0
        broken: list[WebSocket] = []
        for websocket in targets:
            try:
                await websocket.send_json(payload)
            except Exception:
                broken.append(websocket)
                continue
            delivered += 1

        if broken:
            async with self._guard:
                self._forget(user_id, broken)
            logger.debug("Pruned %d closed socket(s) for user %s", len(broken), user_id)
        return delivered


notification_hub = NotificationHub()
