from __future__ import annotations

import asyncio
import logging

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class DisplayWebSocketHub:
    """In-process WebSocket fan-out for Display clients.

    Contract:
      - register a client with `connect(websocket)`.
      - broadcast lightweight events with `broadcast(payload)`.
      - `notify(payload)` is the non-blocking variant for synchronous callers
        (snapshot listeners running inside worker loops).

    Payloads should be JSON-serializable dicts.
    """

    def __init__(self) -> None:
        self._conns: set[WebSocket] = set()
        self._lock = asyncio.Lock()
        self._pending: set[asyncio.Task[None]] = set()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._conns.add(websocket)

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._conns.discard(websocket)

    @property
    def connection_count(self) -> int:
        return len(self._conns)

    async def broadcast(self, payload: dict[str, object]) -> None:
        async with self._lock:
            conns = list(self._conns)

        if not conns:
            return

        dead: list[WebSocket] = []
        for ws in conns:
            try:
                await ws.send_json(payload)
            except Exception:
                dead.append(ws)

        if dead:
            logger.debug("dropping %d dead display connection(s)", len(dead))
            async with self._lock:
                for ws in dead:
                    self._conns.discard(ws)

    def notify(self, payload: dict[str, object]) -> None:
        if not self._conns:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop (plain sync caller); nobody to deliver to right now.
            return
        task = loop.create_task(self.broadcast(payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
