"""
Websocket broadcast hub for the live overlay.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import WebSocket

from models.drain_event import DrainEvent


class EventHub:
    """
    Registry of connected overlay clients.

    ``publish`` may be called from any thread. Payloads go onto a queue on
    the server's event loop and a single sender task delivers them one at a
    time, so every client sees events in publish order. Clients whose send
    fails are dropped.
    """

    def __init__(self):
        self._clients: Dict[str, WebSocket] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._sender: Optional[asyncio.Task] = None

    @property
    def client_count(self) -> int:
        return len(self._clients)

    @property
    def running(self) -> bool:
        return self._sender is not None and not self._sender.done()

    async def start(self) -> None:
        """Start the sender task on the running loop."""
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._sender = asyncio.create_task(self._send_loop())
        logging.info("Overlay event hub started")

    async def stop(self) -> None:
        sender, self._sender = self._sender, None
        self._loop = None
        self._queue = None
        if sender is None:
            return
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
        logging.info("Overlay event hub stopped")

    async def _send_loop(self) -> None:
        queue = self._queue
        while True:
            payload = await queue.get()
            try:
                await self.broadcast(payload)
            finally:
                queue.task_done()

    async def add(self, socket: WebSocket) -> str:
        # Greet before registering so a broadcast never reaches the client first
        await socket.send_json({"type": "hello"})
        client_id = uuid.uuid4().hex
        self._clients[client_id] = socket
        logging.info(f"Overlay client connected: {client_id} (clients={len(self._clients)})")
        return client_id

    async def remove(self, client_id: str) -> None:
        socket = self._clients.pop(client_id, None)
        if socket is None:
            return
        try:
            await socket.close()
        except Exception as e:
            logging.debug(f"Error closing overlay client {client_id}: {e}")
        logging.info(f"Overlay client disconnected: {client_id}")

    async def broadcast(self, payload: Dict[str, Any]) -> None:
        for client_id, socket in list(self._clients.items()):
            try:
                await socket.send_json(payload)
            except Exception as e:
                logging.debug(f"Dropping overlay client {client_id}: {e}")
                await self.remove(client_id)

    def publish(self, event: DrainEvent) -> None:
        loop, queue = self._loop, self._queue
        if loop is None or queue is None or not self._clients:
            return
        try:
            loop.call_soon_threadsafe(queue.put_nowait, event.to_dict())
        except RuntimeError:
            # Loop already closed during shutdown
            logging.debug(f"Overlay hub stopped, dropping {event.lane.value} event")
