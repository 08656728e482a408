"""WebSocket transport for the realtime chat core.

The main entry point is ``websocket_chat()``, which is mounted as
``/ws/chat`` by server.py. Each connection gets a ``ClientConnection`` that
parses frames, hands events to the ChatService, and drains an outbound
queue in a writer task so delivery never blocks event processing.
"""

import asyncio
import json
import logging
from uuid import uuid4

from fastapi import WebSocket, WebSocketDisconnect

from . import config
from .dispatcher import EventDispatcher
from .service import ChatService
from .ws_constants import MSG_ERROR, ERR_BAD_MESSAGE, ERR_INTERNAL

logger = logging.getLogger(__name__)

_WRITER_DRAIN_TIMEOUT = 5.0

# Close code sent to a client that cannot keep up with its outbound queue.
_SLOW_CONSUMER_CLOSE_CODE = 1008


class ClientConnection:
    """Holds the transport state for a single WebSocket connection."""

    def __init__(
        self,
        websocket: WebSocket,
        service: ChatService,
        connection_id: str | None = None,
        outbox_size: int = config.OUTBOX_MAX_MESSAGES,
    ):
        self.ws = websocket
        self.service = service
        self.connection_id = connection_id or uuid4().hex
        self._outbox: asyncio.Queue = asyncio.Queue(maxsize=outbox_size)
        self._ws_alive = True
        self._writer_task: asyncio.Task | None = None
        self._close_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    def enqueue(self, payload: dict) -> None:
        """Notifier sink: queue a payload for the writer task.

        A full queue means the client is not reading; the connection is
        marked dead and closed rather than buffering without bound.
        """
        if not self._ws_alive:
            return
        try:
            self._outbox.put_nowait(payload)
        except asyncio.QueueFull:
            logger.warning("Outbound queue full for %s, closing slow connection", self.connection_id)
            self._ws_alive = False
            self._close_task = asyncio.ensure_future(self._close_slow())

    async def _close_slow(self) -> None:
        try:
            await self.ws.close(code=_SLOW_CONSUMER_CLOSE_CODE)
        except RuntimeError:
            pass

    async def safe_send(self, data: dict) -> bool:
        """Send JSON to client, return False if disconnected."""
        if not self._ws_alive:
            return False
        try:
            await self.ws.send_json(data)
            return True
        except (WebSocketDisconnect, RuntimeError):
            self._ws_alive = False
            return False

    async def _writer(self) -> None:
        while True:
            payload = await self._outbox.get()
            if payload is None:
                return
            if not await self.safe_send(payload):
                logger.debug("Connection %s gone, dropping outbound queue", self.connection_id)
                return

    def _error(self, message: str, code: str) -> None:
        self.enqueue({"type": MSG_ERROR, "message": message, "code": code})

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Receive and dispatch messages until the client disconnects."""
        await self.service.connect(self.connection_id, self.enqueue)
        self._writer_task = asyncio.ensure_future(self._writer())
        try:
            while True:
                data = await self.ws.receive_text()

                try:
                    msg = json.loads(data)
                except (json.JSONDecodeError, ValueError) as e:
                    logger.warning("Malformed JSON from client: %s", e)
                    self._error("Invalid message format.", ERR_BAD_MESSAGE)
                    continue

                if not isinstance(msg, dict):
                    self._error("Invalid message format.", ERR_BAD_MESSAGE)
                    continue

                msg_type = msg.get("type")
                if not msg_type:
                    self._error("Missing message type.", ERR_BAD_MESSAGE)
                    continue

                if not EventDispatcher.knows(msg_type):
                    self._error(f"Unknown message type: {msg_type}", ERR_BAD_MESSAGE)
                    continue

                try:
                    await self.service.handle(self.connection_id, msg)
                except Exception:
                    logger.exception("Unexpected error handling message type=%s", msg_type)
                    self._error("An internal error occurred.", ERR_INTERNAL)
        except (WebSocketDisconnect, RuntimeError):
            pass

    async def cleanup(self) -> None:
        """Run the disconnect cascade, then stop the writer."""
        try:
            await self.service.disconnect(self.connection_id)
        except Exception:
            logger.exception("disconnect cascade failed for %s", self.connection_id)

        if self._writer_task is not None:
            try:
                self._outbox.put_nowait(None)
            except asyncio.QueueFull:
                # Writer stops at its next payload once the connection is dead.
                self._ws_alive = False
            try:
                await asyncio.wait_for(self._writer_task, timeout=_WRITER_DRAIN_TIMEOUT)
            except asyncio.TimeoutError:
                logger.warning("Writer for %s did not drain in time", self.connection_id)
            except Exception:
                logger.exception("writer task failed for %s", self.connection_id)
            self._writer_task = None
        self._ws_alive = False


# ------------------------------------------------------------------
# FastAPI endpoint mounted by server.py at /ws/chat
# ------------------------------------------------------------------

async def websocket_chat(websocket: WebSocket, *, service: ChatService) -> None:
    """WebSocket endpoint handler for /ws/chat."""
    await websocket.accept()
    connection = ClientConnection(websocket, service)
    try:
        await connection.run()
    finally:
        await connection.cleanup()
