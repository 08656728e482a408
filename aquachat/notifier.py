"""Outbound routing from connection-ids to per-connection delivery sinks."""

import logging
from typing import Callable, Iterable

logger = logging.getLogger(__name__)

Sink = Callable[[dict], None]


class Notifier:
    """Fire-and-forget delivery.

    A sink must not block: the WebSocket layer registers a callable that puts
    the payload on the connection's outbound queue. Payloads for unknown
    connections are dropped.
    """

    def __init__(self):
        self._sinks: dict[str, Sink] = {}

    def attach(self, connection_id: str, sink: Sink) -> None:
        self._sinks[connection_id] = sink

    def detach(self, connection_id: str) -> None:
        self._sinks.pop(connection_id, None)

    def send(self, connection_id: str, payload: dict) -> bool:
        sink = self._sinks.get(connection_id)
        if sink is None:
            logger.debug("Dropping %s for gone connection %s", payload.get("type"), connection_id)
            return False
        sink(payload)
        return True

    def send_many(self, connection_ids: Iterable[str], payload: dict) -> None:
        for connection_id in connection_ids:
            self.send(connection_id, payload)

    def is_attached(self, connection_id: str) -> bool:
        return connection_id in self._sinks

    def __len__(self) -> int:
        return len(self._sinks)
