import asyncio
import logging
import time

from . import config
from .advice_queue import AdviceQueue
from .dispatcher import EventDispatcher
from .matcher import Matcher
from .notifier import Notifier, Sink
from .registry import ConnectionRegistry
from .rooms import RoomMembershipTracker
from .session_store import SessionStore

logger = logging.getLogger(__name__)


class ChatService:
    """Owns all realtime chat state for one process.

    Every mutation (inbound event, disconnect, cleanup pass) runs under one
    asyncio lock, so each operation is atomic with respect to the others.
    Outbound payloads are only enqueued while the lock is held; delivery
    happens in each connection's writer task.
    """

    def __init__(
        self,
        *,
        session_retention: float = config.SESSION_RETENTION_SECONDS,
        queue_idle_timeout: float = config.QUEUE_IDLE_TIMEOUT_SECONDS,
        cleanup_interval: float = config.CLEANUP_INTERVAL,
    ):
        self.registry = ConnectionRegistry()
        self.rooms = RoomMembershipTracker()
        self.queue = AdviceQueue()
        self.sessions = SessionStore()
        self.matcher = Matcher(self.queue, self.sessions)
        self.notifier = Notifier()
        self.dispatcher = EventDispatcher(
            registry=self.registry,
            rooms=self.rooms,
            queue=self.queue,
            sessions=self.sessions,
            matcher=self.matcher,
            notifier=self.notifier,
        )
        self.session_retention = session_retention
        self.queue_idle_timeout = queue_idle_timeout
        self.cleanup_interval = cleanup_interval
        self._lock = asyncio.Lock()
        self._cleanup_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect(self, connection_id: str, sink: Sink) -> None:
        async with self._lock:
            self.notifier.attach(connection_id, sink)
        logger.debug("Connection opened: %s", connection_id)

    async def handle(self, connection_id: str, msg: dict) -> None:
        async with self._lock:
            self.dispatcher.dispatch(connection_id, msg)

    async def disconnect(self, connection_id: str) -> None:
        async with self._lock:
            try:
                self.dispatcher.disconnect(connection_id)
            finally:
                self.notifier.detach(connection_id)

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def run_cleanup(self, now: float | None = None) -> tuple[int, int]:
        """Evict ended sessions past retention and expire idle queue entries.

        Caller must hold the lock. Returns (sessions_evicted, entries_expired).
        """
        now = time.monotonic() if now is None else now
        evicted = 0
        expired = 0
        if self.session_retention > 0:
            evicted = self.sessions.evict_ended_before(now - self.session_retention)
        if self.queue_idle_timeout > 0:
            expired = self.dispatcher.expire_queue(now - self.queue_idle_timeout)
        return evicted, expired

    async def _cleanup_loop(self):
        while True:
            await asyncio.sleep(self.cleanup_interval)
            try:
                async with self._lock:
                    evicted, expired = self.run_cleanup()
                if evicted or expired:
                    logger.info("Cleanup: evicted %d ended sessions, expired %d queue entries",
                                evicted, expired)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Cleanup loop iteration failed")

    def start(self):
        if self._cleanup_task is None:
            self._cleanup_task = asyncio.ensure_future(self._cleanup_loop())

    async def stop(self):
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
        async with self._lock:
            self.queue.clear()
            self.rooms.clear()
            self.sessions.clear()
            self.registry.clear()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def stats(self) -> dict:
        return {
            "activeUsers": len(self.registry),
            "activeSessions": len(self.sessions),
            "queueSizes": self.queue.sizes(),
        }
