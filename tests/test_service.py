"""Tests for aquachat.service -- serialized event handling and housekeeping.

Patterns:
- Concurrent Safety: asyncio.gather many joins and check that every pair was
  matched exactly once.
"""

import asyncio
import time

import pytest

from aquachat.service import ChatService


async def attach(service: ChatService, connection_id: str, **claims) -> list[dict]:
    inbox: list[dict] = []
    await service.connect(connection_id, inbox.append)
    await service.handle(connection_id, {"type": "authenticate", **claims})
    return inbox


class TestHandle:

    @pytest.mark.asyncio
    async def test_handle_routes_through_dispatcher(self, service):
        inbox = await attach(service, "c1", username="Nemo")
        assert inbox == [{"type": "authenticated", "userId": "c1", "username": "Nemo"}]

    @pytest.mark.asyncio
    async def test_concurrent_joins_never_double_match(self, service):
        inboxes = {}
        for i in range(20):
            inboxes[f"c{i}"] = await attach(service, f"c{i}")

        await asyncio.gather(*[
            service.handle(cid, {"type": "join-advice-queue", "level": "Intermediate"})
            for cid in inboxes
        ])

        matched = {cid: [m for m in inbox if m["type"] == "matched"] for cid, inbox in inboxes.items()}
        assert all(len(m) == 1 for m in matched.values())
        assert len(service.sessions) == 10
        assert len(service.queue) == 0

    @pytest.mark.asyncio
    async def test_disconnect_detaches_sink(self, service):
        await attach(service, "c1")
        await service.disconnect("c1")
        assert not service.notifier.is_attached("c1")
        assert service.registry.lookup_by_connection("c1") is None

    @pytest.mark.asyncio
    async def test_stats(self, service):
        await attach(service, "a", level="Advanced")
        await service.handle("a", {"type": "join-advice-queue", "level": "Advanced"})
        assert service.stats() == {
            "activeUsers": 1,
            "activeSessions": 0,
            "queueSizes": {"beginner": 0, "intermediate": 0, "advanced": 1},
        }


class TestCleanup:

    @pytest.mark.asyncio
    async def test_run_cleanup_evicts_ended_sessions(self):
        service = ChatService(session_retention=60, queue_idle_timeout=0, cleanup_interval=3600)
        await attach(service, "mid")
        await attach(service, "new")
        await service.handle("mid", {"type": "join-advice-queue", "level": "Intermediate"})
        await service.handle("new", {"type": "join-advice-queue", "level": "Beginner"})
        (session_id,) = list(service.sessions._sessions)
        await service.handle("new", {"type": "end-advice-session", "sessionId": session_id})

        assert service.run_cleanup(now=time.monotonic()) == (0, 0)
        assert service.run_cleanup(now=time.monotonic() + 61) == (1, 0)
        assert len(service.sessions) == 0

    @pytest.mark.asyncio
    async def test_retention_zero_keeps_sessions(self, service):
        await attach(service, "mid")
        await attach(service, "new")
        await service.handle("mid", {"type": "join-advice-queue", "level": "Intermediate"})
        await service.handle("new", {"type": "join-advice-queue", "level": "Beginner"})
        await service.disconnect("new")
        assert service.run_cleanup(now=time.monotonic() + 10**6) == (0, 0)
        assert len(service.sessions) == 1

    @pytest.mark.asyncio
    async def test_run_cleanup_expires_idle_queue_entries(self):
        service = ChatService(session_retention=0, queue_idle_timeout=30, cleanup_interval=3600)
        inbox = await attach(service, "a")
        await service.handle("a", {"type": "join-advice-queue", "level": "Beginner"})
        assert service.run_cleanup(now=time.monotonic() + 31) == (0, 1)
        assert inbox[-1] == {"type": "queue-expired", "level": "Beginner"}

    @pytest.mark.asyncio
    async def test_start_and_stop(self, service):
        service.start()
        assert service._cleanup_task is not None
        await attach(service, "a")
        await service.stop()
        assert service._cleanup_task is None
        assert len(service.registry) == 0
