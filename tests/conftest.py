"""Shared fixtures for the Aquachat test suite."""

import sys
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

# Ensure the project root is on sys.path so 'aquachat' package resolves
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from aquachat.models import ExperienceLevel, QueueEntry  # noqa: E402
from aquachat.service import ChatService  # noqa: E402


# ---------------------------------------------------------------------------
# Fake client: drives the dispatcher directly and records what it receives
# ---------------------------------------------------------------------------

class FakeClient:
    """A connection whose notifier sink appends to ``inbox``.

    Events go straight into the dispatcher, bypassing the WebSocket layer,
    so every call runs synchronously to completion.
    """

    def __init__(self, service: ChatService, connection_id: str):
        self.service = service
        self.connection_id = connection_id
        self.inbox: list[dict] = []
        service.notifier.attach(connection_id, self.inbox.append)

    def send(self, msg_type: str, **fields) -> None:
        self.service.dispatcher.dispatch(self.connection_id, {"type": msg_type, **fields})

    def authenticate(self, **claims) -> None:
        self.send("authenticate", **claims)

    def disconnect(self) -> None:
        self.service.dispatcher.disconnect(self.connection_id)
        self.service.notifier.detach(self.connection_id)

    def of_type(self, msg_type: str) -> list[dict]:
        return [m for m in self.inbox if m.get("type") == msg_type]

    def last(self) -> dict:
        return self.inbox[-1]

    def clear(self) -> None:
        self.inbox.clear()


@pytest.fixture
def service():
    """A ChatService with eviction and queue expiry disabled."""
    return ChatService(session_retention=0, queue_idle_timeout=0, cleanup_interval=3600)


@pytest.fixture
def connect(service):
    """Factory: ``connect("a", username="Alice", level="Beginner")``.

    Authenticates the client unless ``authenticate=False`` is passed.
    """

    def _connect(connection_id: str, *, authenticate: bool = True, **claims) -> FakeClient:
        client = FakeClient(service, connection_id)
        if authenticate:
            claims.setdefault("username", connection_id.capitalize())
            client.authenticate(**claims)
            client.clear()
        return client

    return _connect


def make_entry(connection_id: str, level: ExperienceLevel, topic: str | None = None) -> QueueEntry:
    return QueueEntry(
        connection_id=connection_id,
        user_id=f"user-{connection_id}",
        username=connection_id.capitalize(),
        level=level,
        topic=topic,
    )


# ---------------------------------------------------------------------------
# App fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def app(service):
    """A fresh FastAPI app wrapped around the test's ChatService."""
    from aquachat.server import create_app
    return create_app(service)


@pytest.fixture
async def client(app):
    """Async HTTP client for testing REST endpoints."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
