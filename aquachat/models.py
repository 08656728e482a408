"""Data model for the realtime chat core.

Dataclasses here are plain in-memory records. Wire payloads use camelCase
keys and millisecond timestamps because the browser client was written
against the original Socket.IO server.
"""

import secrets
import time
from dataclasses import dataclass, field
from enum import Enum


class ExperienceLevel(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"

    @classmethod
    def parse(cls, value) -> "ExperienceLevel | None":
        """Return the level whose value is exactly *value*, else None."""
        try:
            return cls(value)
        except (ValueError, TypeError):
            return None

    @property
    def queue_key(self) -> str:
        return self.value.lower()


def now_ms() -> int:
    return int(time.time() * 1000)


def make_id(prefix: str) -> str:
    """Timestamp plus random suffix; unique for the process lifetime."""
    return f"{prefix}_{now_ms()}_{secrets.token_hex(5)}"


@dataclass
class Identity:
    connection_id: str
    user_id: str
    username: str
    level: ExperienceLevel = ExperienceLevel.BEGINNER
    tank_type: str | None = None
    tank_size: str | None = None
    favorite_fish: list = field(default_factory=list)
    favorite_plants: list = field(default_factory=list)
    profile_picture: str | None = None
    connected_at: int = field(default_factory=now_ms)


@dataclass
class QueueEntry:
    connection_id: str
    user_id: str
    username: str
    level: ExperienceLevel
    topic: str | None = None
    enqueued_at: int = field(default_factory=now_ms)
    # Monotonic clock reading used only for idle expiry.
    enqueued_mono: float = field(default_factory=time.monotonic)


@dataclass
class Participant:
    connection_id: str
    user_id: str
    username: str
    level: ExperienceLevel

    @classmethod
    def from_entry(cls, entry: QueueEntry) -> "Participant":
        return cls(
            connection_id=entry.connection_id,
            user_id=entry.user_id,
            username=entry.username,
            level=entry.level,
        )

    def public_info(self) -> dict:
        return {"username": self.username, "level": self.level.value}


@dataclass
class AdviceMessage:
    id: str
    session_id: str
    user_id: str
    username: str
    message: str
    photo: str | None
    timestamp: int

    def to_payload(self) -> dict:
        return {
            "id": self.id,
            "sessionId": self.session_id,
            "userId": self.user_id,
            "username": self.username,
            "message": self.message,
            "photo": self.photo,
            "timestamp": self.timestamp,
        }


@dataclass
class Feedback:
    rating: int
    comment: str | None
    timestamp: int = field(default_factory=now_ms)


@dataclass
class AdviceSession:
    session_id: str
    user1: Participant
    user2: Participant
    topic: str | None = None
    created_at: int = field(default_factory=now_ms)
    messages: list[AdviceMessage] = field(default_factory=list)
    ended: bool = False
    ended_at: int | None = None
    ended_by: str | None = None
    ended_mono: float | None = None
    feedback: dict[str, Feedback] = field(default_factory=dict)

    def participant(self, connection_id: str) -> Participant | None:
        if self.user1.connection_id == connection_id:
            return self.user1
        if self.user2.connection_id == connection_id:
            return self.user2
        return None

    def partner_of(self, connection_id: str) -> Participant | None:
        if self.user1.connection_id == connection_id:
            return self.user2
        if self.user2.connection_id == connection_id:
            return self.user1
        return None

    def mark_ended(self, by_connection_id: str) -> None:
        self.ended = True
        self.ended_at = now_ms()
        self.ended_by = by_connection_id
        self.ended_mono = time.monotonic()


@dataclass
class RoomMessage:
    id: str
    room: str
    user_id: str
    username: str
    message: str
    photo: str | None
    timestamp: int
    reactions: dict = field(default_factory=dict)

    def to_payload(self) -> dict:
        return {
            "id": self.id,
            "room": self.room,
            "userId": self.user_id,
            "username": self.username,
            "message": self.message,
            "photo": self.photo,
            "timestamp": self.timestamp,
            "reactions": dict(self.reactions),
        }
