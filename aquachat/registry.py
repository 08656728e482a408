"""Connection registry: live identities indexed by connection-id and user-id."""

import logging

from .config import MAX_USERNAME_CHARS
from .models import ExperienceLevel, Identity

logger = logging.getLogger(__name__)


def sanitize_username(username) -> str | None:
    if not isinstance(username, str):
        return None
    cleaned = username.strip()[:MAX_USERNAME_CHARS]
    return cleaned or None


def _str_or_none(value) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _list_or_empty(value) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


class ConnectionRegistry:
    """Owns the two co-indexed identity maps.

    Identity is self-asserted: whatever the client claims in ``authenticate``
    is accepted. A user-id points at the most recently authenticated
    connection for that user.
    """

    def __init__(self):
        self._by_connection: dict[str, Identity] = {}
        self._by_user: dict[str, str] = {}

    def authenticate(self, connection_id: str, claimed: dict) -> Identity:
        claimed = claimed or {}
        user_id = _str_or_none(claimed.get("userId")) or connection_id
        username = sanitize_username(claimed.get("username")) or f"User_{connection_id[:6]}"

        level = ExperienceLevel.parse(claimed.get("level"))
        if level is None:
            if claimed.get("level"):
                logger.debug("Unrecognised level %r from %s, using Beginner",
                             claimed.get("level"), connection_id)
            level = ExperienceLevel.BEGINNER

        identity = Identity(
            connection_id=connection_id,
            user_id=user_id,
            username=username,
            level=level,
            tank_type=_str_or_none(claimed.get("tankType")),
            tank_size=_str_or_none(claimed.get("tankSize")),
            favorite_fish=_list_or_empty(claimed.get("favoriteFish")),
            favorite_plants=_list_or_empty(claimed.get("favoritePlants")),
            profile_picture=_str_or_none(claimed.get("profilePicture")),
        )

        previous = self._by_connection.get(connection_id)
        if previous is not None and previous.user_id != user_id:
            self._drop_user_index(previous.user_id, connection_id)

        self._by_connection[connection_id] = identity
        self._by_user[user_id] = connection_id
        return identity

    def lookup_by_connection(self, connection_id: str) -> Identity | None:
        return self._by_connection.get(connection_id)

    def lookup_by_user(self, user_id: str) -> Identity | None:
        connection_id = self._by_user.get(user_id)
        if connection_id is None:
            return None
        return self._by_connection.get(connection_id)

    def remove(self, connection_id: str) -> Identity | None:
        identity = self._by_connection.pop(connection_id, None)
        if identity is not None:
            self._drop_user_index(identity.user_id, connection_id)
        return identity

    def _drop_user_index(self, user_id: str, connection_id: str) -> None:
        # A newer connection may have claimed the same user-id; leave it alone.
        if self._by_user.get(user_id) == connection_id:
            del self._by_user[user_id]

    def clear(self) -> None:
        self._by_connection.clear()
        self._by_user.clear()

    def __len__(self) -> int:
        return len(self._by_connection)

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._by_connection
