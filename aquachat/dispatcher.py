"""Event dispatcher: the single entry point from inbound events into the chat core.

Each event type is handled by a ``handle_<event>`` method that validates the
caller and the payload before touching any state, then emits the outbound
events for that operation through the notifier. Handlers are synchronous and
never await, so one handler always runs to completion before the next.
"""

import logging

from .advice_queue import AdviceQueue
from .config import MAX_MESSAGE_CHARS
from .errors import ChatError, InvalidArgument, Unauthenticated, Unauthorized
from .matcher import Matcher
from .models import AdviceSession, ExperienceLevel, Identity, QueueEntry, RoomMessage, make_id, now_ms
from .notifier import Notifier
from .registry import ConnectionRegistry
from .rooms import RoomMembershipTracker, is_valid_room
from .session_store import SessionStore
from .ws_constants import (
    MSG_AUTHENTICATE,
    MSG_JOIN_ROOM,
    MSG_LEAVE_ROOM,
    MSG_ROOM_MESSAGE,
    MSG_REACT_TO_MESSAGE,
    MSG_JOIN_ADVICE_QUEUE,
    MSG_LEAVE_ADVICE_QUEUE,
    MSG_ADVICE_MESSAGE,
    MSG_END_ADVICE_SESSION,
    MSG_SUBMIT_FEEDBACK,
    MSG_BLOCK_USER,
    MSG_REPORT_USER,
    MSG_AUTHENTICATED,
    MSG_ROOM_JOINED,
    MSG_ROOM_LEFT,
    MSG_USER_JOINED_ROOM,
    MSG_USER_LEFT_ROOM,
    MSG_MESSAGE_REACTED,
    MSG_QUEUED,
    MSG_QUEUE_LEFT,
    MSG_QUEUE_EXPIRED,
    MSG_MATCHED,
    MSG_ADVICE_MESSAGE_SENT,
    MSG_SESSION_ENDED,
    MSG_REQUEST_FEEDBACK,
    MSG_FEEDBACK_SUBMITTED,
    MSG_PARTNER_DISCONNECTED,
    MSG_USER_BLOCKED,
    MSG_USER_REPORTED,
)

logger = logging.getLogger(__name__)


def validate_message_text(text) -> str:
    """Trim and bound a chat message. Raises InvalidArgument."""
    if not isinstance(text, str):
        raise InvalidArgument("Message must be a string")
    trimmed = text.strip()
    if not trimmed:
        raise InvalidArgument("Message cannot be empty")
    if len(trimmed) > MAX_MESSAGE_CHARS:
        raise InvalidArgument(f"Message cannot exceed {MAX_MESSAGE_CHARS} characters")
    return trimmed


def _optional_str(value, field_name: str) -> str | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise InvalidArgument(f"{field_name} must be a string")
    return value


def _required_str(value, field_name: str) -> str:
    if not isinstance(value, str) or not value:
        raise InvalidArgument(f"{field_name} is required")
    return value


class EventDispatcher:
    _HANDLERS = {
        MSG_AUTHENTICATE: "handle_authenticate",
        MSG_JOIN_ROOM: "handle_join_room",
        MSG_LEAVE_ROOM: "handle_leave_room",
        MSG_ROOM_MESSAGE: "handle_room_message",
        MSG_REACT_TO_MESSAGE: "handle_react_to_message",
        MSG_JOIN_ADVICE_QUEUE: "handle_join_advice_queue",
        MSG_LEAVE_ADVICE_QUEUE: "handle_leave_advice_queue",
        MSG_ADVICE_MESSAGE: "handle_advice_message",
        MSG_END_ADVICE_SESSION: "handle_end_advice_session",
        MSG_SUBMIT_FEEDBACK: "handle_submit_feedback",
        MSG_BLOCK_USER: "handle_block_user",
        MSG_REPORT_USER: "handle_report_user",
    }

    def __init__(
        self,
        *,
        registry: ConnectionRegistry,
        rooms: RoomMembershipTracker,
        queue: AdviceQueue,
        sessions: SessionStore,
        matcher: Matcher,
        notifier: Notifier,
    ):
        self.registry = registry
        self.rooms = rooms
        self.queue = queue
        self.sessions = sessions
        self.matcher = matcher
        self.notifier = notifier

    @classmethod
    def knows(cls, msg_type) -> bool:
        return msg_type in cls._HANDLERS

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def dispatch(self, connection_id: str, msg: dict) -> None:
        """Run the handler for ``msg["type"]``.

        A ChatError becomes one error event for *connection_id*; anything
        else propagates to the transport layer.
        """
        handler_name = self._HANDLERS.get(msg.get("type"))
        if handler_name is None:
            raise KeyError(msg.get("type"))
        try:
            getattr(self, handler_name)(connection_id, msg)
        except ChatError as e:
            logger.debug("Rejected %s from %s: %s", msg.get("type"), connection_id, e.message)
            self.notifier.send(connection_id, e.to_payload())

    def disconnect(self, connection_id: str) -> None:
        """Tear down everything a dropped connection owns.

        Order: advice queue, room memberships (peers notified), active
        sessions (partners notified), then the registry entry.
        """
        identity = self.registry.lookup_by_connection(connection_id)
        username = identity.username if identity else "Anonymous"

        self.queue.dequeue_all(connection_id)

        for room in self.rooms.remove_member_from_all(connection_id):
            self.notifier.send_many(
                self.rooms.get_room_members(room),
                {"type": MSG_USER_LEFT_ROOM, "username": username, "room": room},
            )

        for session, partner in self.sessions.on_participant_disconnect(connection_id):
            logger.info("Session %s ended: %s disconnected", session.session_id, username)
            self.notifier.send(
                partner.connection_id,
                {"type": MSG_PARTNER_DISCONNECTED, "sessionId": session.session_id},
            )

        self.registry.remove(connection_id)
        logger.info("User disconnected: %s", username if identity else connection_id)

    def expire_queue(self, cutoff_mono: float) -> int:
        expired = self.queue.expire_older_than(cutoff_mono)
        for entry in expired:
            logger.info("Queue entry for %s expired", entry.username)
            self.notifier.send(entry.connection_id, {"type": MSG_QUEUE_EXPIRED, "level": entry.level.value})
        return len(expired)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_identity(self, connection_id: str) -> Identity:
        identity = self.registry.lookup_by_connection(connection_id)
        if identity is None:
            raise Unauthenticated("Not authenticated")
        return identity

    def _require_member(self, room, connection_id: str, message: str) -> str:
        if not is_valid_room(room):
            raise InvalidArgument("Invalid room name")
        if not self.rooms.is_member(room, connection_id):
            raise Unauthorized(message)
        return room

    def _notify_matched(self, session: AdviceSession) -> None:
        for me, partner in ((session.user1, session.user2), (session.user2, session.user1)):
            self.notifier.send(me.connection_id, {
                "type": MSG_MATCHED,
                "sessionId": session.session_id,
                "partner": partner.public_info(),
                "topic": session.topic,
            })

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def handle_authenticate(self, connection_id: str, msg: dict) -> None:
        claimed = {k: v for k, v in msg.items() if k != "type"}
        identity = self.registry.authenticate(connection_id, claimed)
        self.notifier.send(connection_id, {
            "type": MSG_AUTHENTICATED,
            "userId": identity.user_id,
            "username": identity.username,
        })
        logger.info("User authenticated: %s (%s)", identity.username, identity.level.value)

    # ------------------------------------------------------------------
    # Group rooms
    # ------------------------------------------------------------------

    def handle_join_room(self, connection_id: str, msg: dict) -> None:
        identity = self._require_identity(connection_id)
        room = msg.get("room")
        if not is_valid_room(room):
            raise InvalidArgument("Invalid room name")

        peers = self.rooms.get_room_members(room) - {connection_id}
        self.rooms.add_member(room, connection_id)
        self.notifier.send(connection_id, {"type": MSG_ROOM_JOINED, "room": room})
        self.notifier.send_many(peers, {
            "type": MSG_USER_JOINED_ROOM,
            "username": identity.username,
            "room": room,
        })
        logger.info("User %s joined room: %s", identity.username, room)

    def handle_leave_room(self, connection_id: str, msg: dict) -> None:
        room = msg.get("room")
        if is_valid_room(room):
            self.rooms.remove_member(room, connection_id)
        self.notifier.send(connection_id, {"type": MSG_ROOM_LEFT, "room": room})

    def handle_room_message(self, connection_id: str, msg: dict) -> None:
        identity = self._require_identity(connection_id)
        room = self._require_member(msg.get("room"), connection_id, "Not a member of this room")
        text = validate_message_text(msg.get("message"))
        photo = _optional_str(msg.get("photo"), "Photo")

        message = RoomMessage(
            id=make_id("msg"),
            room=room,
            user_id=identity.user_id,
            username=identity.username,
            message=text,
            photo=photo,
            timestamp=now_ms(),
        )
        payload = {"type": MSG_ROOM_MESSAGE, **message.to_payload()}
        self.notifier.send_many(self.rooms.get_room_members(room), payload)
        logger.debug("Message sent to room %s by %s", room, identity.username)

    def handle_react_to_message(self, connection_id: str, msg: dict) -> None:
        identity = self._require_identity(connection_id)
        room = self._require_member(msg.get("room"), connection_id, "Unauthorized")
        message_id = _required_str(msg.get("messageId"), "messageId")
        emoji = _required_str(msg.get("emoji"), "emoji")

        self.notifier.send_many(self.rooms.get_room_members(room), {
            "type": MSG_MESSAGE_REACTED,
            "messageId": message_id,
            "room": room,
            "userId": identity.user_id,
            "username": identity.username,
            "emoji": emoji,
            "timestamp": now_ms(),
        })

    # ------------------------------------------------------------------
    # Advice chat
    # ------------------------------------------------------------------

    def handle_join_advice_queue(self, connection_id: str, msg: dict) -> None:
        identity = self._require_identity(connection_id)
        level = ExperienceLevel.parse(msg.get("level"))
        if level is None:
            raise InvalidArgument("Invalid experience level")
        topic = _optional_str(msg.get("topic"), "Topic")
        if topic is not None:
            topic = topic.strip() or None

        entry = QueueEntry(
            connection_id=connection_id,
            user_id=identity.user_id,
            username=identity.username,
            level=level,
            topic=topic,
        )
        position = self.queue.enqueue(entry)
        self.notifier.send(connection_id, {
            "type": MSG_QUEUED,
            "level": level.value,
            "topic": topic,
            "position": position,
        })
        logger.info("User %s joined advice queue as %s", identity.username, level.value)

        session = self.matcher.attempt_match(connection_id, level, topic)
        if session is not None:
            self._notify_matched(session)

    def handle_leave_advice_queue(self, connection_id: str, msg: dict) -> None:
        self.queue.dequeue_all(connection_id)
        self.notifier.send(connection_id, {"type": MSG_QUEUE_LEFT})

    def handle_advice_message(self, connection_id: str, msg: dict) -> None:
        identity = self._require_identity(connection_id)
        text = validate_message_text(msg.get("message"))
        photo = _optional_str(msg.get("photo"), "Photo")

        message, partner = self.sessions.post_message(
            msg.get("sessionId"), connection_id, identity, text, photo,
        )
        self.notifier.send(partner.connection_id, {"type": MSG_ADVICE_MESSAGE, **message.to_payload()})
        self.notifier.send(connection_id, {"type": MSG_ADVICE_MESSAGE_SENT, "messageId": message.id})
        logger.debug("Advice message sent in session %s", message.session_id)

    def handle_end_advice_session(self, connection_id: str, msg: dict) -> None:
        self._require_identity(connection_id)
        session = self.sessions.end(msg.get("sessionId"), connection_id)
        partner = session.partner_of(connection_id)
        both = (partner.connection_id, connection_id)

        self.notifier.send_many(both, {"type": MSG_SESSION_ENDED, "sessionId": session.session_id})
        self.notifier.send_many(both, {"type": MSG_REQUEST_FEEDBACK, "sessionId": session.session_id})
        logger.info("Advice session %s ended", session.session_id)

    def handle_submit_feedback(self, connection_id: str, msg: dict) -> None:
        identity = self._require_identity(connection_id)
        session_id = msg.get("sessionId")
        self.sessions.submit_feedback(
            session_id,
            connection_id,
            identity.user_id,
            msg.get("rating"),
            msg.get("comment"),
        )
        self.notifier.send(connection_id, {"type": MSG_FEEDBACK_SUBMITTED, "sessionId": session_id})
        logger.info("Feedback submitted for session %s by %s", session_id, identity.username)

    # ------------------------------------------------------------------
    # Moderation
    # ------------------------------------------------------------------

    def handle_block_user(self, connection_id: str, msg: dict) -> None:
        identity = self._require_identity(connection_id)
        user_id = _required_str(msg.get("userId"), "userId")
        self.notifier.send(connection_id, {"type": MSG_USER_BLOCKED, "userId": user_id})
        logger.info("User %s blocked user %s", identity.username, user_id)

    def handle_report_user(self, connection_id: str, msg: dict) -> None:
        identity = self._require_identity(connection_id)
        user_id = _required_str(msg.get("userId"), "userId")
        reason = _optional_str(msg.get("reason"), "Reason")
        details = _optional_str(msg.get("details"), "Details")
        self.notifier.send(connection_id, {"type": MSG_USER_REPORTED, "userId": user_id})
        logger.warning(
            "User %s reported user %s (reason=%s, details=%s)",
            identity.user_id, user_id, reason, details,
        )
