"""Advice session store: 1-on-1 sessions, their messages, feedback and end state."""

import logging

from .errors import AlreadyEnded, InvalidArgument, NotFound, Unauthorized
from .models import (
    AdviceMessage,
    AdviceSession,
    Feedback,
    Identity,
    Participant,
    make_id,
    now_ms,
)

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class SessionStore:
    """Holds every advice session created during the process lifetime.

    Sessions only move Active -> Ended. Ended sessions stay until
    ``evict_ended_before`` removes them.
    """

    def __init__(self):
        self._sessions: dict[str, AdviceSession] = {}

    def create(self, side_a: Participant, side_b: Participant, topic: str | None) -> AdviceSession:
        session_id = make_id("advice")
        while session_id in self._sessions:
            session_id = make_id("advice")
        session = AdviceSession(session_id=session_id, user1=side_a, user2=side_b, topic=topic)
        self._sessions[session_id] = session
        return session

    def get(self, session_id) -> AdviceSession | None:
        if not isinstance(session_id, str):
            return None
        return self._sessions.get(session_id)

    def _require_participant(self, session_id, connection_id: str) -> AdviceSession:
        session = self.get(session_id)
        if session is None:
            raise NotFound("Session not found")
        if session.participant(connection_id) is None:
            raise Unauthorized("Not authorized for this session")
        return session

    def post_message(
        self,
        session_id,
        sender_connection_id: str,
        sender: Identity,
        text: str,
        photo: str | None = None,
    ) -> tuple[AdviceMessage, Participant]:
        """Append a message and return it with the partner it must be relayed to."""
        session = self._require_participant(session_id, sender_connection_id)
        if session.ended:
            raise AlreadyEnded("Session has ended")

        message = AdviceMessage(
            id=make_id("advice_msg"),
            session_id=session.session_id,
            user_id=sender.user_id,
            username=sender.username,
            message=text,
            photo=photo,
            timestamp=now_ms(),
        )
        session.messages.append(message)
        return message, session.partner_of(sender_connection_id)

    def end(self, session_id, requester_connection_id: str) -> AdviceSession:
        session = self._require_participant(session_id, requester_connection_id)
        if session.ended:
            raise AlreadyEnded("Session has already ended")
        session.mark_ended(requester_connection_id)
        return session

    def submit_feedback(
        self,
        session_id,
        connection_id: str,
        user_id: str,
        rating,
        comment: str | None = None,
    ) -> Feedback:
        """Record feedback keyed by user-id; a second submission overwrites the first.

        Feedback is accepted whether or not the session has ended.
        """
        session = self._require_participant(session_id, connection_id)
        if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
            raise InvalidArgument(f"Rating must be an integer from {MIN_RATING} to {MAX_RATING}")
        if comment is not None and not isinstance(comment, str):
            raise InvalidArgument("Comment must be a string")
        feedback = Feedback(rating=rating, comment=comment or None)
        session.feedback[user_id] = feedback
        return feedback

    def on_participant_disconnect(self, connection_id: str) -> list[tuple[AdviceSession, Participant]]:
        """End every active session *connection_id* takes part in.

        Returns (session, partner) pairs so the caller can notify each partner once.
        """
        ended: list[tuple[AdviceSession, Participant]] = []
        for session in self._sessions.values():
            if session.ended:
                continue
            partner = session.partner_of(connection_id)
            if partner is None:
                continue
            session.mark_ended(connection_id)
            ended.append((session, partner))
        return ended

    def evict_ended_before(self, cutoff_mono: float) -> int:
        """Forget ended sessions whose end time is before *cutoff_mono*."""
        stale = [
            sid for sid, s in self._sessions.items()
            if s.ended and s.ended_mono is not None and s.ended_mono < cutoff_mono
        ]
        for sid in stale:
            del self._sessions[sid]
        return len(stale)

    def active_count(self) -> int:
        return sum(1 for s in self._sessions.values() if not s.ended)

    def clear(self) -> None:
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id) -> bool:
        return isinstance(session_id, str) and session_id in self._sessions
