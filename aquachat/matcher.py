"""Advice-chat matcher: pairs a newly queued user with a waiting counterpart."""

import logging

from .advice_queue import AdviceQueue
from .models import AdviceSession, ExperienceLevel, Participant, QueueEntry
from .session_store import SessionStore

logger = logging.getLogger(__name__)

# Pools searched, in order, for each requester level. Only the first
# non-empty pool is considered; pools are never merged.
SEARCH_ORDER: dict[ExperienceLevel, tuple[ExperienceLevel, ...]] = {
    ExperienceLevel.BEGINNER: (ExperienceLevel.INTERMEDIATE, ExperienceLevel.ADVANCED),
    ExperienceLevel.INTERMEDIATE: (ExperienceLevel.INTERMEDIATE, ExperienceLevel.ADVANCED),
    ExperienceLevel.ADVANCED: (
        ExperienceLevel.BEGINNER,
        ExperienceLevel.INTERMEDIATE,
        ExperienceLevel.ADVANCED,
    ),
}


class Matcher:
    def __init__(self, queue: AdviceQueue, sessions: SessionStore):
        self.queue = queue
        self.sessions = sessions

    def select_pool(self, level: ExperienceLevel) -> list[QueueEntry]:
        for pool_level in SEARCH_ORDER[level]:
            pool = self.queue.entries(pool_level)
            if pool:
                return pool
        return []

    def find_candidate(self, connection_id: str, level: ExperienceLevel, topic: str | None) -> QueueEntry | None:
        """Pick the candidate for a requester without mutating any queue.

        Within the chosen pool the first same-topic entry wins over age;
        otherwise the head (oldest) entry is taken. The result may be the
        requester itself, which attempt_match treats as no match.
        """
        pool = self.select_pool(level)
        if not pool:
            return None
        if topic:
            for entry in pool:
                if entry.topic == topic:
                    return entry
        return pool[0]

    def attempt_match(self, connection_id: str, level: ExperienceLevel, topic: str | None) -> AdviceSession | None:
        requester = next(
            (e for e in self.queue.entries(level) if e.connection_id == connection_id),
            None,
        )
        if requester is None:
            return None

        candidate = self.find_candidate(connection_id, level, topic)
        if candidate is None:
            return None
        if candidate.connection_id == connection_id:
            return None

        # Both leave every queue before the session exists.
        self.queue.dequeue_all(connection_id)
        self.queue.dequeue_all(candidate.connection_id)

        session = self.sessions.create(
            Participant.from_entry(requester),
            Participant.from_entry(candidate),
            topic or candidate.topic or None,
        )
        logger.info(
            "Matched %s with %s (session %s)",
            requester.username, candidate.username, session.session_id,
        )
        return session
