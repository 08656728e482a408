"""Three FIFO waitlists of users awaiting a 1-on-1 advice match."""

from .models import ExperienceLevel, QueueEntry


class AdviceQueue:
    """Level-keyed FIFO lists.

    A connection-id is in at most one list at a time: ``enqueue`` always
    removes any existing entry for the connection first, so re-joining (e.g.
    to change topic or level) replaces rather than duplicates.
    """

    def __init__(self):
        self._lists: dict[ExperienceLevel, list[QueueEntry]] = {
            level: [] for level in ExperienceLevel
        }

    def enqueue(self, entry: QueueEntry) -> int:
        """Append *entry* to its level list. Returns its 1-based position."""
        self.dequeue_all(entry.connection_id)
        bucket = self._lists[entry.level]
        bucket.append(entry)
        return len(bucket)

    def dequeue_all(self, connection_id: str) -> bool:
        """Remove *connection_id* from every list. Returns True if anything was removed."""
        removed = False
        for level, bucket in self._lists.items():
            kept = [e for e in bucket if e.connection_id != connection_id]
            if len(kept) != len(bucket):
                self._lists[level] = kept
                removed = True
        return removed

    def peek(self, level: ExperienceLevel) -> QueueEntry | None:
        bucket = self._lists[level]
        return bucket[0] if bucket else None

    def size_of(self, level: ExperienceLevel) -> int:
        return len(self._lists[level])

    def entries(self, level: ExperienceLevel) -> list[QueueEntry]:
        return list(self._lists[level])

    def find(self, connection_id: str) -> QueueEntry | None:
        for bucket in self._lists.values():
            for entry in bucket:
                if entry.connection_id == connection_id:
                    return entry
        return None

    def sizes(self) -> dict[str, int]:
        return {level.queue_key: len(bucket) for level, bucket in self._lists.items()}

    def expire_older_than(self, cutoff_mono: float) -> list[QueueEntry]:
        """Drop entries enqueued before *cutoff_mono* (time.monotonic scale)."""
        expired: list[QueueEntry] = []
        for level, bucket in self._lists.items():
            stale = [e for e in bucket if e.enqueued_mono < cutoff_mono]
            if stale:
                self._lists[level] = [e for e in bucket if e.enqueued_mono >= cutoff_mono]
                expired.extend(stale)
        return expired

    def clear(self) -> None:
        for bucket in self._lists.values():
            bucket.clear()

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._lists.values())
