"""Tests for aquachat.advice_queue -- level-keyed FIFO waitlists.

Includes a property-based check (hypothesis) that any sequence of joins and
leaves keeps every connection in at most one level list.
"""

import time

from hypothesis import given, settings
from hypothesis import strategies as st

from aquachat.advice_queue import AdviceQueue
from aquachat.models import ExperienceLevel
from tests.conftest import make_entry

B = ExperienceLevel.BEGINNER
I = ExperienceLevel.INTERMEDIATE
A = ExperienceLevel.ADVANCED


# ---------------------------------------------------------------------------
# Basic operations
# ---------------------------------------------------------------------------

class TestEnqueue:

    def test_position_is_one_based_within_level(self):
        q = AdviceQueue()
        assert q.enqueue(make_entry("a", I)) == 1
        assert q.enqueue(make_entry("b", I)) == 2
        assert q.enqueue(make_entry("c", B)) == 1

    def test_fifo_order_preserved(self):
        q = AdviceQueue()
        for cid in ("a", "b", "c"):
            q.enqueue(make_entry(cid, A))
        assert [e.connection_id for e in q.entries(A)] == ["a", "b", "c"]
        assert q.peek(A).connection_id == "a"

    def test_rejoin_replaces_entry(self):
        """Re-joining (here: to change topic) moves the entry to the back, no duplicate."""
        q = AdviceQueue()
        q.enqueue(make_entry("a", I))
        q.enqueue(make_entry("b", I))
        q.enqueue(make_entry("a", I, topic="Plants"))
        entries = q.entries(I)
        assert [e.connection_id for e in entries] == ["b", "a"]
        assert entries[-1].topic == "Plants"

    def test_rejoin_at_other_level_moves_entry(self):
        q = AdviceQueue()
        q.enqueue(make_entry("a", B))
        q.enqueue(make_entry("a", A))
        assert q.size_of(B) == 0
        assert q.size_of(A) == 1
        assert q.find("a").level == A


class TestDequeue:

    def test_dequeue_all_removes_from_any_level(self):
        q = AdviceQueue()
        q.enqueue(make_entry("a", A))
        assert q.dequeue_all("a") is True
        assert q.find("a") is None
        assert len(q) == 0

    def test_dequeue_all_is_idempotent(self):
        q = AdviceQueue()
        assert q.dequeue_all("missing") is False
        q.enqueue(make_entry("a", B))
        q.dequeue_all("a")
        assert q.dequeue_all("a") is False

    def test_peek_empty_level(self):
        assert AdviceQueue().peek(B) is None

    def test_sizes_keyed_by_lowercase_level(self):
        q = AdviceQueue()
        q.enqueue(make_entry("a", B))
        q.enqueue(make_entry("b", A))
        q.enqueue(make_entry("c", A))
        assert q.sizes() == {"beginner": 1, "intermediate": 0, "advanced": 2}

    def test_entries_returns_snapshot(self):
        q = AdviceQueue()
        q.enqueue(make_entry("a", B))
        snapshot = q.entries(B)
        snapshot.clear()
        assert q.size_of(B) == 1


class TestExpiry:

    def test_expire_older_than_removes_only_stale_entries(self):
        q = AdviceQueue()
        old = make_entry("old", B)
        old.enqueued_mono = time.monotonic() - 100
        q.enqueue(old)
        q.enqueue(make_entry("new", B))

        expired = q.expire_older_than(time.monotonic() - 50)
        assert [e.connection_id for e in expired] == ["old"]
        assert [e.connection_id for e in q.entries(B)] == ["new"]


# ---------------------------------------------------------------------------
# Property: queue exclusivity
# ---------------------------------------------------------------------------

_ops = st.lists(
    st.tuples(
        st.sampled_from(["join", "leave"]),
        st.sampled_from(["c1", "c2", "c3", "c4"]),
        st.sampled_from(list(ExperienceLevel)),
        st.one_of(st.none(), st.sampled_from(["Fish", "Plants", "Coral"])),
    ),
    max_size=40,
)


class TestQueueExclusivity:

    @given(ops=_ops)
    @settings(max_examples=200)
    def test_connection_in_at_most_one_list(self, ops):
        q = AdviceQueue()
        for op, cid, level, topic in ops:
            if op == "join":
                q.enqueue(make_entry(cid, level, topic))
            else:
                q.dequeue_all(cid)

            seen: list[str] = []
            for lvl in ExperienceLevel:
                seen.extend(e.connection_id for e in q.entries(lvl))
            assert len(seen) == len(set(seen))
