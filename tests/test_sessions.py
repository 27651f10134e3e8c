"""Tests for the session lifecycle."""

import threading
from datetime import timedelta

import pytest

from wattmon.engine.sessions import SessionManager
from wattmon.errors import SessionConflictError, SessionNotFoundError
from wattmon.models.power_models import PowerSample
from wattmon.models.session_models import Session, SessionState


@pytest.fixture
def sessions(store, power_config, clock):
    return SessionManager(store, power_config, clock=clock)


def _sample(session_id, kwh, when):
    return PowerSample(
        timestamp=when,
        power_watts=200.0,
        accumulated_kwh=kwh,
        session_id=session_id,
    )


class TestStartNew:
    """Tests for opening sessions."""

    def test_start_creates_open_session(self, sessions, store):
        """A new session is open and persisted."""
        session = sessions.start_new()

        assert session.state == SessionState.OPEN
        assert session.end_time is None
        assert store.get_session(session.id) == session

    def test_start_while_open_conflicts(self, sessions, store):
        """Starting a second session fails and creates nothing."""
        first = sessions.start_new()

        with pytest.raises(SessionConflictError) as exc_info:
            sessions.start_new()

        assert exc_info.value.open_session.id == first.id
        expected = f"Active session already exists with ID {first.id}"
        assert str(exc_info.value) == expected
        assert len(store.get_sessions()) == 1

    def test_start_after_end(self, sessions):
        """A new session can start once the previous one is closed."""
        first = sessions.start_new()
        sessions.end(first.id)

        second = sessions.start_new()
        assert second.id != first.id
        assert sessions.get_current().id == second.id

    def test_concurrent_starts_yield_one_open_session(self, sessions, store):
        """Racing start requests never produce two open sessions."""
        barrier = threading.Barrier(8)
        results = []

        def worker():
            barrier.wait()
            try:
                results.append(sessions.start_new())
            except SessionConflictError as exc:
                results.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        started = [r for r in results if isinstance(r, Session)]
        assert len(started) == 1
        assert len(store.get_open_sessions()) == 1

    def test_mixed_transitions_keep_one_open_session(self, sessions, store):
        """Interleaved start, end and ensure_open never leave two open."""
        barrier = threading.Barrier(9)
        open_counts = []

        def starter():
            barrier.wait()
            for _ in range(5):
                try:
                    sessions.start_new()
                except SessionConflictError:
                    pass
                open_counts.append(len(store.get_open_sessions()))

        def ender():
            barrier.wait()
            for _ in range(5):
                current = sessions.get_current()
                if current is not None:
                    sessions.end(current.id)
                open_counts.append(len(store.get_open_sessions()))

        def ensurer():
            barrier.wait()
            for _ in range(5):
                assert sessions.ensure_open().is_open
                open_counts.append(len(store.get_open_sessions()))

        threads = [
            threading.Thread(target=fn) for fn in (starter, ender, ensurer) * 3
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(open_counts) == 45
        assert max(open_counts) <= 1
        for session in store.get_sessions():
            if not session.is_open:
                assert session.end_time >= session.start_time


class TestEnsureOpen:
    """Tests for the scheduler's implicit session creation."""

    def test_creates_when_none_open(self, sessions):
        """ensure_open starts a session when none is open."""
        session = sessions.ensure_open()
        assert session.is_open

    def test_reuses_open_session(self, sessions):
        """ensure_open returns the existing open session."""
        first = sessions.start_new()
        assert sessions.ensure_open().id == first.id


class TestEnd:
    """Tests for closing sessions."""

    def test_end_freezes_latest_sample(self, sessions, store, clock):
        """Totals come from the most recent sample of the session."""
        session = sessions.start_new()
        store.append_sample(_sample(session.id, 0.5, clock()))
        store.append_sample(_sample(session.id, 1.2, clock()))

        closed = sessions.end(session.id)

        assert closed.state == SessionState.CLOSED
        assert closed.end_time is not None
        assert closed.total_kwh == pytest.approx(1.2)
        assert closed.total_cost == pytest.approx(1734.0)
        assert store.get_session(session.id) == closed

    def test_end_without_samples(self, sessions):
        """A session with no samples closes with zero totals."""
        session = sessions.start_new()
        closed = sessions.end(session.id)
        assert closed.total_kwh == 0.0
        assert closed.total_cost == 0.0

    def test_end_is_idempotent(self, sessions, store, clock):
        """Ending a closed session returns it unchanged."""
        session = sessions.start_new()
        store.append_sample(_sample(session.id, 0.3, clock()))
        closed = sessions.end(session.id)

        store.append_sample(_sample(session.id, 9.9, clock()))
        again = sessions.end(session.id)

        assert again == closed

    def test_end_unknown_session(self, sessions):
        """Ending an unknown id raises NotFound."""
        with pytest.raises(SessionNotFoundError, match="ID nope not found"):
            sessions.end("nope")

    def test_end_time_not_before_start(self, sessions):
        """A closed session never ends before it started."""
        closed = sessions.end(sessions.start_new().id)
        assert closed.end_time >= closed.start_time
        assert closed.duration_s >= 0


class TestRecordSample:
    """Tests for writing samples against the session lifecycle."""

    def test_records_into_open_session(self, sessions, store, clock):
        """A sample for the open session is stored unchanged."""
        session = sessions.start_new()
        sample = _sample(session.id, 0.1, clock())

        written, target = sessions.record_sample(sample)

        assert written == sample
        assert target.id == session.id
        assert store.get_samples_for_session(session.id) == [sample]

    def test_closed_session_moves_sample(self, sessions, store, clock):
        """A sample for a closed session goes to a new open session."""
        session = sessions.start_new()
        sessions.end(session.id)

        written, target = sessions.record_sample(_sample(session.id, 0.1, clock()))

        assert target.is_open
        assert written.session_id == target.id != session.id
        assert store.get_samples_for_session(session.id) == []
        assert store.get_session(session.id).total_kwh == 0.0


class TestQueries:
    """Tests for read pass-throughs."""

    def test_get_current_none(self, sessions):
        """No open session returns None."""
        assert sessions.get_current() is None

    def test_get_all_newest_first(self, sessions):
        """Sessions are listed by start time, newest first."""
        first = sessions.start_new()
        sessions.end(first.id)
        second = sessions.start_new()

        assert [s.id for s in sessions.get_all()] == [second.id, first.id]

    def test_get_current_picks_latest_start(self, sessions, store, clock):
        """With several open rows, the latest start time wins."""
        older = Session(id="older", start_time=clock())
        newer = Session(id="newer", start_time=clock() + timedelta(minutes=5))
        store.create_session(newer)
        store.create_session(older)

        assert sessions.get_current().id == "newer"

    def test_get_by_id(self, sessions):
        """Lookup by id returns the session or None."""
        session = sessions.start_new()
        assert sessions.get_by_id(session.id) == session
        assert sessions.get_by_id("missing") is None
