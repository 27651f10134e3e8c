"""Session lifecycle: Open -> Closed, with at most one Open session."""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from wattmon.errors import SessionConflictError, SessionNotFoundError
from wattmon.models.config_models import PowerConfig
from wattmon.models.power_models import PowerSample
from wattmon.models.session_models import Session
from wattmon.storage.base import Store
from wattmon.utils.clock import utc_now
from wattmon.utils.logger import Logger


class SessionManager:
    """Owns session transitions.

    Every transition runs under a single lock so that a request handler
    starting or ending a session can never race the scheduler into two Open
    sessions. Reads go straight to the store.

    Parameters
    ----------
    store : Store
        Backing store for session rows and samples.
    config : PowerConfig
        Supplies the electricity rate for cost conversion.
    clock : Callable[[], datetime]
        Source of "now"; UTC wall clock by default.
    """

    def __init__(
        self,
        store: Store,
        config: PowerConfig,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._config = config
        self._clock = clock
        self._lock = threading.RLock()
        self._log = Logger.get("engine.sessions")

    def start_new(self) -> Session:
        """Open a new session.

        Raises
        ------
        SessionConflictError
            If a session is already open. No row is created.
        """
        with self._lock:
            current = self.get_current()
            if current is not None:
                self._log.warning(
                    f"Refusing to start a session; {current.id} is still open"
                )
                raise SessionConflictError(current)

            session = Session(id=str(uuid.uuid4()), start_time=self._clock())
            self._store.create_session(session)
            self._log.info(f"Started new session with ID: {session.id}")
            return session

    def ensure_open(self) -> Session:
        """Return the open session, starting one if none exists."""
        with self._lock:
            current = self.get_current()
            if current is not None:
                return current
            return self.start_new()

    def record_sample(self, sample: PowerSample) -> tuple[PowerSample, Session]:
        """Persist a sample into the open session.

        The session check and the write happen under the transition lock, so
        a concurrent ``end()`` either sees the sample in its totals or the
        sample moves to a freshly opened session.

        Returns
        -------
        tuple[PowerSample, Session]
            The sample as written (possibly restamped) and its session.
        """
        with self._lock:
            session = self._store.get_session(sample.session_id)
            if session is None or not session.is_open:
                session = self.ensure_open()
                self._log.info(
                    f"Session {sample.session_id} closed mid-tick; "
                    f"recording into {session.id}"
                )
                sample = replace(sample, session_id=session.id)
            self._store.append_sample(sample)
            return sample, session

    def end(self, session_id: str) -> Session:
        """Close a session and freeze its totals.

        ``total_kwh`` is the ``accumulated_kwh`` of the session's most recent
        sample (0 without samples) and ``total_cost`` is that value times the
        electricity rate. Ending an already closed session returns the stored
        record without writing anything.

        Raises
        ------
        SessionNotFoundError
            If no session has this id.
        """
        with self._lock:
            session = self._store.get_session(session_id)
            if session is None:
                self._log.warning(
                    f"Attempted to end non-existent session: {session_id}"
                )
                raise SessionNotFoundError(session_id)

            if not session.is_open:
                self._log.debug(f"Session {session_id} already ended")
                return session

            latest = self._store.get_latest_sample(session_id)
            total_kwh = latest.accumulated_kwh if latest is not None else 0.0
            closed = session.closed(
                end_time=self._clock(),
                total_kwh=total_kwh,
                rate=self._config.electricity_rate,
            )
            self._store.update_session(closed)
            self._log.info(
                f"Ended session with ID: {session_id}, "
                f"Total kWh: {closed.total_kwh:.6f}, "
                f"Total Cost: {closed.total_cost:.2f}"
            )
            return closed

    def get_current(self) -> Session | None:
        """The open session with the latest start time, if any."""
        open_sessions = self._store.get_open_sessions()
        if not open_sessions:
            return None
        return max(open_sessions, key=lambda s: s.start_time)

    def get_all(self) -> list[Session]:
        """All sessions, newest first."""
        return self._store.get_sessions()

    def get_by_id(self, session_id: str) -> Session | None:
        return self._store.get_session(session_id)
