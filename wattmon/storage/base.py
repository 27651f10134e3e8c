"""Store interface for the power time series and session rows."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from wattmon.models.power_models import PowerSample
from wattmon.models.session_models import Session


class Store(ABC):
    """Append-only sample log plus keyed session rows.

    Implementations must be safe to call from the scheduler thread and from
    request handlers at the same time.
    """

    @abstractmethod
    def append_sample(self, sample: PowerSample) -> None:
        """Persist one sample at the end of its session's series."""

    @abstractmethod
    def get_samples_for_session(self, session_id: str) -> list[PowerSample]:
        """All samples of a session, oldest first."""

    @abstractmethod
    def get_samples_between(self, start: datetime, end: datetime) -> list[PowerSample]:
        """Samples with ``start <= timestamp <= end``, oldest first."""

    @abstractmethod
    def get_latest_sample(self, session_id: str | None = None) -> PowerSample | None:
        """Most recent sample overall, or within one session."""

    @abstractmethod
    def create_session(self, session: Session) -> None:
        """Insert a new session row."""

    @abstractmethod
    def update_session(self, session: Session) -> None:
        """Overwrite an existing session row."""

    @abstractmethod
    def get_session(self, session_id: str) -> Session | None:
        """Fetch one session, or None if it does not exist."""

    @abstractmethod
    def get_sessions(self) -> list[Session]:
        """All sessions, newest ``start_time`` first."""

    def get_samples_since(self, since: datetime) -> list[PowerSample]:
        """Samples from ``since`` up to now, oldest first."""
        end = datetime.max.replace(tzinfo=since.tzinfo)
        return self.get_samples_between(since, end)

    def get_open_sessions(self) -> list[Session]:
        """Sessions without an end time, newest first."""
        return [s for s in self.get_sessions() if s.is_open]
