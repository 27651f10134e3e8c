"""Data model for monitoring sessions."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from wattmon.utils.clock import parse_timestamp


class SessionState(str, Enum):
    """Lifecycle states. CLOSED is terminal."""

    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class Session:
    """A bounded monitoring period.

    Attributes
    ----------
    id : str
        Unique session identifier (UUID).
    start_time : datetime
        When the session was opened (UTC).
    end_time : datetime | None
        When the session was closed; None while open.
    total_kwh : float
        Accumulated energy captured when the session closed.
    total_cost : float
        ``total_kwh`` multiplied by the configured electricity rate.
    """

    id: str
    start_time: datetime
    end_time: datetime | None = None
    total_kwh: float = 0.0
    total_cost: float = 0.0

    @property
    def state(self) -> SessionState:
        """Derived lifecycle state."""
        return SessionState.OPEN if self.end_time is None else SessionState.CLOSED

    @property
    def is_open(self) -> bool:
        """True while the session has no end time."""
        return self.end_time is None

    @property
    def duration_s(self) -> float | None:
        """Elapsed seconds for a closed session, None while open."""
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()

    def closed(self, end_time: datetime, total_kwh: float, rate: float) -> Session:
        """Return a closed copy with totals frozen at ``total_kwh``."""
        return dataclasses.replace(
            self,
            end_time=end_time,
            total_kwh=total_kwh,
            total_cost=total_kwh * rate,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "id": self.id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "total_kwh": self.total_kwh,
            "total_cost": self.total_cost,
            "state": self.state.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        """Create a Session from a dictionary."""
        end_time = data.get("end_time")
        return cls(
            id=data["id"],
            start_time=parse_timestamp(data["start_time"]),
            end_time=parse_timestamp(end_time) if end_time else None,
            total_kwh=float(data.get("total_kwh", 0.0)),
            total_cost=float(data.get("total_cost", 0.0)),
        )
