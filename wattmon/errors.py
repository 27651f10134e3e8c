"""Exception hierarchy for wattmon.

Only session lifecycle violations are meant to reach callers. Infrastructure
failures during a polling tick are logged and retried by the scheduler.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wattmon.models.session_models import Session


class WattmonError(Exception):
    """Base exception for all wattmon errors."""


class ConfigError(WattmonError):
    """Raised when configuration cannot be loaded or fails validation."""


class SessionConflictError(WattmonError):
    """Raised when starting a session while another session is still open."""

    def __init__(self, open_session: Session) -> None:
        self.open_session = open_session
        super().__init__(f"Active session already exists with ID {open_session.id}")


class SessionNotFoundError(WattmonError):
    """Raised when a session id does not exist in the store."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session with ID {session_id} not found")


class TransientIOError(WattmonError):
    """A sensor read or store write failed or timed out during a tick."""


class FatalInitError(WattmonError):
    """The sensor subsystem could not be initialized at all."""
