"""JSON file-based storage for sessions and power samples."""

from __future__ import annotations

import json
import os
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Any

from wattmon.errors import TransientIOError
from wattmon.models.power_models import PowerSample
from wattmon.models.session_models import Session
from wattmon.storage.base import Store


class JsonStore(Store):
    """Persist sessions as JSON files and samples as JSON lines.

    Storage layout::

        ~/.wattmon/
        ├── sessions/
        │   └── {session_id}.json
        └── samples/
            └── {session_id}.jsonl

    Parameters
    ----------
    base_dir : Path | None
        Root directory. Defaults to ``~/.wattmon/``.
    """

    def __init__(self, base_dir: Path | None = None) -> None:
        self._base_dir = base_dir or (Path.home() / ".wattmon")
        self._sessions_dir = self._base_dir / "sessions"
        self._samples_dir = self._base_dir / "samples"
        self._lock = threading.RLock()

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def _ensure_dirs(self) -> None:
        """Create the sessions and samples directories if they don't exist."""
        self._sessions_dir.mkdir(parents=True, exist_ok=True)
        self._samples_dir.mkdir(parents=True, exist_ok=True)

    def _session_path(self, session_id: str) -> Path:
        """Return the file path for a session."""
        return self._sessions_dir / f"{session_id}.json"

    def _samples_path(self, session_id: str) -> Path:
        """Return the JSON lines file for a session's samples."""
        return self._samples_dir / f"{session_id}.jsonl"

    def _write_json(self, path: Path, data: dict[str, Any]) -> None:
        """Write ``data`` to ``path`` atomically via a temp file."""
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    # -------------------------------------------------------------------------
    # Samples
    # -------------------------------------------------------------------------

    def append_sample(self, sample: PowerSample) -> None:
        """Append one sample to its session's JSON lines file.

        Raises
        ------
        TransientIOError
            If the file cannot be written.
        """
        line = json.dumps(sample.to_dict())
        with self._lock:
            try:
                self._ensure_dirs()
                with open(self._samples_path(sample.session_id), "a") as f:
                    f.write(line + "\n")
                    f.flush()
            except OSError as exc:
                raise TransientIOError(f"Cannot append sample: {exc}") from exc

    def _read_samples(self, path: Path) -> list[PowerSample]:
        """Parse a JSON lines file, skipping malformed or partial lines."""
        samples: list[PowerSample] = []
        try:
            with open(path) as f:
                lines = f.readlines()
        except FileNotFoundError:
            return samples

        for line in lines:
            line = line.strip()
            if not line:
                continue
            try:
                samples.append(PowerSample.from_dict(json.loads(line)))
            except (json.JSONDecodeError, KeyError, ValueError):
                continue
        return samples

    def get_samples_for_session(self, session_id: str) -> list[PowerSample]:
        with self._lock:
            samples = self._read_samples(self._samples_path(session_id))
        samples.sort(key=lambda s: s.timestamp)
        return samples

    def get_samples_between(self, start: datetime, end: datetime) -> list[PowerSample]:
        with self._lock:
            if not self._samples_dir.exists():
                return []
            samples = [
                s
                for path in self._samples_dir.glob("*.jsonl")
                for s in self._read_samples(path)
                if start <= s.timestamp <= end
            ]
        samples.sort(key=lambda s: s.timestamp)
        return samples

    def get_latest_sample(self, session_id: str | None = None) -> PowerSample | None:
        with self._lock:
            if session_id is not None:
                paths = [self._samples_path(session_id)]
            elif self._samples_dir.exists():
                paths = list(self._samples_dir.glob("*.jsonl"))
            else:
                return None

            latest: PowerSample | None = None
            for path in paths:
                for sample in self._read_samples(path):
                    if latest is None or sample.timestamp >= latest.timestamp:
                        latest = sample
            return latest

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    def create_session(self, session: Session) -> None:
        """Write an initial session JSON file.

        Raises
        ------
        TransientIOError
            If the file cannot be written.
        """
        with self._lock:
            try:
                self._ensure_dirs()
                self._write_json(self._session_path(session.id), session.to_dict())
            except OSError as exc:
                raise TransientIOError(f"Cannot create session: {exc}") from exc

    def update_session(self, session: Session) -> None:
        """Overwrite a session JSON file with updated data."""
        self.create_session(session)

    def get_session(self, session_id: str) -> Session | None:
        """Read a single session from disk.

        Returns
        -------
        Session | None
            The session, or None if not found or unreadable.
        """
        path = self._session_path(session_id)
        with self._lock:
            if not path.exists():
                return None
            try:
                with open(path) as f:
                    return Session.from_dict(json.load(f))
            except (json.JSONDecodeError, KeyError, ValueError):
                return None

    def get_sessions(self) -> list[Session]:
        """List sessions, sorted by start time (newest first)."""
        sessions: list[Session] = []
        with self._lock:
            if not self._sessions_dir.exists():
                return []
            for path in self._sessions_dir.glob("*.json"):
                try:
                    with open(path) as f:
                        sessions.append(Session.from_dict(json.load(f)))
                except (json.JSONDecodeError, KeyError, ValueError):
                    continue

        sessions.sort(key=lambda s: s.start_time, reverse=True)
        return sessions
