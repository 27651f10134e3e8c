"""Session management CLI command implementation."""

from __future__ import annotations

import json

from wattmon.commands.common import (
    HEADING_UNDERLINE,
    SECTION_SEP,
    fail,
    format_duration,
    format_time,
    load_service,
)
from wattmon.errors import SessionConflictError, SessionNotFoundError
from wattmon.models.session_models import Session
from wattmon.service import MonitorService
from wattmon.utils.clock import utc_now


def run_session(
    subcommand: str | None,
    session_id: str | None,
    output_json: bool,
    config_path: str | None = None,
) -> None:
    """Dispatch to the appropriate session subcommand.

    Parameters
    ----------
    subcommand : str | None
        One of: list, current, show, start, end. Defaults to list.
    session_id : str | None
        Target session for show and end.
    output_json : bool
        Whether to output JSON.
    config_path : str | None
        Optional YAML configuration file.
    """
    service = load_service(config_path)

    if subcommand is None or subcommand == "list":
        _list_sessions(service, output_json)
    elif subcommand == "current":
        _show_current(service, output_json)
    elif subcommand == "show":
        _show_session(service, _require_id(session_id, "show"), output_json)
    elif subcommand == "start":
        _start_session(service, output_json)
    elif subcommand == "end":
        _end_session(service, _require_id(session_id, "end"), output_json)


def _require_id(session_id: str | None, subcommand: str) -> str:
    if not session_id:
        fail(f"'wattmon session {subcommand}' needs a SESSION_ID")
    return session_id


def _list_sessions(service: MonitorService, output_json: bool) -> None:
    """Display all sessions, newest first."""
    sessions = service.list_sessions()

    if output_json:
        print(json.dumps([s.to_dict() for s in sessions], indent=2))
        return

    if not sessions:
        print("No sessions recorded.")
        print("\n  Start monitoring with: wattmon run")
        return

    print(SECTION_SEP)
    print("  sessions")
    print(SECTION_SEP)

    print(
        f"\n  {'ID':<10} {'Started':<20} {'State':<7} {'Duration':<10} "
        f"{'kWh':>10} {'Cost':>10}"
    )
    print(f"  {HEADING_UNDERLINE * 3}")

    for s in sessions:
        print(
            f"  {s.id[:8]:<10} {format_time(s.start_time):<20} {s.state.value:<7} "
            f"{_duration(s):<10} {s.total_kwh:>10.6f} {s.total_cost:>10.2f}"
        )

    print(f"\n  Showing {len(sessions)} session(s)")


def _show_current(service: MonitorService, output_json: bool) -> None:
    """Show the open session, if any."""
    session = service.current_session()

    if output_json:
        print(json.dumps(session.to_dict() if session else None, indent=2))
        return

    if session is None:
        print("No session is open.")
        return

    _print_session(session, "current session", service)


def _show_session(service: MonitorService, session_id: str, output_json: bool) -> None:
    """Show one session with its sample count."""
    try:
        session = service.get_session(session_id)
        samples = service.session_samples(session_id)
    except SessionNotFoundError as exc:
        fail(exc)

    if output_json:
        data = session.to_dict()
        data["samples"] = [s.to_dict() for s in samples]
        print(json.dumps(data, indent=2))
        return

    _print_session(session, "session", service)
    print(f"  Samples:  {len(samples)}")
    if samples:
        avg_w = sum(s.power_watts for s in samples) / len(samples)
        peak_w = max(s.power_watts for s in samples)
        print("\n  [Power]")
        print(f"  {HEADING_UNDERLINE}")
        print(f"  Avg:      {avg_w:.1f} W")
        print(f"  Peak:     {peak_w:.1f} W")


def _start_session(service: MonitorService, output_json: bool) -> None:
    """Open a new session."""
    try:
        session = service.start_session()
    except SessionConflictError as exc:
        fail(exc)

    if output_json:
        print(json.dumps(session.to_dict(), indent=2))
        return

    print(SECTION_SEP)
    print("  session started")
    print(SECTION_SEP)
    print(f"\n  Session:  {session.id}")
    print(f"  Started:  {format_time(session.start_time)}")
    print(f"\n  End with: wattmon session end {session.id}")


def _end_session(service: MonitorService, session_id: str, output_json: bool) -> None:
    """Close a session and report its totals."""
    try:
        session = service.end_session(session_id)
    except SessionNotFoundError as exc:
        fail(exc)

    if output_json:
        print(json.dumps(session.to_dict(), indent=2))
        return

    _print_session(session, "session ended", service)


def _print_session(session: Session, title: str, service: MonitorService) -> None:
    print(SECTION_SEP)
    print(f"  {title}")
    print(SECTION_SEP)
    print(f"\n  Session:  {session.id}")
    print(f"  State:    {session.state.value}")
    print(f"  Started:  {format_time(session.start_time)}")
    print(f"  Ended:    {format_time(session.end_time)}")
    print(f"  Duration: {_duration(session)}")
    print("\n  [Energy]")
    print(f"  {HEADING_UNDERLINE}")
    print(f"  Energy:   {session.total_kwh:.6f} kWh")
    rate = service.config.power.electricity_rate
    print(f"  Cost:     {session.total_cost:.2f} (at {rate:g}/kWh)")


def _duration(session: Session) -> str:
    if session.duration_s is not None:
        return format_duration(session.duration_s)
    return format_duration((utc_now() - session.start_time).total_seconds())
