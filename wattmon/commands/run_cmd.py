"""Foreground monitoring CLI command implementation."""

from __future__ import annotations

import json
import signal
import sys
import time
from types import FrameType

from wattmon.commands.common import (
    HEADING_UNDERLINE,
    SECTION_SEP,
    fail,
    format_duration,
    format_time,
    load_service,
)
from wattmon.engine.broadcast import TOPIC_POWER, BroadcastMessage
from wattmon.errors import WattmonError
from wattmon.service import MonitorService

# How often the foreground thread checks for --duration and scheduler exit
_POLL_SECONDS = 0.2


def _print_json_line(message: BroadcastMessage) -> None:
    print(json.dumps(message.to_dict()), flush=True)


def _print_power_line(message: BroadcastMessage) -> None:
    if message.topic != TOPIC_POWER:
        return
    sample = message.payload
    print(
        f"  {sample['timestamp'][11:19]}  {sample['power_watts']:>7.1f} W  "
        f"{sample['accumulated_kwh']:.6f} kWh  "
        f"cpu {sample['cpu_util_pct']:.0f}%  gpu {sample['gpu_util_pct']:.0f}%",
        flush=True,
    )


def run_monitor(
    stream: bool = False,
    duration_seconds: float | None = None,
    config_path: str | None = None,
) -> None:
    """Poll hardware in the foreground until interrupted.

    SIGINT and SIGTERM stop the scheduler, which ends the open session
    before exiting.

    Args:
        stream: Print every broadcast message as a JSON line on stdout.
        duration_seconds: Stop after this many seconds (None = until interrupted).
        config_path: Optional YAML configuration file.
    """
    service = load_service(config_path)
    scheduler = service.scheduler
    interval = service.config.power.sample_interval_seconds

    def _handle_signal(signum: int, frame: FrameType | None) -> None:
        scheduler.request_stop()

    previous = {
        sig: signal.signal(sig, _handle_signal)
        for sig in (signal.SIGINT, signal.SIGTERM)
    }

    subscription = service.hub.subscribe(
        listener=_print_json_line if stream else _print_power_line
    )

    if not stream:
        print(SECTION_SEP)
        print("  wattmon monitoring")
        print(SECTION_SEP)
        print(f"\n  Interval: {interval:g}s")
        print(f"  Data:     {service.config.data_dir}")
        print("\n  Press Ctrl+C to stop.")
        print(f"  {HEADING_UNDERLINE * 3}")

    started = time.monotonic()
    try:
        service.start()
        while not scheduler.wait(_POLL_SECONDS):
            if (
                duration_seconds is not None
                and time.monotonic() - started >= duration_seconds
            ):
                break
    finally:
        service.stop()
        service.hub.unsubscribe(subscription)
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    if scheduler.error is not None:
        fail(scheduler.error)

    if not stream:
        _print_summary(service, time.monotonic() - started)


def _print_summary(service: MonitorService, elapsed_s: float) -> None:
    """Print the session this run recorded into."""
    session_id = service.scheduler.current_session_id
    print(f"\n{SECTION_SEP}")
    print("  monitoring stopped")
    print(SECTION_SEP)
    print(f"\n  Ran for:  {format_duration(elapsed_s)}")

    if session_id is None:
        print("  No samples were recorded.")
        return

    try:
        session = service.get_session(session_id)
    except WattmonError as exc:
        print(f"  Session {session_id[:8]}... unavailable: {exc}", file=sys.stderr)
        return

    rate = service.config.power.electricity_rate
    print(f"  Session:  {session.id[:8]}...")
    print(f"  Ended:    {format_time(session.end_time)}")
    print(f"  Energy:   {session.total_kwh:.6f} kWh")
    print(f"  Cost:     {session.total_cost:.2f} (at {rate:g}/kWh)")
