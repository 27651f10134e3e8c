"""Power reading CLI command implementation."""

from __future__ import annotations

import json

from wattmon.commands.common import (
    HEADING_UNDERLINE,
    SECTION_SEP,
    fail,
    format_time,
    load_service,
)
from wattmon.errors import WattmonError
from wattmon.models.power_models import ComponentReading
from wattmon.service import MonitorService


def run_power(
    subcommand: str | None,
    hours: float,
    output_json: bool,
    config_path: str | None = None,
) -> None:
    """Dispatch to the appropriate power subcommand.

    Parameters
    ----------
    subcommand : str | None
        One of: current, components, history, total. Defaults to current.
    hours : float
        Window for history.
    output_json : bool
        Whether to output JSON.
    config_path : str | None
        Optional YAML configuration file.
    """
    service = load_service(config_path)

    if subcommand is None or subcommand == "current":
        _show_current(service, output_json)
    elif subcommand == "components":
        _show_components(service, output_json)
    elif subcommand == "history":
        _show_history(service, hours, output_json)
    elif subcommand == "total":
        _show_total(service, output_json)


def _show_current(service: MonitorService, output_json: bool) -> None:
    """Show the most recent power sample."""
    sample = service.current_power()

    if output_json:
        print(json.dumps(sample.to_dict() if sample else None, indent=2))
        return

    if sample is None:
        print("No power samples recorded yet.")
        print("\n  Start monitoring with: wattmon run")
        return

    print(SECTION_SEP)
    print("  current power")
    print(SECTION_SEP)
    print(f"\n  Time:     {format_time(sample.timestamp)}")
    print(f"  Session:  {sample.session_id[:8]}...")
    print(f"  Power:    {sample.power_watts:.1f} W")
    print(f"  Energy:   {sample.accumulated_kwh:.6f} kWh")
    print("\n  [Utilization]")
    print(f"  {HEADING_UNDERLINE}")
    print(f"  CPU:      {sample.cpu_util_pct:.1f}%")
    print(f"  GPU:      {sample.gpu_util_pct:.1f}%")
    print(f"  Memory:   {sample.mem_util_pct:.1f}%")


def _show_components(service: MonitorService, output_json: bool) -> None:
    """Read the hardware once and show per-component power."""
    try:
        components = service.current_components()
    except WattmonError as exc:
        fail(exc)

    if output_json:
        print(json.dumps([c.to_dict() for c in components], indent=2))
        return

    print(SECTION_SEP)
    print("  components")
    print(SECTION_SEP)
    print(f"\n  {'Component':<14} {'Model':<28} {'Power':>9} {'Util':>7} {'Temp':>7}")
    print(f"  {HEADING_UNDERLINE * 3}")

    for c in components:
        model = c.model[:27] if len(c.model) > 27 else c.model
        print(
            f"  {c.name:<14} {model:<28} {c.power_watts:>7.1f} W "
            f"{_pct(c):>7} {_temp(c):>7}"
        )

    total = sum(c.power_watts for c in components)
    print(f"\n  Component sum: {total:.1f} W")


def _show_history(service: MonitorService, hours: float, output_json: bool) -> None:
    """Show samples recorded within the last ``hours`` hours."""
    try:
        samples = service.history(hours)
    except ValueError as exc:
        fail(exc)

    if output_json:
        print(json.dumps([s.to_dict() for s in samples], indent=2))
        return

    print(SECTION_SEP)
    print(f"  power history (last {hours:g} hours)")
    print(SECTION_SEP)

    if not samples:
        print("\n  No samples recorded in this period.")
        return

    avg_w = sum(s.power_watts for s in samples) / len(samples)
    peak_w = max(s.power_watts for s in samples)
    print(f"\n  Samples:  {len(samples)}")
    print(f"  First:    {format_time(samples[0].timestamp)}")
    print(f"  Last:     {format_time(samples[-1].timestamp)}")
    print(f"  Avg:      {avg_w:.1f} W")
    print(f"  Peak:     {peak_w:.1f} W")


def _show_total(service: MonitorService, output_json: bool) -> None:
    """Show accumulated energy and its cost."""
    total_kwh, total_cost = service.totals()

    if output_json:
        print(json.dumps({"total_kwh": total_kwh, "total_cost": total_cost}, indent=2))
        return

    rate = service.config.power.electricity_rate
    print(SECTION_SEP)
    print("  energy total")
    print(SECTION_SEP)
    print(f"\n  Energy:   {total_kwh:.6f} kWh")
    print(f"  Cost:     {total_cost:.2f} (at {rate:g}/kWh)")


def _pct(component: ComponentReading) -> str:
    if component.utilization_pct is None:
        return "-"
    return f"{component.utilization_pct:.1f}%"


def _temp(component: ComponentReading) -> str:
    if component.temperature_c is None:
        return "-"
    return f"{component.temperature_c:.0f}C"
