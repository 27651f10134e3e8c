"""Effective configuration CLI command implementation."""

from __future__ import annotations

import json

from wattmon.commands.common import HEADING_UNDERLINE, SECTION_SEP, fail
from wattmon.config import load_config
from wattmon.errors import ConfigError


def run_config(output_json: bool, config_path: str | None = None) -> None:
    """Print the configuration after file and environment overrides."""
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        fail(exc)

    if output_json:
        print(json.dumps(config.model_dump(mode="json"), indent=2))
        return

    power = config.power
    model = power.power_model
    print(SECTION_SEP)
    print("  wattmon configuration")
    print(SECTION_SEP)
    print(f"\n  Data dir:        {config.data_dir}")
    print(f"  Interval:        {power.sample_interval_seconds:g}s")
    print(f"  Retry backoff:   {config.retry_backoff_seconds:g}s")
    print(f"  Rate:            {power.electricity_rate:g} per kWh")
    print("\n  [Power model]")
    print(f"  {HEADING_UNDERLINE}")
    print(f"  Base power:      {model.base_power_watts:g} W")
    print(f"  CPU TDP:         {model.cpu_tdp_watts:g} W")
    print(f"  GPU TDP:         {model.gpu_tdp_watts:g} W")
