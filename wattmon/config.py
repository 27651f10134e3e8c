"""Configuration loading: defaults, then a YAML file, then environment.

Example ``wattmon.yaml``::

    electricity_rate: 1445
    sample_interval_seconds: 5
    power_model:
      base_power_watts: 45
      cpu_tdp_watts: 125
      gpu_tdp_watts: 150
    data_dir: ~/.wattmon
    retry_backoff_seconds: 5
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from wattmon.errors import ConfigError
from wattmon.models.config_models import AppConfig
from wattmon.utils.env import EnvVarTypeError, get_env

# Top-level keys that belong to PowerConfig rather than AppConfig
_POWER_KEYS = ("electricity_rate", "sample_interval_seconds", "power_model")

# env var -> (section path, type)
ENV_OVERRIDES: dict[str, tuple[tuple[str, ...], type]] = {
    "WATTMON_ELECTRICITY_RATE": (("power", "electricity_rate"), float),
    "WATTMON_SAMPLE_INTERVAL": (("power", "sample_interval_seconds"), float),
    "WATTMON_BASE_POWER_WATTS": (("power", "power_model", "base_power_watts"), float),
    "WATTMON_CPU_TDP_WATTS": (("power", "power_model", "cpu_tdp_watts"), float),
    "WATTMON_GPU_TDP_WATTS": (("power", "power_model", "gpu_tdp_watts"), float),
    "WATTMON_RETRY_BACKOFF": (("retry_backoff_seconds",), float),
    "WATTMON_HOME": (("data_dir",), str),
}


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping from disk."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def _nest(data: dict[str, Any]) -> dict[str, Any]:
    """Move flat power keys under ``power`` so files may use either shape."""
    nested = dict(data)
    power = nested.pop("power", None) or {}
    if not isinstance(power, dict):
        raise ConfigError("'power' must be a mapping")
    power = dict(power)
    for key in _POWER_KEYS:
        if key in nested:
            power[key] = nested.pop(key)
    if power:
        nested["power"] = power
    return nested


def _apply_env(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay WATTMON_* environment variables onto ``data``."""
    for name, (path, as_type) in ENV_OVERRIDES.items():
        try:
            value = get_env(name, as_type=as_type, log=True)
        except EnvVarTypeError as exc:
            raise ConfigError(str(exc)) from exc
        if value is None:
            continue

        target = data
        for key in path[:-1]:
            target = target.setdefault(key, {})
            if not isinstance(target, dict):
                raise ConfigError(f"'{key}' must be a mapping to apply {name}")
        target[path[-1]] = value
    return data


def load_config(path: str | Path | None = None) -> AppConfig:
    """Build the effective configuration.

    Args:
        path: YAML file to read. Falls back to ``WATTMON_CONFIG``; when neither
            is set only defaults and environment overrides apply.

    Returns:
        Validated, frozen AppConfig.

    Raises:
        ConfigError: If the file is unreadable or any value fails validation.
    """
    config_path = path or get_env("WATTMON_CONFIG")
    data: dict[str, Any] = {}
    if config_path:
        data = _nest(_read_yaml(Path(config_path).expanduser()))

    data = _apply_env(data)
    if "data_dir" in data:
        data["data_dir"] = Path(str(data["data_dir"])).expanduser()

    try:
        return AppConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
