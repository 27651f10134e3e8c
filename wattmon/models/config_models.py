"""Pydantic models for wattmon configuration."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


def default_data_dir() -> Path:
    """Default location for sessions and samples: ``~/.wattmon``."""
    return Path.home() / ".wattmon"


class PowerModelConfig(BaseModel):
    """Fallback power model used when no direct power sensor exists."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_power_watts: float = Field(
        45.0,
        ge=0,
        description="Fixed baseline for motherboard, fans and idle draw",
    )
    cpu_tdp_watts: float = Field(125.0, ge=0, description="CPU thermal design power")
    gpu_tdp_watts: float = Field(150.0, ge=0, description="GPU thermal design power")


class PowerConfig(BaseModel):
    """Process-wide power accounting settings, read-only after startup."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    electricity_rate: float = Field(
        1445.0, ge=0, description="Price per kWh used for session cost"
    )
    sample_interval_seconds: float = Field(
        5.0, gt=0, description="Polling tick period in seconds"
    )
    power_model: PowerModelConfig = Field(default_factory=PowerModelConfig)


class AppConfig(BaseModel):
    """Complete runtime configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    power: PowerConfig = Field(default_factory=PowerConfig)
    data_dir: Path = Field(
        default_factory=default_data_dir,
        description="Directory holding sessions/ and samples/",
    )
    retry_backoff_seconds: float = Field(
        5.0, gt=0, description="Wait after a failed tick before retrying"
    )
