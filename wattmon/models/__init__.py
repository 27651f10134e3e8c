"""Data models for telemetry, sessions and configuration."""

from wattmon.models.config_models import AppConfig, PowerConfig, PowerModelConfig
from wattmon.models.power_models import (
    ComponentKind,
    ComponentReading,
    PowerEstimate,
    PowerSample,
)
from wattmon.models.session_models import Session, SessionState

__all__ = [
    "AppConfig",
    "ComponentKind",
    "ComponentReading",
    "PowerConfig",
    "PowerEstimate",
    "PowerModelConfig",
    "PowerSample",
    "Session",
    "SessionState",
]
