"""Hardware sensor access."""

from wattmon.sensors.base import (
    HardwareKind,
    HardwareRef,
    SensorGateway,
    SensorKind,
    SensorReading,
)
from wattmon.sensors.snapshot import SensorSnapshot

__all__ = [
    "HardwareKind",
    "HardwareRef",
    "SensorGateway",
    "SensorKind",
    "SensorReading",
    "SensorSnapshot",
]
