"""Typed sensor gateway interface.

A gateway exposes a hardware-kind by sensor-kind matrix. Every lookup
returns an empty list or None when hardware or sensors are absent; nothing
in this interface raises for a missing sensor.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wattmon.sensors.snapshot import SensorSnapshot


class HardwareKind(str, Enum):
    """Kinds of hardware a gateway can enumerate."""

    CPU = "cpu"
    GPU_NVIDIA = "gpu_nvidia"
    GPU_AMD = "gpu_amd"
    RAM = "ram"
    MAINBOARD = "mainboard"
    STORAGE = "storage"


GPU_KINDS = (HardwareKind.GPU_NVIDIA, HardwareKind.GPU_AMD)


class SensorKind(str, Enum):
    """Kinds of sensor value. Units are fixed per kind."""

    LOAD = "load"  # percent
    TEMPERATURE = "temperature"  # Celsius
    POWER = "power"  # watts
    CLOCK = "clock"  # MHz
    DATA = "data"  # GB
    SMALL_DATA = "small_data"  # MB
    FAN = "fan"  # RPM
    VOLTAGE = "voltage"  # volts


@dataclass(frozen=True)
class HardwareRef:
    """Identity of one physical unit."""

    id: str
    name: str
    kind: HardwareKind


@dataclass(frozen=True)
class SensorReading:
    """A named sensor on a piece of hardware and its current value."""

    hardware_id: str
    kind: SensorKind
    name: str
    value: float | None

    def matches(self, kind: SensorKind, name_pattern: str | None) -> bool:
        """Case-insensitive substring match on the sensor name."""
        if self.kind != kind:
            return False
        if not name_pattern:
            return True
        return name_pattern.lower() in self.name.lower()


def mean_of(values: list[float | None]) -> float | None:
    """Average the finite values, or None if there are none."""
    finite = [v for v in values if v is not None and math.isfinite(v)]
    if not finite:
        return None
    return sum(finite) / len(finite)


class SensorGateway(ABC):
    """Abstract read access to hardware and sensors."""

    def open(self) -> None:
        """Prepare the gateway for use. Raises FatalInitError on total failure."""

    def close(self) -> None:
        """Release any handles held by the gateway."""

    @abstractmethod
    def list_hardware(self, kind: HardwareKind) -> list[HardwareRef]:
        """Return all hardware of ``kind`` in a stable order."""

    @abstractmethod
    def get_mainboard(self) -> HardwareRef | None:
        """Return the mainboard, if one is known."""

    @abstractmethod
    def get_sensor_readings(
        self,
        hardware_id: str,
        sensor_kind: SensorKind,
        name_pattern: str | None = None,
    ) -> list[SensorReading]:
        """Return sensors on ``hardware_id`` of ``sensor_kind`` matching the pattern.

        An empty or None pattern matches every sensor of that kind.
        """

    @abstractmethod
    def capture(self) -> SensorSnapshot:
        """Refresh all sensors and return an immutable snapshot of them."""

    def get_sensor_value(
        self,
        hardware_id: str,
        sensor_kind: SensorKind,
        name_pattern: str | None = None,
    ) -> float | None:
        """Mean value of the matching sensors, or None if none have a value."""
        readings = self.get_sensor_readings(hardware_id, sensor_kind, name_pattern)
        return mean_of([r.value for r in readings])

    def find_sensor_value(
        self, sensor_kind: SensorKind, name_pattern: str
    ) -> float | None:
        """First matching value across all hardware, mainboard last."""
        candidates: list[HardwareRef] = []
        for kind in HardwareKind:
            if kind != HardwareKind.MAINBOARD:
                candidates.extend(self.list_hardware(kind))
        mainboard = self.get_mainboard()
        if mainboard is not None:
            candidates.append(mainboard)

        for hardware in candidates:
            value = self.get_sensor_value(hardware.id, sensor_kind, name_pattern)
            if value is not None:
                return value
        return None
