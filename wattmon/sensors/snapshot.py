"""Immutable, in-memory sensor gateway."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from wattmon.sensors.base import (
    HardwareKind,
    HardwareRef,
    SensorGateway,
    SensorKind,
    SensorReading,
)
from wattmon.utils.clock import utc_now


@dataclass(frozen=True)
class SensorSnapshot(SensorGateway):
    """Frozen copy of every hardware unit and sensor value at one instant.

    Live gateways return one of these from ``capture()`` so the estimator
    works on consistent data. A snapshot can also be built directly, which
    is how recorded or synthetic hardware is fed to the engine.
    """

    hardware: tuple[HardwareRef, ...] = ()
    readings: tuple[SensorReading, ...] = ()
    captured_at: datetime = field(default_factory=utc_now)

    @classmethod
    def build(
        cls,
        hardware: Iterable[HardwareRef],
        readings: Iterable[SensorReading],
    ) -> SensorSnapshot:
        """Create a snapshot from any iterables."""
        return cls(hardware=tuple(hardware), readings=tuple(readings))

    def list_hardware(self, kind: HardwareKind) -> list[HardwareRef]:
        return [h for h in self.hardware if h.kind == kind]

    def get_mainboard(self) -> HardwareRef | None:
        boards = self.list_hardware(HardwareKind.MAINBOARD)
        return boards[0] if boards else None

    def get_sensor_readings(
        self,
        hardware_id: str,
        sensor_kind: SensorKind,
        name_pattern: str | None = None,
    ) -> list[SensorReading]:
        return [
            r
            for r in self.readings
            if r.hardware_id == hardware_id and r.matches(sensor_kind, name_pattern)
        ]

    def capture(self) -> SensorSnapshot:
        return self
