"""Data models for power estimation output and persisted samples."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from wattmon.utils.clock import parse_timestamp


class ComponentKind(str, Enum):
    """Kinds of physical unit reported in a component set."""

    PROCESSOR = "processor"
    GRAPHICS = "graphics"
    MEMORY = "memory"
    MOTHERBOARD = "motherboard"
    STORAGE = "storage"
    PSU = "psu"


@dataclass(frozen=True)
class ComponentReading:
    """Power and telemetry figures for one monitored unit.

    Attributes:
        id: Stable identifier within a component set (e.g. "cpu", "gpu0").
        name: Display name.
        kind: Component kind.
        model: Hardware model name, or a placeholder label.
        power_watts: Measured or estimated power draw in watts.
        tdp_watts: Thermal design power used by the estimate, if any.
        utilization_pct: Load percentage, if known.
        temperature_c: Temperature in Celsius, if known.
        clock_mhz: Clock speed in MHz, if known.
        mem_used_mb: Used memory in MB (RAM and GPUs).
        mem_total_mb: Total memory in MB (RAM and GPUs).
        fan_rpm: Fan speed, if known.
        voltage: Core voltage, if known.
    """

    id: str
    name: str
    kind: ComponentKind
    model: str
    power_watts: float
    tdp_watts: float | None = None
    utilization_pct: float | None = None
    temperature_c: float | None = None
    clock_mhz: float | None = None
    mem_used_mb: float | None = None
    mem_total_mb: float | None = None
    fan_rpm: float | None = None
    voltage: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "model": self.model,
            "power_watts": round(self.power_watts, 3),
            "tdp_watts": self.tdp_watts,
            "utilization_pct": self.utilization_pct,
            "temperature_c": self.temperature_c,
            "clock_mhz": self.clock_mhz,
            "mem_used_mb": self.mem_used_mb,
            "mem_total_mb": self.mem_total_mb,
            "fan_rpm": self.fan_rpm,
            "voltage": self.voltage,
        }


@dataclass(frozen=True)
class PowerSample:
    """One persisted point of the power time series.

    ``accumulated_kwh`` is the running energy total at the moment the sample
    was created, not an increment.
    """

    timestamp: datetime
    power_watts: float
    accumulated_kwh: float
    session_id: str
    cpu_util_pct: float = 0.0
    gpu_util_pct: float = 0.0
    mem_util_pct: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "power_watts": self.power_watts,
            "accumulated_kwh": self.accumulated_kwh,
            "session_id": self.session_id,
            "cpu_util_pct": self.cpu_util_pct,
            "gpu_util_pct": self.gpu_util_pct,
            "mem_util_pct": self.mem_util_pct,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PowerSample:
        """Create a PowerSample from a dictionary."""
        return cls(
            timestamp=parse_timestamp(data["timestamp"]),
            power_watts=float(data["power_watts"]),
            accumulated_kwh=float(data["accumulated_kwh"]),
            session_id=data["session_id"],
            cpu_util_pct=float(data.get("cpu_util_pct", 0.0)),
            gpu_util_pct=float(data.get("gpu_util_pct", 0.0)),
            mem_util_pct=float(data.get("mem_util_pct", 0.0)),
        )


@dataclass(frozen=True)
class PowerEstimate:
    """Result of estimating power for one hardware snapshot."""

    total_power_watts: float
    components: tuple[ComponentReading, ...]
    cpu_util_pct: float = 0.0
    gpu_util_pct: float = 0.0
    mem_util_pct: float = 0.0

    def get_component(self, component_id: str) -> ComponentReading | None:
        """Look up a component reading by id."""
        for component in self.components:
            if component.id == component_id:
                return component
        return None

    def by_kind(self, kind: ComponentKind) -> list[ComponentReading]:
        """Return all readings of a given kind, in report order."""
        return [c for c in self.components if c.kind == kind]
