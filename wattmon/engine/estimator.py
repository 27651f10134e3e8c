"""Power estimation from hardware sensor snapshots.

Direct power sensors are preferred. When a CPU or GPU does not expose one,
power is modelled from its TDP and utilization; an idle chip still draws a
base fraction of its TDP:

    power = tdp * (base_fraction + (1 - base_fraction) * utilization / 100)

RAM, mainboard and storage rarely expose power sensors and use fixed small
models. The PSU is modelled as 10% overhead on everything else.
"""

from __future__ import annotations

from wattmon.models.config_models import PowerConfig
from wattmon.models.power_models import ComponentKind, ComponentReading, PowerEstimate
from wattmon.sensors.base import (
    GPU_KINDS,
    HardwareKind,
    HardwareRef,
    SensorGateway,
    SensorKind,
)

CPU_BASE_FRACTION = 0.3
GPU_BASE_FRACTION = 0.2

RAM_TDP_WATTS = 10.0
RAM_BASE_WATTS = 5.0
RAM_LOAD_WATTS = 5.0

MAINBOARD_TDP_WATTS = 25.0
MAINBOARD_POWER_WATTS = 15.0

SSD_TDP_WATTS = 5.0
SSD_POWER_WATTS = 2.0
HDD_TDP_WATTS = 8.0
HDD_POWER_WATTS = 4.0

PSU_OVERHEAD_FRACTION = 0.1


def tdp_model_power(
    tdp_watts: float, utilization_pct: float, base_fraction: float
) -> float:
    """Estimate chip power from TDP and utilization."""
    return tdp_watts * (base_fraction + (1 - base_fraction) * utilization_pct / 100)


def is_solid_state(model: str) -> bool:
    """Guess SSD vs spinning disk from the model name."""
    lowered = model.lower()
    return "ssd" in lowered or "nvme" in lowered


class PowerEstimator:
    """Turn a sensor snapshot into per-component readings and total power.

    The estimator is a pure function of its snapshot and the shared
    read-only PowerConfig. Missing sensors fall back to defaults and missing
    hardware yields a zero-power placeholder, so every estimate carries the
    same set of component kinds.

    Args:
        config: Power configuration (TDPs and baseline draw).
    """

    def __init__(self, config: PowerConfig) -> None:
        self._config = config

    @property
    def config(self) -> PowerConfig:
        return self._config

    def estimate(self, snapshot: SensorGateway) -> PowerEstimate:
        """Estimate power for every component in ``snapshot``.

        Args:
            snapshot: Any gateway; normally the frozen result of ``capture()``.

        Returns:
            PowerEstimate whose total is CPU + GPUs + configured base power.
        """
        cpu = self._cpu_reading(snapshot)
        gpus = self._gpu_readings(snapshot)
        ram = self._ram_reading(snapshot)
        mainboard = self._mainboard_reading(snapshot)
        storage = self._storage_readings(snapshot)

        components: list[ComponentReading] = [cpu, *gpus, ram, mainboard, *storage]
        components.append(self._psu_reading(snapshot, components))

        gpu_power = sum(g.power_watts for g in gpus)
        total = (
            cpu.power_watts + gpu_power + self._config.power_model.base_power_watts
        )

        gpu_utils = [g.utilization_pct or 0.0 for g in gpus]
        return PowerEstimate(
            total_power_watts=total,
            components=tuple(components),
            cpu_util_pct=cpu.utilization_pct or 0.0,
            gpu_util_pct=sum(gpu_utils) / len(gpu_utils) if gpu_utils else 0.0,
            mem_util_pct=ram.utilization_pct or 0.0,
        )

    # -------------------------------------------------------------------------
    # CPU / GPU
    # -------------------------------------------------------------------------

    def _cpu_reading(self, snapshot: SensorGateway) -> ComponentReading:
        tdp = self._config.power_model.cpu_tdp_watts
        cpus = snapshot.list_hardware(HardwareKind.CPU)
        if not cpus:
            return ComponentReading(
                id="cpu",
                name="CPU",
                kind=ComponentKind.PROCESSOR,
                model="Unknown CPU",
                power_watts=0.0,
                tdp_watts=tdp,
                utilization_pct=0.0,
            )

        cpu = cpus[0]
        utilization = snapshot.get_sensor_value(cpu.id, SensorKind.LOAD, "CPU Total")
        utilization = utilization if utilization is not None else 0.0

        power = snapshot.get_sensor_value(cpu.id, SensorKind.POWER, "Package")
        if power is None:
            power = tdp_model_power(tdp, utilization, CPU_BASE_FRACTION)

        return ComponentReading(
            id="cpu",
            name="CPU",
            kind=ComponentKind.PROCESSOR,
            model=cpu.name or "Unknown CPU",
            power_watts=power,
            tdp_watts=tdp,
            utilization_pct=utilization,
            temperature_c=snapshot.get_sensor_value(
                cpu.id, SensorKind.TEMPERATURE, "CPU Package"
            ),
            clock_mhz=snapshot.get_sensor_value(cpu.id, SensorKind.CLOCK, "Core"),
            voltage=snapshot.get_sensor_value(cpu.id, SensorKind.VOLTAGE, "Core"),
        )

    def _gpu_readings(self, snapshot: SensorGateway) -> list[ComponentReading]:
        tdp = self._config.power_model.gpu_tdp_watts
        gpus: list[HardwareRef] = []
        for kind in GPU_KINDS:
            gpus.extend(snapshot.list_hardware(kind))

        if not gpus:
            return [
                ComponentReading(
                    id="gpu",
                    name="GPU",
                    kind=ComponentKind.GRAPHICS,
                    model="Integrated/Unknown",
                    power_watts=0.0,
                    tdp_watts=tdp,
                    utilization_pct=0.0,
                )
            ]

        readings = []
        for index, gpu in enumerate(gpus):
            utilization = snapshot.get_sensor_value(
                gpu.id, SensorKind.LOAD, "GPU Core"
            )
            utilization = utilization if utilization is not None else 0.0

            power = snapshot.get_sensor_value(gpu.id, SensorKind.POWER, "Package")
            if power is None:
                power = tdp_model_power(tdp, utilization, GPU_BASE_FRACTION)

            readings.append(
                ComponentReading(
                    id=f"gpu{index}",
                    name=f"GPU {index}" if index > 0 else "GPU",
                    kind=ComponentKind.GRAPHICS,
                    model=gpu.name or "Unknown GPU",
                    power_watts=power,
                    tdp_watts=tdp,
                    utilization_pct=utilization,
                    temperature_c=snapshot.get_sensor_value(
                        gpu.id, SensorKind.TEMPERATURE, "GPU Core"
                    ),
                    clock_mhz=snapshot.get_sensor_value(
                        gpu.id, SensorKind.CLOCK, "GPU Core"
                    ),
                    mem_used_mb=snapshot.get_sensor_value(
                        gpu.id, SensorKind.SMALL_DATA, "GPU Memory Used"
                    ),
                    mem_total_mb=snapshot.get_sensor_value(
                        gpu.id, SensorKind.SMALL_DATA, "GPU Memory Total"
                    ),
                    fan_rpm=snapshot.get_sensor_value(
                        gpu.id, SensorKind.FAN, "GPU Fan"
                    ),
                )
            )
        return readings

    # -------------------------------------------------------------------------
    # Fixed-model components
    # -------------------------------------------------------------------------

    def _ram_reading(self, snapshot: SensorGateway) -> ComponentReading:
        modules = snapshot.list_hardware(HardwareKind.RAM)
        if not modules:
            return ComponentReading(
                id="ram",
                name="Memory",
                kind=ComponentKind.MEMORY,
                model="Unknown Memory",
                power_watts=0.0,
                tdp_watts=RAM_TDP_WATTS,
            )

        ram = modules[0]
        utilization = snapshot.get_sensor_value(ram.id, SensorKind.LOAD)
        utilization = utilization if utilization is not None else 0.0
        used_gb = snapshot.get_sensor_value(ram.id, SensorKind.DATA, "Used Memory")
        available_gb = snapshot.get_sensor_value(
            ram.id, SensorKind.DATA, "Available Memory"
        )
        total_gb = (used_gb or 0.0) + (available_gb or 0.0)

        return ComponentReading(
            id="ram",
            name="Memory",
            kind=ComponentKind.MEMORY,
            model=f"{total_gb:.1f}GB",
            power_watts=RAM_BASE_WATTS + RAM_LOAD_WATTS * utilization / 100,
            tdp_watts=RAM_TDP_WATTS,
            utilization_pct=utilization,
            mem_used_mb=used_gb * 1024 if used_gb is not None else None,
            mem_total_mb=total_gb * 1024 if total_gb > 0 else None,
        )

    def _mainboard_reading(self, snapshot: SensorGateway) -> ComponentReading:
        board = snapshot.get_mainboard()
        if board is None:
            return ComponentReading(
                id="mobo",
                name="Motherboard",
                kind=ComponentKind.MOTHERBOARD,
                model="Unknown Motherboard",
                power_watts=0.0,
                tdp_watts=MAINBOARD_TDP_WATTS,
            )

        return ComponentReading(
            id="mobo",
            name="Motherboard",
            kind=ComponentKind.MOTHERBOARD,
            model=board.name or "Unknown Motherboard",
            power_watts=MAINBOARD_POWER_WATTS,
            tdp_watts=MAINBOARD_TDP_WATTS,
            temperature_c=snapshot.get_sensor_value(
                board.id, SensorKind.TEMPERATURE, "Temperature"
            ),
            fan_rpm=snapshot.get_sensor_value(board.id, SensorKind.FAN),
        )

    def _storage_readings(self, snapshot: SensorGateway) -> list[ComponentReading]:
        drives = snapshot.list_hardware(HardwareKind.STORAGE)
        if not drives:
            return [
                ComponentReading(
                    id="storage",
                    name="Storage",
                    kind=ComponentKind.STORAGE,
                    model="Unknown Storage",
                    power_watts=0.0,
                    tdp_watts=SSD_TDP_WATTS,
                )
            ]

        readings = []
        for index, drive in enumerate(drives):
            model = drive.name or "Unknown Storage"
            ssd = is_solid_state(model)
            readings.append(
                ComponentReading(
                    id=f"storage{index}",
                    name="SSD" if ssd else "HDD",
                    kind=ComponentKind.STORAGE,
                    model=model,
                    power_watts=SSD_POWER_WATTS if ssd else HDD_POWER_WATTS,
                    tdp_watts=SSD_TDP_WATTS if ssd else HDD_TDP_WATTS,
                    utilization_pct=snapshot.get_sensor_value(
                        drive.id, SensorKind.LOAD, "Used Space"
                    ),
                    temperature_c=snapshot.get_sensor_value(
                        drive.id, SensorKind.TEMPERATURE, "Temperature"
                    ),
                )
            )
        return readings

    def _psu_reading(
        self, snapshot: SensorGateway, components: list[ComponentReading]
    ) -> ComponentReading:
        others = sum(c.power_watts for c in components)
        return ComponentReading(
            id="psu",
            name="Power Supply",
            kind=ComponentKind.PSU,
            model="Estimated",
            power_watts=others * PSU_OVERHEAD_FRACTION,
            temperature_c=snapshot.find_sensor_value(SensorKind.TEMPERATURE, "PSU"),
        )
