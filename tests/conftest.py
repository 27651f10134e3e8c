"""Shared fixtures for wattmon tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from io import StringIO

import pytest

from wattmon.models.config_models import PowerConfig
from wattmon.sensors.base import HardwareKind, HardwareRef, SensorKind, SensorReading
from wattmon.sensors.snapshot import SensorSnapshot
from wattmon.storage.json_store import JsonStore
from wattmon.utils.logger import Logger

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def configured_logger():
    """Components fetch their logger at construction; keep logging configured."""
    if not Logger.is_configured():
        Logger.configure(level="DEBUG", output=StringIO(), timestamps=False)


class FakeClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime = T0, step: timedelta = timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + self.step
        return current


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path):
    """Create a store backed by a temporary directory."""
    return JsonStore(base_dir=tmp_path / "data")


@pytest.fixture
def power_config():
    return PowerConfig(electricity_rate=1445.0, sample_interval_seconds=5.0)


def _cpu_only(load: float = 50.0, package_watts: float | None = None):
    hardware = [HardwareRef("cpu/0", "Test CPU", HardwareKind.CPU)]
    readings = [SensorReading("cpu/0", SensorKind.LOAD, "CPU Total", load)]
    if package_watts is not None:
        readings.append(
            SensorReading("cpu/0", SensorKind.POWER, "CPU Package", package_watts)
        )
    return SensorSnapshot.build(hardware, readings)


@pytest.fixture
def cpu_snapshot():
    """Factory for a machine with one CPU and nothing else."""
    return _cpu_only


@pytest.fixture
def desktop_snapshot():
    """A desktop with a CPU, one NVIDIA GPU, RAM, mainboard, SSD and HDD."""
    gpu = "gpu-nvidia/0"
    hardware = [
        HardwareRef("cpu/0", "Ryzen 7 5800X", HardwareKind.CPU),
        HardwareRef("gpu-nvidia/0", "RTX 3070", HardwareKind.GPU_NVIDIA),
        HardwareRef("ram/0", "Generic Memory", HardwareKind.RAM),
        HardwareRef("mainboard/0", "ASUS PRIME X570-P", HardwareKind.MAINBOARD),
        HardwareRef("storage/0", "Samsung SSD 970 EVO", HardwareKind.STORAGE),
        HardwareRef("storage/1", "WDC WD10EZEX", HardwareKind.STORAGE),
    ]
    readings = [
        SensorReading("cpu/0", SensorKind.LOAD, "CPU Total", 25.0),
        SensorReading("cpu/0", SensorKind.TEMPERATURE, "CPU Package", 55.0),
        SensorReading("cpu/0", SensorKind.CLOCK, "CPU Core", 3800.0),
        SensorReading(gpu, SensorKind.LOAD, "GPU Core", 50.0),
        SensorReading(gpu, SensorKind.TEMPERATURE, "GPU Core", 61.0),
        SensorReading(gpu, SensorKind.POWER, "GPU Package", 120.0),
        SensorReading(gpu, SensorKind.SMALL_DATA, "GPU Memory Used", 2048.0),
        SensorReading(gpu, SensorKind.SMALL_DATA, "GPU Memory Total", 8192.0),
        SensorReading("ram/0", SensorKind.LOAD, "Memory", 40.0),
        SensorReading("ram/0", SensorKind.DATA, "Used Memory", 6.4),
        SensorReading("ram/0", SensorKind.DATA, "Available Memory", 9.6),
        SensorReading("mainboard/0", SensorKind.TEMPERATURE, "Temperature", 38.0),
        SensorReading("mainboard/0", SensorKind.TEMPERATURE, "PSU", 42.0),
        SensorReading("storage/0", SensorKind.LOAD, "Used Space", 70.0),
    ]
    return SensorSnapshot.build(hardware, readings)
