"""Live sensor gateway backed by psutil, Linux RAPL and NVML.

Sources used per hardware kind:
- CPU: psutil load/clock/temperature, package power from RAPL energy counters
- RAM: psutil virtual memory
- NVIDIA GPUs: pynvml (optional; absent drivers simply mean no GPUs)
- Mainboard: DMI identity from sysfs, ACPI temperature, psutil fans
- Storage: psutil partitions and usage, model names from sysfs

Anything a platform does not expose is left out of the snapshot, so the
estimator falls back to its defaults.
"""

from __future__ import annotations

import platform
import re
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import psutil

from wattmon.errors import FatalInitError
from wattmon.sensors.base import (
    HardwareKind,
    HardwareRef,
    SensorGateway,
    SensorKind,
    SensorReading,
)
from wattmon.sensors.snapshot import SensorSnapshot
from wattmon.utils.logger import Logger

try:
    import pynvml

    PYNVML_AVAILABLE = True
except ImportError:
    pynvml = None
    PYNVML_AVAILABLE = False

_GB = 1024**3
_MB = 1024**2

# Filesystems that never correspond to a physical drive
_VIRTUAL_FSTYPES = {"squashfs", "tmpfs", "devtmpfs", "overlay", "iso9660"}

_BLOCK_NAME = re.compile(r"^(nvme\d+n\d+|mmcblk\d+|[a-z]+)")


class RaplCounter:
    """CPU package power from RAPL ``energy_uj`` counters.

    Power is the energy delta between two reads divided by the elapsed time,
    so the first read only establishes a baseline and returns None.
    Only top-level package zones (``intel-rapl:N``) are summed; subzones such
    as ``intel-rapl:0:0`` are already included in their package.
    """

    def __init__(self, powercap_path: Path = Path("/sys/class/powercap")) -> None:
        self._zones: list[tuple[Path, int]] = []
        self._last_energy: list[int] | None = None
        self._last_time: float | None = None

        try:
            candidates = sorted(powercap_path.glob("*-rapl:*"))
        except OSError:
            candidates = []

        for zone in candidates:
            if zone.name.count(":") != 1:
                continue
            energy_file = zone / "energy_uj"
            if not energy_file.exists():
                continue
            self._zones.append((energy_file, self._read_max_range(zone)))

    @staticmethod
    def _read_max_range(zone: Path) -> int:
        try:
            return int((zone / "max_energy_range_uj").read_text().strip())
        except (OSError, ValueError):
            return 0

    @property
    def available(self) -> bool:
        """True if at least one package zone was found."""
        return bool(self._zones)

    def read_watts(self) -> float | None:
        """Return average package power since the previous call, in watts."""
        if not self._zones:
            return None

        now = time.monotonic()
        try:
            readings = [int(path.read_text().strip()) for path, _ in self._zones]
        except (OSError, ValueError):
            return None

        power_w = None
        if self._last_energy is not None and self._last_time is not None:
            delta_e = 0
            for (_, max_range), current, last in zip(
                self._zones, readings, self._last_energy
            ):
                delta = current - last
                if delta < 0:
                    # Counter wrapped; add back this zone's range when known
                    delta = delta + max_range if max_range else 0
                delta_e += max(delta, 0)
            delta_t = now - self._last_time
            if delta_t > 0:
                power_w = (delta_e / 1_000_000.0) / delta_t

        self._last_energy = readings
        self._last_time = now
        return power_w


def _decode(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode(errors="ignore").strip()
    return str(value).strip()


def _block_name(device: str) -> str:
    """Disk name a partition device belongs to, e.g. nvme0n1 for nvme0n1p2."""
    base = device.rsplit("/", 1)[-1]
    match = _BLOCK_NAME.match(base)
    return match.group(1) if match else base


def _read_text(path: Path) -> str | None:
    try:
        text = path.read_text().strip()
    except OSError:
        return None
    return text or None


def _cpu_model_name() -> str:
    """Best-effort CPU model string."""
    cpuinfo = _read_text(Path("/proc/cpuinfo"))
    if cpuinfo:
        for line in cpuinfo.splitlines():
            if line.lower().startswith("model name"):
                return line.split(":", 1)[1].strip()
    return platform.processor() or ""


def _sensor_temperatures() -> dict[str, list[Any]]:
    reader = getattr(psutil, "sensors_temperatures", None)
    if reader is None:
        return {}
    try:
        return reader() or {}
    except (OSError, RuntimeError):
        return {}


def _sensor_fans() -> dict[str, list[Any]]:
    reader = getattr(psutil, "sensors_fans", None)
    if reader is None:
        return {}
    try:
        return reader() or {}
    except (OSError, RuntimeError):
        return {}


class PsutilSensorGateway(SensorGateway):
    """Sensor gateway reading the local machine.

    Args:
        include_gpu: Query NVIDIA GPUs through NVML when available.
        powercap_path: Root of the powercap sysfs tree (RAPL).
        dmi_path: Root of the DMI sysfs tree (mainboard identity).
        sys_block_path: Root of the block device sysfs tree (drive models).
    """

    def __init__(
        self,
        include_gpu: bool = True,
        powercap_path: Path = Path("/sys/class/powercap"),
        dmi_path: Path = Path("/sys/class/dmi/id"),
        sys_block_path: Path = Path("/sys/block"),
    ) -> None:
        self._include_gpu = include_gpu
        self._powercap_path = powercap_path
        self._dmi_path = dmi_path
        self._sys_block_path = sys_block_path
        self._rapl: RaplCounter | None = None
        self._nvml_ready = False
        self._snapshot = SensorSnapshot()
        self._log = Logger.get("sensors.psutil")

    def open(self) -> None:
        """Verify psutil can see a CPU and initialize optional sources.

        Raises:
            FatalInitError: If psutil cannot report any CPU.
        """
        try:
            cpu_count = psutil.cpu_count(logical=True)
        except Exception as exc:
            raise FatalInitError(f"Cannot query CPU via psutil: {exc}") from exc
        if not cpu_count:
            raise FatalInitError("psutil reported no CPUs")

        # First call only primes the utilization baseline
        psutil.cpu_percent(interval=None)

        self._rapl = RaplCounter(self._powercap_path)
        if self._rapl.available:
            self._rapl.read_watts()
            self._log.info("CPU package power available via RAPL")
        else:
            self._log.debug("RAPL unavailable; CPU power will be estimated")

        if self._include_gpu and PYNVML_AVAILABLE:
            try:
                pynvml.nvmlInit()
                self._nvml_ready = True
                self._log.info("NVML initialized for NVIDIA GPU sensors")
            except pynvml.NVMLError as exc:
                self._log.debug(f"NVML unavailable: {exc}")

    def close(self) -> None:
        if self._nvml_ready:
            try:
                pynvml.nvmlShutdown()
            except pynvml.NVMLError as exc:
                self._log.debug(f"NVML shutdown failed: {exc}")
            self._nvml_ready = False

    # -------------------------------------------------------------------------
    # SensorGateway lookups delegate to the last captured snapshot
    # -------------------------------------------------------------------------

    def list_hardware(self, kind: HardwareKind) -> list[HardwareRef]:
        return self._snapshot.list_hardware(kind)

    def get_mainboard(self) -> HardwareRef | None:
        return self._snapshot.get_mainboard()

    def get_sensor_readings(
        self,
        hardware_id: str,
        sensor_kind: SensorKind,
        name_pattern: str | None = None,
    ) -> list[SensorReading]:
        return self._snapshot.get_sensor_readings(
            hardware_id, sensor_kind, name_pattern
        )

    def capture(self) -> SensorSnapshot:
        """Read every source once and return a frozen snapshot."""
        hardware: list[HardwareRef] = []
        readings: list[SensorReading] = []
        temperatures = _sensor_temperatures()

        collectors: list[Callable[..., None]] = [
            self._collect_cpu,
            self._collect_ram,
            self._collect_nvidia,
            self._collect_mainboard,
            self._collect_storage,
        ]
        for collector in collectors:
            try:
                collector(hardware, readings, temperatures)
            except Exception as exc:
                self._log.debug(f"{collector.__name__} skipped: {exc}")

        self._snapshot = SensorSnapshot.build(hardware, readings)
        return self._snapshot

    # -------------------------------------------------------------------------
    # Collectors
    # -------------------------------------------------------------------------

    def _collect_cpu(
        self,
        hardware: list[HardwareRef],
        readings: list[SensorReading],
        temperatures: dict[str, list[Any]],
    ) -> None:
        ref = HardwareRef("cpu/0", _cpu_model_name(), HardwareKind.CPU)
        hardware.append(ref)

        readings.append(
            SensorReading(
                ref.id, SensorKind.LOAD, "CPU Total", psutil.cpu_percent(interval=None)
            )
        )

        freq = psutil.cpu_freq()
        if freq is not None and freq.current:
            readings.append(
                SensorReading(ref.id, SensorKind.CLOCK, "CPU Core", float(freq.current))
            )

        package_temp = self._cpu_package_temperature(temperatures)
        if package_temp is not None:
            readings.append(
                SensorReading(
                    ref.id, SensorKind.TEMPERATURE, "CPU Package", package_temp
                )
            )

        if self._rapl is not None:
            power = self._rapl.read_watts()
            if power is not None:
                readings.append(
                    SensorReading(ref.id, SensorKind.POWER, "CPU Package", power)
                )

    @staticmethod
    def _cpu_package_temperature(
        temperatures: dict[str, list[Any]],
    ) -> float | None:
        for entry in temperatures.get("coretemp", []):
            if entry.label.lower().startswith("package"):
                return float(entry.current)
        for chip in ("k10temp", "zenpower", "cpu_thermal"):
            entries = temperatures.get(chip, [])
            if entries:
                return float(entries[0].current)
        return None

    def _collect_ram(
        self,
        hardware: list[HardwareRef],
        readings: list[SensorReading],
        temperatures: dict[str, list[Any]],
    ) -> None:
        vm = psutil.virtual_memory()
        ref = HardwareRef("ram/0", "Generic Memory", HardwareKind.RAM)
        hardware.append(ref)
        used = (vm.total - vm.available) / _GB
        readings.extend(
            [
                SensorReading(ref.id, SensorKind.LOAD, "Memory", float(vm.percent)),
                SensorReading(ref.id, SensorKind.DATA, "Used Memory", used),
                SensorReading(
                    ref.id, SensorKind.DATA, "Available Memory", vm.available / _GB
                ),
            ]
        )

    def _nvml_value(self, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return fn(*args)
        except pynvml.NVMLError:
            return None

    def _collect_nvidia(
        self,
        hardware: list[HardwareRef],
        readings: list[SensorReading],
        temperatures: dict[str, list[Any]],
    ) -> None:
        if not self._nvml_ready:
            return

        count = self._nvml_value(pynvml.nvmlDeviceGetCount) or 0
        for index in range(count):
            handle = self._nvml_value(pynvml.nvmlDeviceGetHandleByIndex, index)
            if handle is None:
                continue

            name = self._nvml_value(pynvml.nvmlDeviceGetName, handle)
            ref = HardwareRef(
                f"gpu-nvidia/{index}",
                _decode(name) if name is not None else "",
                HardwareKind.GPU_NVIDIA,
            )
            hardware.append(ref)

            util = self._nvml_value(pynvml.nvmlDeviceGetUtilizationRates, handle)
            if util is not None:
                readings.append(
                    SensorReading(ref.id, SensorKind.LOAD, "GPU Core", float(util.gpu))
                )
                readings.append(
                    SensorReading(
                        ref.id, SensorKind.LOAD, "GPU Memory", float(util.memory)
                    )
                )

            temp = self._nvml_value(
                pynvml.nvmlDeviceGetTemperature, handle, pynvml.NVML_TEMPERATURE_GPU
            )
            if temp is not None:
                readings.append(
                    SensorReading(
                        ref.id, SensorKind.TEMPERATURE, "GPU Core", float(temp)
                    )
                )

            power_mw = self._nvml_value(pynvml.nvmlDeviceGetPowerUsage, handle)
            if power_mw is not None:
                readings.append(
                    SensorReading(
                        ref.id, SensorKind.POWER, "GPU Package", power_mw / 1000.0
                    )
                )

            clock = self._nvml_value(
                pynvml.nvmlDeviceGetClockInfo, handle, pynvml.NVML_CLOCK_GRAPHICS
            )
            if clock is not None:
                readings.append(
                    SensorReading(ref.id, SensorKind.CLOCK, "GPU Core", float(clock))
                )

            mem = self._nvml_value(pynvml.nvmlDeviceGetMemoryInfo, handle)
            if mem is not None:
                readings.append(
                    SensorReading(
                        ref.id, SensorKind.SMALL_DATA, "GPU Memory Used", mem.used / _MB
                    )
                )
                readings.append(
                    SensorReading(
                        ref.id,
                        SensorKind.SMALL_DATA,
                        "GPU Memory Total",
                        mem.total / _MB,
                    )
                )

    def _collect_mainboard(
        self,
        hardware: list[HardwareRef],
        readings: list[SensorReading],
        temperatures: dict[str, list[Any]],
    ) -> None:
        vendor = _read_text(self._dmi_path / "board_vendor")
        board = _read_text(self._dmi_path / "board_name")
        if not vendor and not board:
            return

        name = " ".join(part for part in (vendor, board) if part)
        ref = HardwareRef("mainboard/0", name, HardwareKind.MAINBOARD)
        hardware.append(ref)

        for entry in temperatures.get("acpitz", [])[:1]:
            readings.append(
                SensorReading(
                    ref.id, SensorKind.TEMPERATURE, "Temperature", float(entry.current)
                )
            )

        for chip, entries in _sensor_fans().items():
            for i, entry in enumerate(entries):
                label = entry.label or f"Fan #{i + 1}"
                readings.append(
                    SensorReading(
                        ref.id, SensorKind.FAN, f"{chip} {label}", float(entry.current)
                    )
                )

    def _drive_model(self, device: str) -> str:
        block = _block_name(device)
        model = _read_text(self._sys_block_path / block / "device" / "model")
        name = model or device
        if block.startswith("nvme") and "nvme" not in name.lower():
            name = f"NVMe {name}"
        return name

    def _collect_storage(
        self,
        hardware: list[HardwareRef],
        readings: list[SensorReading],
        temperatures: dict[str, list[Any]],
    ) -> None:
        seen: set[str] = set()
        index = 0
        nvme_temps = temperatures.get("nvme", [])

        for part in psutil.disk_partitions(all=False):
            if part.fstype in _VIRTUAL_FSTYPES or "loop" in part.device:
                continue
            block = _block_name(part.device)
            if block in seen:
                continue
            seen.add(block)

            ref = HardwareRef(
                f"storage/{index}", self._drive_model(part.device), HardwareKind.STORAGE
            )
            hardware.append(ref)
            index += 1

            try:
                usage = psutil.disk_usage(part.mountpoint)
                readings.append(
                    SensorReading(
                        ref.id, SensorKind.LOAD, "Used Space", float(usage.percent)
                    )
                )
            except OSError:
                pass

            if "nvme" in part.device and nvme_temps:
                readings.append(
                    SensorReading(
                        ref.id,
                        SensorKind.TEMPERATURE,
                        "Temperature",
                        float(nvme_temps[0].current),
                    )
                )
