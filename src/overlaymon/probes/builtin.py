"""Built-in probes and default probe chains.

Each metric gets a static, ordered list of probes: vendor tools and
precise sensors first, generic OS files last. Sources:

- psutil for portable CPU, memory, disk, battery, uptime, load and network data
- lm-sensors (`sensors`) for CPU temperature and fan speed
- nvidia-smi and rocm-smi for GPU temperature, utilization, fan, memory and power
- sysfs (/sys) and procfs (/proc) as last-resort Linux fallbacks
"""

from __future__ import annotations

from collections.abc import Callable
import glob
from pathlib import Path
import re
import time

import psutil

from overlaymon.errors import ProbeFailure
from overlaymon.models.base import Metric
from overlaymon.probes.base import (
    DEFAULT_PROBE_TIMEOUT,
    CallableProbe,
    CommandProbe,
    CounterRateProbe,
    FileProbe,
    Probe,
)
from overlaymon.probes.parsing import (
    first_line,
    parse_number,
    parse_pattern,
    parse_scaled,
    safe_percent,
)

# psutil sensor groups known to report CPU package/die temperature
CPU_SENSOR_NAMES = ("coretemp", "k10temp", "zenpower", "cpu_thermal", "cpu")

# Loopback interfaces are excluded from network rates
LOOPBACK_PREFIXES = ("lo",)

MIB = 1024 * 1024

# lm-sensors: AMD "Tctl"/"Tdie", Intel "Package id 0"
SENSORS_CPU_TEMP = re.compile(r"(?:Tctl|Tdie|Package id \d+):\s*\+?(-?\d+(?:[.,]\d+)?)")
SENSORS_FAN = re.compile(r"fan1:\s*(\d+(?:[.,]\d+)?)\s*RPM")

# top: "%Cpu(s):  2.3 us,  0.8 sy,  0.0 ni, 96.7 id, ..."
TOP_IDLE = re.compile(r"(\d+(?:[.,]\d+)?)\s*id\b")

PROC_CPUINFO_MHZ = re.compile(r"^cpu MHz\s*:\s*(\d+(?:[.,]\d+)?)", re.MULTILINE)
PROC_MEMINFO_FIELD = r"^{}:\s*(\d+)\s*kB"

ROCM_TEMP = re.compile(r"Temperature[^:\n]*\(C\):\s*(\d+(?:[.,]\d+)?)")
ROCM_USE = re.compile(r"GPU use \(%\):\s*(\d+(?:[.,]\d+)?)")
ROCM_FAN = re.compile(r"Fan Level:\s*\d+\s*\((\d+(?:[.,]\d+)?)%\)")
ROCM_POWER = re.compile(r"Graphics Package Power \(W\):\s*(\d+(?:[.,]\d+)?)")
ROCM_VRAM_TOTAL = re.compile(r"VRAM Total Memory \(B\):\s*(\d+)")
ROCM_VRAM_USED = re.compile(r"VRAM Total Used Memory \(B\):\s*(\d+)")

SYSFS_THERMAL_ZONE = "/sys/class/thermal/thermal_zone0/temp"
SYSFS_CPU_FREQ = "/sys/devices/system/cpu/cpu0/cpufreq/scaling_cur_freq"
SYSFS_GPU_HWMON = "/sys/class/drm/card*/device/hwmon/hwmon*"
SYSFS_GPU_BUSY = "/sys/class/drm/card*/device/gpu_busy_percent"
SYSFS_GPU_VRAM = "/sys/class/drm/card*/device/mem_info_vram_{}"
SYSFS_BATTERY = "/sys/class/power_supply/BAT*/capacity"


def nvidia_smi(query: str) -> list[str]:
    """Build an nvidia-smi command line for a CSV query without units."""
    return ["nvidia-smi", f"--query-gpu={query}", "--format=csv,noheader,nounits"]


# ============================================================================
# Text parsers
# ============================================================================


def parse_first_number(text: str) -> float:
    """Parse the number on the first line (first GPU for multi-GPU output)."""
    return parse_number(first_line(text))


def parse_millidegrees(text: str) -> float:
    """Parse a sysfs temperature in millidegrees Celsius."""
    return parse_scaled(text, 1000.0)


def parse_khz_to_mhz(text: str) -> float:
    """Parse a sysfs frequency in kHz as MHz."""
    return parse_scaled(text, 1000.0)


def parse_microwatts(text: str) -> float:
    """Parse a sysfs power reading in microwatts as watts."""
    return parse_scaled(text, 1_000_000.0)


def parse_sensors_cpu_temp(text: str) -> float:
    """Parse the CPU package temperature from `sensors` output."""
    return parse_pattern(text, SENSORS_CPU_TEMP)


def parse_sensors_fan(text: str) -> float:
    """Parse the first fan's RPM from `sensors` output."""
    return parse_pattern(text, SENSORS_FAN)


def parse_top_usage(text: str) -> float:
    """Parse CPU usage as 100 minus the idle share from `top -bn1` output."""
    for line in text.splitlines():
        if "Cpu(s)" in line:
            idle = parse_pattern(line, TOP_IDLE)
            return max(0.0, min(100.0, 100.0 - idle))
    raise ProbeFailure("No Cpu(s) line in top output")


def parse_cpuinfo_mhz(text: str) -> float:
    """Parse the first core's "cpu MHz" from /proc/cpuinfo."""
    return parse_pattern(text, PROC_CPUINFO_MHZ)


def parse_meminfo_usage(text: str) -> float:
    """Parse RAM usage percent from /proc/meminfo (MemTotal - MemAvailable)."""
    total = parse_pattern(text, re.compile(PROC_MEMINFO_FIELD.format("MemTotal"), re.MULTILINE))
    available = parse_pattern(
        text, re.compile(PROC_MEMINFO_FIELD.format("MemAvailable"), re.MULTILINE)
    )
    return safe_percent(total - available, total)


def parse_df_usage(text: str) -> float:
    """Parse the Use% column from the last line of `df -P` output."""
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        raise ProbeFailure("No filesystem line in df output")
    fields = lines[-1].split()
    if len(fields) < 5 or not fields[4].endswith("%"):
        raise ProbeFailure("Unexpected df output")
    return parse_number(fields[4])


def parse_nvidia_memory(text: str) -> tuple[float, float]:
    """Parse "used, total" MiB from nvidia-smi memory query output."""
    parts = [part.strip() for part in first_line(text).split(",")]
    if len(parts) != 2:
        raise ProbeFailure("Expected 'used, total' from nvidia-smi")
    return parse_number(parts[0]), parse_number(parts[1])


def parse_rocm_vram(text: str) -> tuple[float, float]:
    """Parse used/total VRAM bytes from rocm-smi and convert to MiB."""
    total = parse_pattern(text, ROCM_VRAM_TOTAL)
    used = parse_pattern(text, ROCM_VRAM_USED)
    return used / MIB, total / MIB


def parse_rocm_temp(text: str) -> float:
    """Parse the first GPU temperature from `rocm-smi --showtemp`."""
    return parse_pattern(text, ROCM_TEMP)


def parse_rocm_use(text: str) -> float:
    """Parse GPU utilization from `rocm-smi --showuse`."""
    return parse_pattern(text, ROCM_USE)


def parse_rocm_fan(text: str) -> float:
    """Parse fan speed percent from `rocm-smi --showfan`."""
    return parse_pattern(text, ROCM_FAN)


def parse_rocm_power(text: str) -> float:
    """Parse package power from `rocm-smi --showpower`."""
    return parse_pattern(text, ROCM_POWER)


def parse_uptime_seconds(text: str) -> float:
    """Parse seconds since boot from /proc/uptime."""
    return parse_number(text.split()[0])


def parse_loadavg(text: str) -> float:
    """Parse the 1-minute load average from /proc/loadavg."""
    return parse_number(text.split()[0])


def _procfs_net_bytes(column: int) -> float:
    """Sum a byte column of /proc/net/dev over non-loopback interfaces.

    Args:
        column: 0 for received bytes, 8 for transmitted bytes
    """
    lines = Path("/proc/net/dev").read_text().splitlines()[2:]
    total = 0.0
    found = False
    for line in lines:
        name, _, counters = line.partition(":")
        if name.strip().startswith(LOOPBACK_PREFIXES):
            continue
        fields = counters.split()
        if len(fields) > column:
            total += float(fields[column])
            found = True
    if not found:
        raise ProbeFailure("No interfaces in /proc/net/dev")
    return total


def procfs_bytes_recv() -> float:
    """Total received bytes from /proc/net/dev."""
    return _procfs_net_bytes(0)


def procfs_bytes_sent() -> float:
    """Total transmitted bytes from /proc/net/dev."""
    return _procfs_net_bytes(8)


def sysfs_gpu_vram() -> tuple[float, float]:
    """Read used/total VRAM in MiB from amdgpu sysfs."""
    used_paths = sorted(glob.glob(SYSFS_GPU_VRAM.format("used")))
    total_paths = sorted(glob.glob(SYSFS_GPU_VRAM.format("total")))
    if not used_paths or not total_paths:
        raise ProbeFailure("No amdgpu VRAM counters")
    used = parse_number(Path(used_paths[0]).read_text())
    total = parse_number(Path(total_paths[0]).read_text())
    return used / MIB, total / MIB


# ============================================================================
# psutil readers
# ============================================================================


def psutil_cpu_temp() -> float:
    """Read the CPU temperature from psutil's sensor groups."""
    # sensors_temperatures is missing on macOS/Windows; AttributeError means unavailable
    readings = psutil.sensors_temperatures()
    for name in CPU_SENSOR_NAMES:
        entries = readings.get(name)
        if entries:
            return entries[0].current
    for name, entries in readings.items():
        if "cpu" in name.lower() and entries:
            return entries[0].current
    raise ProbeFailure("No CPU temperature sensor")


def psutil_cpu_usage() -> Callable[[], float]:
    """Build a reader for system-wide CPU usage since its previous call.

    cpu_percent(interval=None) measures against the previous call, so the
    first call has no baseline and its 0.0 is discarded as unavailable.
    """
    primed = False

    def read() -> float:
        nonlocal primed
        usage = psutil.cpu_percent(interval=None)
        if not primed:
            primed = True
            raise ProbeFailure("No baseline sample yet")
        return usage

    read.__name__ = "psutil_cpu_usage"
    return read


def psutil_cpu_freq() -> float:
    """Read the current CPU frequency in MHz."""
    freq = psutil.cpu_freq()
    if freq is None or freq.current <= 0:
        raise ProbeFailure("CPU frequency not reported")
    return freq.current


def psutil_cpu_fan() -> float:
    """Read the first fan's speed in RPM."""
    fans = psutil.sensors_fans()
    for entries in fans.values():
        if entries:
            return entries[0].current
    raise ProbeFailure("No fan sensors")


def psutil_ram_usage() -> float:
    """Read RAM usage percent (total - available over total)."""
    mem = psutil.virtual_memory()
    return safe_percent(mem.total - mem.available, mem.total)


def psutil_battery() -> float:
    """Read the battery charge percent."""
    battery = psutil.sensors_battery()
    if battery is None:
        raise ProbeFailure("No battery")
    return battery.percent


def psutil_uptime() -> float:
    """Read seconds since boot."""
    seconds = time.time() - psutil.boot_time()
    if seconds < 0:
        raise ProbeFailure("Boot time is in the future")
    return seconds


def psutil_load_avg() -> float:
    """Read the 1-minute load average."""
    return psutil.getloadavg()[0]


def _psutil_net_counters() -> list:
    counters = psutil.net_io_counters(pernic=True)
    nics = [c for name, c in counters.items() if not name.startswith(LOOPBACK_PREFIXES)]
    if not nics:
        raise ProbeFailure("No network interfaces")
    return nics


def psutil_bytes_recv() -> float:
    """Total received bytes over non-loopback interfaces."""
    return float(sum(c.bytes_recv for c in _psutil_net_counters()))


def psutil_bytes_sent() -> float:
    """Total transmitted bytes over non-loopback interfaces."""
    return float(sum(c.bytes_sent for c in _psutil_net_counters()))


def psutil_disk_usage(path: str) -> Callable[[], float]:
    """Build a reader for the usage percent of the filesystem holding path."""

    def read() -> float:
        usage = psutil.disk_usage(path)
        return safe_percent(usage.used, usage.used + usage.free)

    read.__name__ = "psutil_disk_usage"
    return read


# ============================================================================
# Default chains
# ============================================================================


def build_default_chains(
    disk_path: str = "/",
    timeout: float = DEFAULT_PROBE_TIMEOUT,
) -> dict[Metric, list[Probe]]:
    """Declare the default probe order for every metric.

    Args:
        disk_path: Mount point whose usage feeds the disk metric
        timeout: Default timeout for every probe

    Returns:
        Mapping of metric to probes in priority order
    """
    t = timeout
    return {
        Metric.CPU_TEMP: [
            CommandProbe(Metric.CPU_TEMP, ["sensors"], parse_sensors_cpu_temp, timeout=t),
            CallableProbe(Metric.CPU_TEMP, psutil_cpu_temp, timeout=t),
            FileProbe(Metric.CPU_TEMP, SYSFS_THERMAL_ZONE, parse_millidegrees, timeout=t),
        ],
        Metric.CPU_USAGE: [
            CallableProbe(Metric.CPU_USAGE, psutil_cpu_usage(), timeout=t),
            CommandProbe(Metric.CPU_USAGE, ["top", "-bn1"], parse_top_usage, timeout=t),
        ],
        Metric.CPU_FREQ: [
            CallableProbe(Metric.CPU_FREQ, psutil_cpu_freq, timeout=t),
            FileProbe(Metric.CPU_FREQ, "/proc/cpuinfo", parse_cpuinfo_mhz, timeout=t),
            FileProbe(Metric.CPU_FREQ, SYSFS_CPU_FREQ, parse_khz_to_mhz, timeout=t),
        ],
        Metric.CPU_FAN: [
            CommandProbe(Metric.CPU_FAN, ["sensors"], parse_sensors_fan, timeout=t),
            CallableProbe(Metric.CPU_FAN, psutil_cpu_fan, timeout=t),
        ],
        Metric.GPU_TEMP: [
            CommandProbe(
                Metric.GPU_TEMP, nvidia_smi("temperature.gpu"), parse_first_number, timeout=t
            ),
            CommandProbe(Metric.GPU_TEMP, ["rocm-smi", "--showtemp"], parse_rocm_temp, timeout=t),
            FileProbe(
                Metric.GPU_TEMP, f"{SYSFS_GPU_HWMON}/temp1_input", parse_millidegrees, timeout=t
            ),
        ],
        Metric.GPU_USAGE: [
            CommandProbe(
                Metric.GPU_USAGE, nvidia_smi("utilization.gpu"), parse_first_number, timeout=t
            ),
            CommandProbe(Metric.GPU_USAGE, ["rocm-smi", "--showuse"], parse_rocm_use, timeout=t),
            FileProbe(Metric.GPU_USAGE, SYSFS_GPU_BUSY, parse_number, timeout=t),
        ],
        Metric.GPU_FAN: [
            CommandProbe(Metric.GPU_FAN, nvidia_smi("fan.speed"), parse_first_number, timeout=t),
            CommandProbe(Metric.GPU_FAN, ["rocm-smi", "--showfan"], parse_rocm_fan, timeout=t),
        ],
        Metric.GPU_MEM: [
            CommandProbe(
                Metric.GPU_MEM,
                nvidia_smi("memory.used,memory.total"),
                parse_nvidia_memory,
                timeout=t,
            ),
            CommandProbe(
                Metric.GPU_MEM,
                ["rocm-smi", "--showmeminfo", "vram"],
                parse_rocm_vram,
                timeout=t,
            ),
            CallableProbe(Metric.GPU_MEM, sysfs_gpu_vram, timeout=t),
        ],
        Metric.GPU_POWER: [
            CommandProbe(
                Metric.GPU_POWER, nvidia_smi("power.draw"), parse_first_number, timeout=t
            ),
            CommandProbe(
                Metric.GPU_POWER, ["rocm-smi", "--showpower"], parse_rocm_power, timeout=t
            ),
            FileProbe(
                Metric.GPU_POWER, f"{SYSFS_GPU_HWMON}/power1_average", parse_microwatts, timeout=t
            ),
        ],
        Metric.RAM_USAGE: [
            CallableProbe(Metric.RAM_USAGE, psutil_ram_usage, timeout=t),
            FileProbe(Metric.RAM_USAGE, "/proc/meminfo", parse_meminfo_usage, timeout=t),
        ],
        Metric.DISK_USAGE: [
            CallableProbe(Metric.DISK_USAGE, psutil_disk_usage(disk_path), timeout=t),
            CommandProbe(Metric.DISK_USAGE, ["df", "-P", disk_path], parse_df_usage, timeout=t),
        ],
        Metric.BATTERY: [
            CallableProbe(Metric.BATTERY, psutil_battery, timeout=t),
            FileProbe(Metric.BATTERY, SYSFS_BATTERY, parse_number, timeout=t),
        ],
        Metric.UPTIME: [
            CallableProbe(Metric.UPTIME, psutil_uptime, timeout=t),
            FileProbe(Metric.UPTIME, "/proc/uptime", parse_uptime_seconds, timeout=t),
        ],
        Metric.NET_DOWN: [
            CounterRateProbe(Metric.NET_DOWN, psutil_bytes_recv, timeout=t),
            CounterRateProbe(Metric.NET_DOWN, procfs_bytes_recv, timeout=t),
        ],
        Metric.NET_UP: [
            CounterRateProbe(Metric.NET_UP, psutil_bytes_sent, timeout=t),
            CounterRateProbe(Metric.NET_UP, procfs_bytes_sent, timeout=t),
        ],
        Metric.LOAD_AVG: [
            CallableProbe(Metric.LOAD_AVG, psutil_load_avg, timeout=t),
            FileProbe(Metric.LOAD_AVG, "/proc/loadavg", parse_loadavg, timeout=t),
        ],
    }
