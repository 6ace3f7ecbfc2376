"""Virtual machine health checks: load, pressure stall and disk space."""

from __future__ import annotations

import math
import os
import re
from typing import Optional

from flynats.check import CheckSuite, format_duration, round_duration

PRESSURE_NAMES = ("memory", "cpu", "io")
_FLOAT = r"([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)"
_LOADAVG = re.compile(
    rf"\s*{_FLOAT}\s+{_FLOAT}\s+{_FLOAT}\s+(\d+)/(\d+)\s+(\d+)"
)
_PRESSURE_FIELDS = ("some avg10=", " avg60=", " avg300=", " total=")
_SUFFIXES = ("B", "KB", "MB", "GB", "TB")


def check_vm(suite: CheckSuite) -> CheckSuite:
    """Add the load and pressure checks to ``suite`` and return it."""
    suite.add_check("checkLoad", check_load)
    for name in PRESSURE_NAMES:
        suite.add_check(name, lambda name=name: check_pressure(name))
    return suite


def _scan_pressure(text: str) -> list:
    """Read the leading pressure fields; missing or malformed ones stay zero."""
    values = [0.0, 0.0, 0.0, 0.0]
    position = 0
    for index, prefix in enumerate(_PRESSURE_FIELDS):
        if not text.startswith(prefix, position):
            break
        position += len(prefix)
        match = re.compile(_FLOAT).match(text, position)
        if match is None:
            break
        values[index] = float(match.group(1))
        position = match.end()
    return values


def pressure_to_duration(pressure: float, base: float) -> float:
    """Seconds spent stalled within ``base`` seconds at ``pressure`` percent."""
    return float(f"{base * (pressure / 100):f}")


def check_pressure(name: str, path: Optional[str] = None) -> str:
    """Fail if the pressure stall average for ``name`` exceeds ten percent."""
    path = path or f"/proc/pressure/{name}"
    with open(path, encoding="utf-8") as handle:
        avg10, avg60, avg300, _total = _scan_pressure(handle.read())

    def spent(pressure: float, base: float) -> str:
        return format_duration(round_duration(pressure_to_duration(pressure, base), 2))

    for average, window in ((avg10, 10), (avg60, 60), (avg300, 300)):
        if average > 10:
            raise RuntimeError(
                f"system spent {spent(average, window)} of the last "
                f"{window} seconds waiting on {name}"
            )
    return f"system spent {spent(avg60, 60)} of the last 60s waiting on {name}"


def check_load(path: Optional[str] = None) -> str:
    """Fail if the load averages per CPU are too high."""
    path = path or "/proc/loadavg"
    with open(path, encoding="utf-8") as handle:
        raw = handle.read()
    match = _LOADAVG.match(raw)
    if match is None:
        raise ValueError(f"unexpected load average format: {raw.strip()!r}")
    load1, load5, load10 = (float(match.group(i)) for i in (1, 2, 3))
    cpus = float(os.cpu_count() or 1)

    if load1 / cpus > 10:
        raise RuntimeError(f"1 minute load average is very high: {load1:.2f}")
    if load5 / cpus > 4:
        raise RuntimeError(f"5 minute load average is high: {load5:.2f}")
    if load10 / cpus > 2:
        raise RuntimeError(f"10 minute load average is high: {load10:.2f}")
    return f"load averages: {load10:.2f} {load5:.2f} {load1:.2f}"


def check_disk(directory: str) -> str:
    """Fail if less than ten percent of the filesystem is available."""
    try:
        stat = os.statvfs(directory)
    except OSError as exc:
        raise OSError(f"{directory}: {exc.strerror or exc}") from exc
    size = stat.f_blocks * stat.f_bsize
    available = stat.f_bavail * stat.f_bsize
    fraction = available / size
    message = f"{data_size(available)} ({fraction * 100:.1f}%) free space on {directory}"
    if fraction < 0.1:
        raise RuntimeError(message)
    return message


def round_half(value: float, round_on: float, places: int) -> float:
    """Round to ``places`` decimals, rounding up when the remainder reaches ``round_on``."""
    scale = 10.0**places
    digit = scale * value
    fraction, _ = math.modf(digit)
    rounded = math.ceil(digit) if fraction >= round_on else math.floor(digit)
    return rounded / scale


def _format_float(value: float) -> str:
    text = repr(value)
    return text[:-2] if text.endswith(".0") else text


def data_size(size: int) -> str:
    """Human readable byte count with binary multiples: ``1.5 KB``."""
    base = math.log(size) / math.log(1024)
    scaled = round_half(1024 ** (base - math.floor(base)), 0.5, 2)
    suffix = _SUFFIXES[int(math.floor(base))]
    return f"{_format_float(scaled)} {suffix}"