"""Named health checks, suites of checks and duration helpers."""

from __future__ import annotations

import json
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

_DIVS = (1, 10, 100, 1000)
_MICROSECOND = 1_000
_MILLISECOND = 1_000_000
_SECOND = 1_000_000_000


def round_duration(seconds: float, digits: int) -> float:
    """Round a duration to ``digits`` decimals of its largest unit (s, ms or µs)."""
    ns = round(seconds * 1e9)
    for unit in (_SECOND, _MILLISECOND, _MICROSECOND):
        if ns > unit:
            multiple = unit // _DIVS[digits]
            quotient, remainder = divmod(ns, multiple)
            ns = (quotient + (2 * remainder >= multiple)) * multiple
            break
    return ns / 1e9


def _with_fraction(value: int, precision: int) -> str:
    whole, fraction = divmod(value, 10**precision)
    if not fraction:
        return str(whole)
    return f"{whole}." + f"{fraction:0{precision}d}".rstrip("0")


def format_duration(seconds: float) -> str:
    """Render a duration as ``1.5s``, ``2m3s`` or ``250µs``."""
    ns = round(seconds * 1e9)
    sign = "-" if ns < 0 else ""
    ns = abs(ns)
    if ns == 0:
        return "0s"
    if ns < _MICROSECOND:
        return f"{sign}{ns}ns"
    if ns < _MILLISECOND:
        return sign + _with_fraction(ns, 3) + "µs"
    if ns < _SECOND:
        return sign + _with_fraction(ns, 6) + "ms"
    total_seconds, fraction = divmod(ns, _SECOND)
    text = _with_fraction(total_seconds % 60 * _SECOND + fraction, 9) + "s"
    minutes, hours = total_seconds // 60 % 60, total_seconds // 3600
    if hours:
        text = f"{hours}h{minutes}m" + text
    elif minutes:
        text = f"{minutes}m" + text
    return sign + text


CheckFunction = Callable[[], str]


@dataclass(eq=False)
class Check:
    """A named check. Its function returns a message, or raises to signal failure."""

    name: str
    check_func: CheckFunction
    _start: Optional[float] = field(default=None, init=False, repr=False)
    _end: Optional[float] = field(default=None, init=False, repr=False)
    _message: str = field(default="", init=False, repr=False)
    _error: Optional[BaseException] = field(default=None, init=False, repr=False)

    def process(self) -> None:
        self._start = time.monotonic()
        try:
            self._message = self.check_func()
        except Exception as exc:
            self._error = exc
        self._end = time.monotonic()

    def error(self) -> str:
        return "" if self._error is None else str(self._error)

    def passed(self) -> bool:
        return self._start is not None and self._end is not None and self._error is None

    def execution_time(self) -> float:
        """Seconds the check took, or has been running so far."""
        if self._start is None:
            return 0.0
        end = self._end if self._end is not None else time.monotonic()
        return round_duration(end - self._start, 2)

    def result(self) -> str:
        if self._start is None:
            return f"[-] {self.name}: Not processed"
        elapsed = format_duration(self.execution_time())
        if self._end is None:
            return f"[✗] {self.name}: Timed out ({elapsed})"
        if self.passed():
            return f"[✓] {self.name}: {self._message} ({elapsed})"
        return f"[✗] {self.name}: {self.error()} ({elapsed})"

    def raw_result(self) -> str:
        return self._message if self.passed() else self.error()


@dataclass(eq=False)
class CheckSuite:
    """An ordered collection of checks that are run together."""

    name: str
    checks: List[Check] = field(default_factory=list)
    on_completion: Optional[Callable[[], None]] = None
    err_on_setup: Optional[BaseException] = None
    _execution_time: float = field(default=0.0, init=False, repr=False)
    _processed: bool = field(default=False, init=False, repr=False)
    _clean: bool = field(default=False, init=False, repr=False)

    def process(self) -> None:
        """Run every check in order, then the completion hook (once per suite)."""
        start = time.monotonic()
        for check in self.checks:
            check.process()
        self._execution_time = round_duration(time.monotonic() - start, 2)
        self._processed = True
        if not self._clean:
            if self.on_completion is not None:
                self.on_completion()
            self._clean = True

    def process_with_timeout(self, timeout: float) -> bool:
        """Process in the background for at most ``timeout`` seconds; True if it finished."""
        worker = threading.Thread(target=self.process, daemon=True)
        worker.start()
        worker.join(timeout)
        return not worker.is_alive()

    def add_check(self, name: str, check_func: CheckFunction) -> Check:
        check = Check(name=name, check_func=check_func)
        self.checks.append(check)
        return check

    def passed(self) -> bool:
        return all(check.passed() for check in self.checks)

    def result(self) -> str:
        return "\n".join(check.result() for check in self.checks)

    def raw_result(self) -> str:
        return "\n".join(check.raw_result() for check in self.checks)

    def print(self) -> None:
        """Write the results, or the pending state, to standard output."""
        quoted = json.dumps(self.name, ensure_ascii=False)
        if self._processed:
            for check in self.checks:
                print(check.result())
            print(f"Total execution time of {quoted} checks: {format_duration(self._execution_time)}")
        elif self.checks:
            print(f"{quoted} hasn't been processed. {len(self.checks)} check(s) pending evaluation.")
        else:
            print(f"{quoted} has no checks to evaluate.")