"""A supervised child process running in its own session on a pseudo-terminal."""

from __future__ import annotations

import atexit
import fcntl
import os
import signal
import subprocess
import termios
import weakref
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional

from flynats.supervisor.output import MultiOutput

Opt = Callable[["Process"], None]

# Children still running when the interpreter exits are killed with it.
_live: "weakref.WeakSet[Process]" = weakref.WeakSet()


def _signal_name(sig: int) -> str:
    text = signal.strsignal(sig) or f"signal {int(sig)}"
    return text[:1].lower() + text[1:]


def _acquire_terminal() -> None:
    try:
        fcntl.ioctl(0, termios.TIOCSCTTY, 0)
    except OSError:
        pass


def with_env(env: Mapping[str, str]) -> Opt:
    return lambda proc: proc.env.update(env)


def with_stop_signal(sig: int) -> Opt:
    def apply(proc: Process) -> None:
        proc.stop_signal = sig

    return apply


def with_root_dir(directory: str) -> Opt:
    def apply(proc: Process) -> None:
        proc.directory = directory

    return apply


def with_restart(limit: int, delay: float) -> Opt:
    """Restart after ``delay`` seconds when the process exits; a ``limit`` of 0 means forever."""

    def apply(proc: Process) -> None:
        proc.restart, proc.max_restarts, proc.restart_delay = True, limit, delay

    return apply


@dataclass(eq=False)
class Process:
    """A command run under supervision, its output shown through ``output``."""

    name: str
    argv: List[str]
    output: MultiOutput
    color: int = 2
    stop_signal: int = signal.SIGINT
    restart: bool = False
    restart_delay: float = 0.0
    max_restarts: int = 0
    directory: Optional[str] = None
    env: Dict[str, str] = field(default_factory=lambda: dict(os.environ))
    _popen: Optional[subprocess.Popen] = field(default=None, init=False, repr=False)

    def _signal(self, sig: int) -> None:
        if self._popen is None:
            return
        try:
            os.killpg(self._popen.pid, sig)
        except OSError as exc:
            self.output.write_err(self, exc)

    def running(self) -> bool:
        return self._popen is not None and self._popen.returncode is None

    def run(self) -> None:
        """Start the command and wait for it to exit, reporting how it ended."""
        tty = self.output.pipe_output(self)
        try:
            self.output.write_line(self, "\033[1mRunning...\033[0m")
            try:
                self._popen = subprocess.Popen(
                    self.argv,
                    stdin=tty,
                    stdout=tty,
                    stderr=tty,
                    cwd=self.directory,
                    env=self.env,
                    start_new_session=True,
                    preexec_fn=_acquire_terminal,
                )
            except (OSError, subprocess.SubprocessError) as exc:
                self.output.write_err(self, exc)
                return
            _live.add(self)
            status = self._popen.wait()
            if status == 0:
                self.output.write_line(self, f"\033[1mProcess exited {status}\033[0m")
            elif status < 0:
                self.output.write_err(self, f"signal: {_signal_name(-status)}")
            else:
                self.output.write_err(self, f"exit status {status}")
        finally:
            self._popen = None
            _live.discard(self)
            self.output.close_pipe(self)

    def interrupt(self) -> None:
        if self.running():
            self.output.write_line(self, f"\033[1mStopping {_signal_name(self.stop_signal)}...\033[0m")
            self._signal(self.stop_signal)

    def kill(self) -> None:
        if self.running():
            self.output.write_line(self, "\033[1mKilling...\033[0m")
            self._signal(signal.SIGKILL)


@atexit.register
def _kill_remaining() -> None:
    for proc in list(_live):
        popen = proc._popen
        if popen is not None and popen.returncode is None:
            try:
                os.killpg(popen.pid, signal.SIGKILL)
            except OSError:
                pass