"""Prefixed, coloured output of supervised processes, read through pseudo-terminals."""

from __future__ import annotations

import os
import pty
import sys
import threading
from typing import Any, Dict, NoReturn, Optional, TextIO, Tuple


def fatal(*args: Any) -> NoReturn:
    """Report an unrecoverable error on standard error and exit with status 1."""
    print("hivemind:", *args, file=sys.stderr)
    sys.exit(1)


def _width(name: str) -> int:
    return len(name.encode("utf-8"))


class MultiOutput:
    """Writes lines of several processes to one stream, each with a coloured name prefix."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.max_name_length = 0
        self._stream = stream
        self._lock = threading.Lock()
        self._pipes: Dict[Any, Optional[Tuple[int, threading.Thread]]] = {}

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def connect(self, proc: Any) -> None:
        self.max_name_length = max(self.max_name_length, _width(proc.name))
        self._pipes[proc] = None

    def pipe_output(self, proc: Any) -> int:
        """Open a pseudo-terminal for ``proc``, echo what it prints, return the terminal's fd."""
        try:
            master, slave = pty.openpty()
        except OSError as exc:
            fatal(exc)
        reader = threading.Thread(target=self._pump, args=(proc, master), daemon=True)
        self._pipes[proc] = (slave, reader)
        reader.start()
        return slave

    def _pump(self, proc: Any, master: int) -> None:
        pending = b""
        with os.fdopen(master, "rb", buffering=0) as source:
            while True:
                try:
                    chunk = source.read(4096)
                except OSError:
                    break
                if not chunk:
                    break
                *lines, pending = (pending + chunk).split(b"\n")
                for line in lines:
                    self._emit(proc, line)
        if pending:
            self._emit(proc, pending)

    def _emit(self, proc: Any, raw: bytes) -> None:
        self.write_line(proc, raw.removesuffix(b"\r").decode("utf-8", errors="replace"))

    def close_pipe(self, proc: Any) -> None:
        """Close the terminal of ``proc`` and let the remaining output drain."""
        pipe = self._pipes.get(proc)
        if pipe is None:
            return
        self._pipes[proc] = None
        slave, reader = pipe
        os.close(slave)
        reader.join(1.0)

    def format_line(self, proc: Any, line: str) -> str:
        padding = " " * max(0, self.max_name_length - _width(proc.name))
        return f"\033[1;38;5;{proc.color}m{proc.name}{padding}\033[0m | {line}\n"

    def write_line(self, proc: Any, line: str) -> None:
        text = self.format_line(proc, line)
        with self._lock:
            self.stream.write(text)
            self.stream.flush()

    def write_err(self, proc: Any, err: object) -> None:
        self.write_line(proc, f"\033[0;31m{err}\033[0m")