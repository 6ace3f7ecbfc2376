"""JSON status lines written to standard output before exiting."""

from __future__ import annotations

import json
import sys
from dataclasses import asdict, dataclass
from typing import NoReturn


@dataclass
class Response:
    success: bool
    message: str
    data: str = ""

    def to_json(self) -> str:
        return json.dumps(asdict(self), separators=(",", ":"), ensure_ascii=False)


def _send(response: Response) -> NoReturn:
    print(response.to_json())
    sys.exit(0)


def write_error(err: BaseException) -> NoReturn:
    """Print a failure response for ``err`` and exit with status 0."""
    _send(Response(success=False, message=str(err)))


def write_output(message: str, data: str) -> NoReturn:
    """Print a success response and exit with status 0."""
    _send(Response(success=True, message=message, data=data))