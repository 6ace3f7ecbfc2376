import io
import os

import pytest

from flynats.supervisor.output import MultiOutput, fatal


class _Proc:
    def __init__(self, name, color):
        self.name = name
        self.color = color


def _output_with(*procs):
    stream = io.StringIO()
    output = MultiOutput(stream)
    for proc in procs:
        output.connect(proc)
    return output, stream


def test_format_line_pads_to_longest_name():
    short = _Proc("a", 2)
    long = _Proc("long", 3)
    output, _ = _output_with(short, long)
    assert output.format_line(short, "x") == "\033[1;38;5;2ma   \033[0m | x\n"


def test_longest_name_has_no_padding():
    short = _Proc("a", 2)
    long = _Proc("long", 3)
    output, _ = _output_with(short, long)
    assert output.format_line(long, "x").startswith("\033[1;38;5;3mlong\033[0m | ")
    assert output.max_name_length == len("long")


def test_write_line_writes_formatted_line():
    proc = _Proc("web", 4)
    output, stream = _output_with(proc)
    output.write_line(proc, "hello")
    assert stream.getvalue() == output.format_line(proc, "hello")


def test_write_err_is_red():
    proc = _Proc("web", 4)
    output, stream = _output_with(proc)
    output.write_err(proc, ValueError("boom"))
    assert stream.getvalue() == output.format_line(proc, "\033[0;31mboom\033[0m")


def test_pipe_output_echoes_terminal_lines():
    proc = _Proc("job", 5)
    output, stream = _output_with(proc)
    tty = output.pipe_output(proc)
    os.write(tty, b"first\nsecond")
    output.close_pipe(proc)
    expected = output.format_line(proc, "first") + output.format_line(proc, "second")
    assert stream.getvalue() == expected


def test_close_pipe_without_open_pipe_writes_nothing():
    proc = _Proc("idle", 6)
    output, stream = _output_with(proc)
    output.close_pipe(proc)
    output.close_pipe(_Proc("unknown", 2))
    assert stream.getvalue() == ""


def test_fatal_exits_with_message(capsys):
    with pytest.raises(SystemExit) as info:
        fatal("boom", 3)
    assert info.value.code == 1
    assert capsys.readouterr().err == "hivemind: boom 3\n"