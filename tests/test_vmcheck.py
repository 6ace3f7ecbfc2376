import pytest

from flynats.check import CheckSuite
from flynats.vmcheck import (
    check_disk,
    check_load,
    check_pressure,
    check_vm,
    data_size,
    pressure_to_duration,
    round_half,
)


def _write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text)
    return str(path)


def test_check_vm_adds_checks():
    suite = check_vm(CheckSuite("VM"))
    assert [c.name for c in suite.checks] == ["checkLoad", "memory", "cpu", "io"]


def test_check_vm_returns_same_suite():
    suite = CheckSuite("VM")
    assert check_vm(suite) is suite


def test_pressure_passes(tmp_path):
    path = _write(
        tmp_path,
        "memory",
        "some avg10=0.00 avg60=1.00 avg300=0.00 total=123\n"
        "full avg10=0.00 avg60=0.00 avg300=0.00 total=0\n",
    )
    assert check_pressure("memory", path) == (
        "system spent 600ms of the last 60s waiting on memory"
    )


@pytest.mark.parametrize(
    "line, window",
    [
        ("some avg10=50.00 avg60=0.00 avg300=0.00 total=1", "10"),
        ("some avg10=0.00 avg60=20.00 avg300=0.00 total=1", "60"),
        ("some avg10=0.00 avg60=0.00 avg300=30.00 total=1", "300"),
    ],
)
def test_pressure_fails(tmp_path, line, window):
    path = _write(tmp_path, "cpu", line)
    with pytest.raises(RuntimeError, match=f"of the last {window} seconds waiting on cpu"):
        check_pressure("cpu", path)


def test_pressure_malformed_reads_zero(tmp_path):
    path = _write(tmp_path, "io", "garbage")
    message = check_pressure("io", path)
    assert message.startswith("system spent 0s")
    assert message.endswith("waiting on io")


def test_pressure_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        check_pressure("memory", str(tmp_path / "absent"))


def test_load_passes(tmp_path):
    path = _write(tmp_path, "loadavg", "0.00 0.00 0.00 1/100 4321\n")
    assert check_load(path).startswith("load averages: ")


def test_load_order_is_ten_five_one(tmp_path):
    path = _write(tmp_path, "loadavg", "0.01 0.02 0.03 1/100 4321\n")
    assert check_load(path).split(": ")[1].split() == ["0.03", "0.02", "0.01"]


def test_load_very_high(tmp_path):
    path = _write(tmp_path, "loadavg", "99999.00 0.00 0.00 1/100 4321\n")
    with pytest.raises(RuntimeError, match="1 minute load average is very high: 99999.00"):
        check_load(path)


def test_load_five_minute_high(tmp_path):
    path = _write(tmp_path, "loadavg", "0.00 99999.00 0.00 1/100 4321\n")
    with pytest.raises(RuntimeError, match="5 minute load average is high"):
        check_load(path)


def test_load_malformed(tmp_path):
    path = _write(tmp_path, "loadavg", "not a load line")
    with pytest.raises(ValueError):
        check_load(path)


def test_disk_mentions_directory(tmp_path):
    directory = str(tmp_path)
    try:
        message = check_disk(directory)
    except RuntimeError as exc:
        message = str(exc)
    assert message.endswith(f"free space on {directory}")


def test_disk_missing_directory(tmp_path):
    missing = str(tmp_path / "nowhere")
    with pytest.raises(OSError, match="nowhere"):
        check_disk(missing)


def test_round_half():
    assert round_half(2.5, 0.5, 0) == 3.0
    assert round_half(2.4, 0.5, 0) == 2.0


def test_pressure_to_duration_scales_base():
    assert pressure_to_duration(100, 10.0) == 10.0
    assert pressure_to_duration(0, 300.0) == 0.0


def test_data_size():
    assert data_size(1) == "1 B"
    assert data_size(1024) == "1 KB"
    assert data_size(512).endswith(" B")


def test_data_size_zero_rejected():
    with pytest.raises(ValueError):
        data_size(0)