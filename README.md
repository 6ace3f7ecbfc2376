# flynats

`flynats` holds the building blocks for running a NATS node on a Fly.io
machine: named health checks and suites of them, checks of the virtual
machine's load, pressure stall and disk figures, lookups on the private
IPv6 network's internal DNS, and a child process run on its own
pseudo-terminal with its output prefixed by a coloured name.

It is a library; it installs no command.

## Installing

```
pip install .
```

Running the tests needs the `test` extra:

```
pip install ".[test]"
pytest
```

## Checks

`flynats.check` has `Check` and `CheckSuite`. A check function takes no
arguments and returns a message on success; raising an exception marks
the check as failed.

```python
from flynats.check import CheckSuite

suite = CheckSuite("disk")
suite.add_check("space", lambda: "plenty")
suite.process()
print(suite.passed())      # True
print(suite.result())      # [✓] space: plenty (…)
print(suite.raw_result())  # plenty
```

- `CheckSuite.process()` runs the checks in order, then calls the suite's
  `on_completion` hook, at most once per suite.
- `CheckSuite.process_with_timeout(timeout)` runs them in a background
  thread and returns `True` if they finished within `timeout` seconds.
  A check still running shows as `Timed out` in `result()`, a check not
  yet started as `Not processed`, and neither counts as passed.
- `CheckSuite.print()` writes the results and the total time to standard
  output, or says that the suite is not processed or has no checks.

`round_duration(seconds, digits)` rounds a duration to `digits` decimals
of its largest unit (seconds, milliseconds or microseconds), and
`format_duration(seconds)` renders one as `1.5s`, `2m3s` or `250µs`.

## Machine checks

`flynats.vmcheck.check_vm(suite)` adds to a suite the check `checkLoad`
and one pressure check each for `memory`, `cpu` and `io`:

- `check_load(path=None)` reads `/proc/loadavg` and fails when the 1, 5
  or 10 minute average per CPU is above 10, 4 or 2.
- `check_pressure(name, path=None)` reads `/proc/pressure/<name>` and
  fails when any of the 10, 60 or 300 second averages is above ten
  percent.
- `check_disk(directory)` fails when less than ten percent of the file
  system is available; it is not added by `check_vm`.

`data_size(size)` formats a byte count with binary multiples
(`1.5 KB`), `round_half(value, round_on, places)` rounds with a chosen
threshold, and `pressure_to_duration(pressure, base)` turns a percentage
of a window into seconds.

## Private network

`flynats.privnet` queries the nameserver in `FLY_NAMESERVER`, or
`fdaa::3` when it is unset, on port 53:

- `get_regions(app_name)` splits the TXT records of
  `regions.<app>.internal` on commas.
- `get_6pn(hostname)` returns the addresses of a host, adding this
  machine's own `fly-local-6pn` address if it is missing;
  `all_peers(app_name)` does this for `<app>.internal`.
- `private_ipv6()` resolves `fly-local-6pn` through the system resolver
  and falls back to `127.0.0.1` when the name is unknown.

## Supervised processes

`flynats.supervisor.process.Process` runs one command in a new session
on a pseudo-terminal; `flynats.supervisor.output.MultiOutput` prints
every line it writes with its name, padded to the longest connected
name, in its colour.

```python
from flynats.supervisor.output import MultiOutput
from flynats.supervisor.process import Process, with_env

output = MultiOutput()
proc = Process("greeter", ["sh", "-c", "echo hello"], output, color=3)
with_env({"GREETING": "hello"})(proc)
output.connect(proc)
proc.run()
```

`run()` waits for the command and reports whether it exited cleanly, with
a status, or on a signal. `interrupt()` sends the process group its stop
signal (`SIGINT` unless set with `with_stop_signal`) and `kill()` sends
`SIGKILL`. `with_root_dir` sets the working directory. Children still
running when the interpreter exits are killed.

`flynats.response` prints `Response` objects as one JSON line and exits
with status 0 (`write_output`, `write_error`).

## What it does not do

The package does not write the NATS configuration file, does not start
or reload `nats-server`, and has no command to boot a node. `Process.run`
runs its command once: the settings recorded by `with_restart` are not
acted on, and there is nothing that runs several processes together,
restarts them or stops them on a signal. No HTTP server for the health
checks is included; suites have to be run and reported by the caller.