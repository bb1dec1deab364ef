# sigarstats

Read statistics about the host you are running on: load average, uptime,
memory, swap, CPU time, mounted file systems and their usage, running
processes and their resource usage, and the metrics and limits of Linux
control groups. It can also report fork, exec and exit events of watched
processes.

## Installation

```
pip install sigarstats
```

To run the test suite:

```
pip install "sigarstats[test]"
pytest
```

## Command line

The `sigarstats` command offers four reports:

```
sigarstats df        # mounted file systems: device, size, used, available, use%, mountpoint
sigarstats free      # memory and swap in kilobytes
sigarstats ps        # pid, ppid, start time, cpu time, rss, user, state and command of each process
sigarstats uptime    # current time, uptime and load averages
```

The same reports are available as `run_df`, `run_free`, `run_ps` and
`run_uptime` in `sigarstats.cli`; each takes an optional argument list and
returns an exit status.

## Host statistics

The functions in `sigarstats.host` return the records defined in
`sigarstats.types` (`Mem`, `Swap`, `Cpu`, `LoadAverage`, `Uptime`,
`FileSystemUsage`, `ProcState`, `ProcMem`, `ProcTime`, `Rusage` and others).
Where the operating system does not offer a statistic they raise
`NotImplementedOnPlatform`; `is_not_implemented(err)` tests for it. Process
functions raise `ProcessLookupError` for a pid that does not exist and
`PermissionError` when access is denied.

```python
from sigarstats import host
from sigarstats.formatting import format_size, format_percent, use_percent

mem = host.get_mem()
print(format_size(mem.total), format_size(mem.used), format_size(mem.free))

usage = host.get_file_system_usage("/")
print(format_percent(use_percent(usage)))

for pid in host.get_proc_list():
    try:
        state = host.get_proc_state(pid)
    except OSError:
        continue
    print(pid, state.name, state.state.value)
```

Also available: `get_load_average`, `get_uptime`, `get_swap`,
`get_huge_tlb_pages` (Linux), `get_cpu`, `get_cpu_list`, `get_fd_usage`
(Linux), `get_file_systems`, `get_proc_mem`, `get_proc_time`,
`get_proc_args`, `get_proc_env`, `get_proc_exe`, `get_proc_fd_usage` and
`get_rusage(who)` with 0 for this process, 1 for its children and 2 for the
calling thread. CPU and process times are in milliseconds.

`sigarstats.formatting` turns these into text: `format_size`,
`format_percent`, `use_percent`, `format_uptime`, `format_start_time` and
`format_total`.

## Sampling CPU usage

`ConcreteSigar.collect_cpu_stats` starts a `CpuSampler` running in a
background thread. The first sample holds the absolute CPU times; every later
one holds the difference since the previous reading. Only the newest unread
sample is kept. `get(timeout)` raises `TimeoutError` when no sample arrives
in time.

```python
from sigarstats.concrete import ConcreteSigar

sigar = ConcreteSigar()
with sigar.collect_cpu_stats(0.5) as sampler:
    first = sampler.get(timeout=2)
    delta = sampler.get(timeout=2)
    print(delta.user, delta.total())
```

`sigarstats.fake.FakeSigar` is a dataclass with the same `get_*` methods that
returns the values, or raises the errors, you set on it. Its
`collect_cpu_stats` relays the samples you put on its `cpu_stats` queue until
its `stop_cpu_stats` event is set.

## Control groups

```python
from sigarstats.cgroup.reader import Reader

reader = Reader(
    rootfs_mountpoint="/",
    ignore_root_cgroups=True,
    cgroups_hierarchy_override="",
    clock_ticks=100,
)
stats = reader.get_stats_for_process(1)
if stats is not None:
    print(stats.id, stats.path)
    if stats.memory is not None:
        print(stats.memory.mem.usage)
```

`get_stats_for_process` reads the blkio, cpu, cpuacct and memory subsystems
and returns `None` when none of them applies. Creating a `Reader` raises
`CgroupsMissingError` when `/proc/cgroups` is missing under the root
mountpoint. The lower-level readers are `read_blkio`, `read_cpu`,
`read_cpuacct` and `read_memory` in `sigarstats.cgroup.blkio`,
`sigarstats.cgroup.cpu`, `sigarstats.cgroup.cpuacct` and
`sigarstats.cgroup.memory`, with parsing helpers in `sigarstats.cgroup.util`.

## Process events

`sigarstats.psnotify.Watcher` listens to the Linux netlink process connector
(which needs root) or, on BSD and macOS, to a kqueue. Watch a pid with a
bitmask of `PROC_EVENT_FORK`, `PROC_EVENT_EXEC` and `PROC_EVENT_EXIT`
(`PROC_EVENT_ALL` for all three). Events arrive on the watcher's `forks`,
`execs` and `exits` queues, and listener errors on `errors`. On Linux, the
children of a process watched for exec are watched too.

```python
import os
from sigarstats.psnotify import PROC_EVENT_ALL, Watcher

with Watcher() as watcher:
    watcher.watch(os.getpid(), PROC_EVENT_ALL)
    ...
    event = watcher.forks.get(timeout=5)
    print(event.parent_pid, event.child_pid)
```

## What it does not do

- There is no report of network sockets.
- For the blkio subsystem only the throttling policy is read; the
  proportional-weight scheduler values are not.
- Process events are available only where a netlink process connector or a
  kqueue exists; elsewhere `create_listener` raises `NotImplementedOnPlatform`.