"""Host, filesystem and process statistics gathered from the running system."""

from __future__ import annotations

import errno
import os
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import timedelta
from pathlib import Path

import psutil

from sigarstats.types import (
    Cpu,
    FDUsage,
    FileSystem,
    FileSystemUsage,
    HugeTLBPages,
    LoadAverage,
    Mem,
    NotImplementedOnPlatform,
    ProcExe,
    ProcFDUsage,
    ProcMem,
    ProcState,
    ProcTime,
    RunState,
    Rusage,
    Swap,
    Uptime,
)

try:
    import resource
except ImportError:  # not available on Windows
    resource = None  # type: ignore[assignment]

_U64_MAX = (1 << 64) - 1

_STATUS_TO_STATE = {
    psutil.STATUS_RUNNING: RunState.RUN,
    psutil.STATUS_SLEEPING: RunState.SLEEP,
    psutil.STATUS_DISK_SLEEP: RunState.IDLE,
    psutil.STATUS_IDLE: RunState.IDLE,
    psutil.STATUS_STOPPED: RunState.STOP,
    psutil.STATUS_TRACING_STOP: RunState.STOP,
    psutil.STATUS_ZOMBIE: RunState.ZOMBIE,
}


def _ms(seconds: float) -> int:
    return int(round(seconds * 1000))


@contextmanager
def _process_errors(pid: int) -> Iterator[None]:
    """Turn psutil process errors into the matching OS errors."""
    try:
        yield
    except psutil.NoSuchProcess as exc:
        raise ProcessLookupError(errno.ESRCH, f"no such process: {pid}") from exc
    except psutil.AccessDenied as exc:
        raise PermissionError(errno.EACCES, f"access denied to process {pid}") from exc


def _process(pid: int) -> psutil.Process:
    with _process_errors(pid):
        return psutil.Process(pid)


def _proc_stat_fields(pid: int) -> list[str] | None:
    """Fields of /proc/<pid>/stat that follow the command name, if readable."""
    try:
        text = Path(f"/proc/{pid}/stat").read_text()
    except OSError:
        return None
    _, _, rest = text.rpartition(")")
    return rest.split()


def get_load_average() -> LoadAverage:
    """1, 5 and 15 minute load averages."""
    try:
        one, five, fifteen = os.getloadavg()
    except (AttributeError, OSError) as exc:
        raise NotImplementedOnPlatform(sys.platform) from exc
    return LoadAverage(one=one, five=five, fifteen=fifteen)


def get_uptime() -> Uptime:
    """Seconds since the system booted."""
    return Uptime(length=time.time() - psutil.boot_time())


def get_mem() -> Mem:
    """Host memory usage in bytes."""
    vm = psutil.virtual_memory()
    total = vm.total
    free = min(vm.free, total)
    available = min(vm.available, total)
    return Mem(
        total=total,
        used=total - free,
        free=free,
        cached=getattr(vm, "cached", 0),
        actual_free=available,
        actual_used=total - available,
    )


def get_swap() -> Swap:
    """Swap usage in bytes."""
    sw = psutil.swap_memory()
    used = min(sw.used, sw.total)
    free = min(sw.free, sw.total - used)
    return Swap(total=sw.total, used=used, free=free)


def get_huge_tlb_pages() -> HugeTLBPages:
    """Huge page statistics from /proc/meminfo."""
    meminfo = Path("/proc/meminfo")
    if not sys.platform.startswith("linux") or not meminfo.exists():
        raise NotImplementedOnPlatform(sys.platform)
    values: dict[str, int] = {}
    for line in meminfo.read_text().splitlines():
        key, _, rest = line.partition(":")
        fields = rest.split()
        if not fields:
            continue
        try:
            number = int(fields[0])
        except ValueError:
            continue
        if len(fields) > 1 and fields[1] == "kB":
            number *= 1024
        values[key.strip()] = number
    pages = HugeTLBPages(
        total=values.get("HugePages_Total", 0),
        free=values.get("HugePages_Free", 0),
        reserved=values.get("HugePages_Rsvd", 0),
        surplus=values.get("HugePages_Surp", 0),
        default_size=values.get("Hugepagesize", 0),
    )
    pages.total_allocated_size = (pages.total - pages.free + pages.reserved) * pages.default_size
    return pages


def _cpu_from_times(times) -> Cpu:
    return Cpu(
        user=_ms(times.user),
        nice=_ms(getattr(times, "nice", 0.0)),
        sys=_ms(times.system),
        idle=_ms(times.idle),
        wait=_ms(getattr(times, "iowait", 0.0)),
        irq=_ms(getattr(times, "irq", 0.0)),
        soft_irq=_ms(getattr(times, "softirq", 0.0)),
        stolen=_ms(getattr(times, "steal", 0.0)),
    )


def get_cpu() -> Cpu:
    """Aggregate CPU time counters in milliseconds."""
    return _cpu_from_times(psutil.cpu_times())


def get_cpu_list() -> list[Cpu]:
    """CPU time counters in milliseconds for each logical CPU."""
    return [_cpu_from_times(t) for t in psutil.cpu_times(percpu=True)]


def get_fd_usage() -> FDUsage:
    """System-wide open file descriptor usage."""
    file_nr = Path("/proc/sys/fs/file-nr")
    if not file_nr.exists():
        raise NotImplementedOnPlatform(sys.platform)
    fields = file_nr.read_text().split()
    opened, maximum = int(fields[0]), int(fields[2])
    return FDUsage(open=opened, unused=(maximum - opened) & _U64_MAX, max=maximum)


def get_file_systems() -> list[FileSystem]:
    """Mounted filesystems."""
    return [
        FileSystem(
            dir_name=part.mountpoint,
            dev_name=part.device,
            sys_type_name=part.fstype,
            options=part.opts,
        )
        for part in psutil.disk_partitions(all=True)
    ]


def get_file_system_usage(path: str) -> FileSystemUsage:
    """Space and inode usage of the filesystem holding *path*."""
    if hasattr(os, "statvfs"):
        st = os.statvfs(path)
        total = st.f_blocks * st.f_frsize
        free = st.f_bfree * st.f_frsize
        return FileSystemUsage(
            total=total,
            used=total - free,
            free=free,
            avail=st.f_bavail * st.f_frsize,
            files=st.f_files,
            free_files=st.f_ffree,
        )
    du = psutil.disk_usage(path)
    return FileSystemUsage(total=du.total, used=du.used, free=du.free, avail=du.free)


def get_proc_list() -> list[int]:
    """Process ids of all processes, without pid 0."""
    return [pid for pid in psutil.pids() if pid != 0]


def _tty_number(proc: psutil.Process) -> int:
    try:
        terminal = proc.terminal()
    except (AttributeError, psutil.Error):
        return 0
    if not terminal:
        return 0
    try:
        return os.stat(terminal).st_rdev
    except OSError:
        return 0


def get_proc_state(pid: int) -> ProcState:
    """Name, owner, run state and scheduling details of a process."""
    proc = _process(pid)
    with _process_errors(pid):
        name = proc.name()
        status = proc.status()
        ppid = proc.ppid()
        nice = int(proc.nice())
        try:
            username = proc.username()
        except (KeyError, psutil.Error):
            username = str(proc.uids().real)
        try:
            processor = proc.cpu_num()
        except (AttributeError, psutil.Error):
            processor = 0
    try:
        pgid = os.getpgid(pid)
    except (AttributeError, OSError):
        pgid = 0
    fields = _proc_stat_fields(pid)
    priority = int(fields[15]) if fields and len(fields) > 15 else 0
    return ProcState(
        name=name,
        username=username,
        state=_STATUS_TO_STATE.get(status, RunState.UNKNOWN),
        ppid=ppid,
        pgid=pgid,
        tty=_tty_number(proc),
        priority=priority,
        nice=nice,
        processor=processor,
    )


def get_proc_mem(pid: int) -> ProcMem:
    """Memory usage and page faults of a process."""
    proc = _process(pid)
    with _process_errors(pid):
        info = proc.memory_info()
    fields = _proc_stat_fields(pid)
    if fields and len(fields) > 9:
        minor, major = int(fields[7]), int(fields[9])
        faults = minor + major
    else:
        minor = major = 0
        faults = getattr(info, "pfaults", getattr(info, "num_page_faults", 0))
    return ProcMem(
        size=info.vms,
        resident=info.rss,
        share=getattr(info, "shared", 0),
        minor_faults=minor,
        major_faults=major,
        page_faults=faults,
    )


def get_proc_time(pid: int) -> ProcTime:
    """Start time (epoch ms) and CPU time (ms) of a process."""
    proc = _process(pid)
    with _process_errors(pid):
        times = proc.cpu_times()
        started = proc.create_time()
    user, system = _ms(times.user), _ms(times.system)
    return ProcTime(start_time=_ms(started), user=user, sys=system, total=user + system)


def get_proc_args(pid: int) -> list[str]:
    """Command line arguments of a process."""
    proc = _process(pid)
    with _process_errors(pid):
        return list(proc.cmdline())


def get_proc_env(pid: int) -> dict[str, str]:
    """Environment variables of a process."""
    proc = _process(pid)
    try:
        with _process_errors(pid):
            return dict(proc.environ())
    except (AttributeError, NotImplementedError) as exc:
        raise NotImplementedOnPlatform(sys.platform) from exc


def get_proc_exe(pid: int) -> ProcExe:
    """Executable path, working directory and root directory of a process."""
    proc = _process(pid)
    with _process_errors(pid):
        name = proc.exe()
        try:
            cwd = proc.cwd()
        except psutil.AccessDenied:
            cwd = ""
    try:
        root = os.readlink(f"/proc/{pid}/root")
    except OSError:
        root = ""
    return ProcExe(name=name, cwd=cwd, root=root)


def _limit(value: int) -> int:
    if resource is not None and value == resource.RLIM_INFINITY:
        return _U64_MAX
    return value


def get_proc_fd_usage(pid: int) -> ProcFDUsage:
    """Open descriptors and descriptor limits of a process."""
    proc = _process(pid)
    if not hasattr(proc, "num_fds") or resource is None:
        raise NotImplementedOnPlatform(sys.platform)
    with _process_errors(pid):
        opened = proc.num_fds()
        if hasattr(proc, "rlimit"):
            soft, hard = proc.rlimit(resource.RLIMIT_NOFILE)
        elif pid == os.getpid():
            soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
        else:
            raise NotImplementedOnPlatform(sys.platform)
    return ProcFDUsage(open=opened, soft_limit=_limit(soft), hard_limit=_limit(hard))


def get_rusage(who: int) -> Rusage:
    """Resource usage: 0 for this process, 1 for its children, 2 for this thread."""
    if resource is None:
        raise NotImplementedOnPlatform(sys.platform)
    targets = {0: resource.RUSAGE_SELF, 1: resource.RUSAGE_CHILDREN}
    if hasattr(resource, "RUSAGE_THREAD"):
        targets[2] = resource.RUSAGE_THREAD
    if who not in targets:
        if who == 2:
            raise NotImplementedOnPlatform(sys.platform)
        raise ValueError(f"invalid rusage target: {who}")
    ru = resource.getrusage(targets[who])
    return Rusage(
        utime=timedelta(seconds=ru.ru_utime),
        stime=timedelta(seconds=ru.ru_stime),
        maxrss=ru.ru_maxrss,
        ixrss=ru.ru_ixrss,
        idrss=ru.ru_idrss,
        isrss=ru.ru_isrss,
        minflt=ru.ru_minflt,
        majflt=ru.ru_majflt,
        nswap=ru.ru_nswap,
        inblock=ru.ru_inblock,
        oublock=ru.ru_oublock,
        msgsnd=ru.ru_msgsnd,
        msgrcv=ru.ru_msgrcv,
        nsignals=ru.ru_nsignals,
        nvcsw=ru.ru_nvcsw,
        nivcsw=ru.ru_nivcsw,
    )