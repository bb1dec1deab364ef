"""Data records describing host, filesystem and process statistics."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum

_U64_MASK = (1 << 64) - 1


class NotImplementedOnPlatform(Exception):
    """Raised when a statistic is not available on the host OS."""

    def __init__(self, os_name: str) -> None:
        super().__init__(f"not implemented on {os_name}")
        self.os = os_name


def is_not_implemented(err: BaseException | None) -> bool:
    """Return True if *err* reports a statistic missing on this platform."""
    return isinstance(err, NotImplementedOnPlatform)


@dataclass
class Cpu:
    """CPU time counters."""

    user: int = 0
    nice: int = 0
    sys: int = 0
    idle: int = 0
    wait: int = 0
    irq: int = 0
    soft_irq: int = 0
    stolen: int = 0

    def total(self) -> int:
        """Sum of all counters."""
        return sum(getattr(self, f.name) for f in dataclasses.fields(self))

    def delta(self, other: Cpu) -> Cpu:
        """Counter-wise difference from *other*, wrapping as unsigned 64-bit."""
        return Cpu(
            **{
                f.name: (getattr(self, f.name) - getattr(other, f.name)) & _U64_MASK
                for f in dataclasses.fields(self)
            }
        )


@dataclass
class LoadAverage:
    """Standard 1, 5 and 15 minute load averages."""

    one: float = 0.0
    five: float = 0.0
    fifteen: float = 0.0


@dataclass
class Uptime:
    """System uptime in seconds."""

    length: float = 0.0


@dataclass
class Mem:
    """Host memory usage in bytes."""

    total: int = 0
    used: int = 0
    free: int = 0
    cached: int = 0
    actual_free: int = 0
    actual_used: int = 0


@dataclass
class Swap:
    """Swap space usage in bytes."""

    total: int = 0
    used: int = 0
    free: int = 0


@dataclass
class HugeTLBPages:
    """Huge page statistics."""

    total: int = 0
    free: int = 0
    reserved: int = 0
    surplus: int = 0
    default_size: int = 0
    total_allocated_size: int = 0


@dataclass
class FDUsage:
    """System-wide file descriptor usage."""

    open: int = 0
    unused: int = 0
    max: int = 0


@dataclass
class FileSystem:
    """A mounted filesystem."""

    dir_name: str = ""
    dev_name: str = ""
    type_name: str = ""
    sys_type_name: str = ""
    options: str = ""
    flags: int = 0


@dataclass
class FileSystemUsage:
    """Space and inode usage of a filesystem."""

    total: int = 0
    used: int = 0
    free: int = 0
    avail: int = 0
    files: int = 0
    free_files: int = 0


class RunState(str, Enum):
    """One-letter run state of a process."""

    SLEEP = "S"
    RUN = "R"
    STOP = "T"
    ZOMBIE = "Z"
    IDLE = "D"
    UNKNOWN = "?"


@dataclass
class ProcState:
    """Basic metadata and ownership of a process."""

    name: str = ""
    username: str = ""
    state: RunState = RunState.UNKNOWN
    ppid: int = 0
    pgid: int = 0
    tty: int = 0
    priority: int = 0
    nice: int = 0
    processor: int = 0


@dataclass
class ProcMem:
    """Memory statistics of a process."""

    size: int = 0
    resident: int = 0
    share: int = 0
    minor_faults: int = 0
    major_faults: int = 0
    page_faults: int = 0


@dataclass
class ProcTime:
    """Run time statistics of a process, in milliseconds."""

    start_time: int = 0
    user: int = 0
    sys: int = 0
    total: int = 0


@dataclass
class ProcExe:
    """Executable path and directories of a process."""

    name: str = ""
    cwd: str = ""
    root: str = ""


@dataclass
class ProcFDUsage:
    """File descriptor limits and usage of a process."""

    open: int = 0
    soft_limit: int = 0
    hard_limit: int = 0


@dataclass
class Rusage:
    """Resource usage of a process."""

    utime: timedelta = dataclasses.field(default_factory=timedelta)
    stime: timedelta = dataclasses.field(default_factory=timedelta)
    maxrss: int = 0
    ixrss: int = 0
    idrss: int = 0
    isrss: int = 0
    minflt: int = 0
    majflt: int = 0
    nswap: int = 0
    inblock: int = 0
    oublock: int = 0
    msgsnd: int = 0
    msgrcv: int = 0
    nsignals: int = 0
    nvcsw: int = 0
    nivcsw: int = 0