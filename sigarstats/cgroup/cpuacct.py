"""CPU usage accounting from the cgroup "cpuacct" subsystem."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from sigarstats.cgroup.util import (
    Metadata,
    parse_cgroup_param_key_value,
    parse_uint,
    parse_uint_from_file,
)

_U64_MASK = (1 << 64) - 1
_NANOS_PER_SECOND = 1_000_000_000
_FALLBACK_CLOCK_TICKS = 100


@dataclass
class CPUAccountingStats:
    """User and system CPU time of the tasks in a cgroup, in nanoseconds."""

    user_nanos: int = 0
    system_nanos: int = 0


@dataclass
class CPUAccountingSubsystem(Metadata):
    """Metrics from the cpuacct subsystem."""

    total_nanos: int = 0
    usage_per_cpu: list[int] = field(default_factory=list)
    stats: CPUAccountingStats = field(default_factory=CPUAccountingStats)


def _system_clock_ticks() -> int:
    try:
        ticks = os.sysconf("SC_CLK_TCK")
    except (AttributeError, ValueError, OSError):
        return _FALLBACK_CLOCK_TICKS
    return ticks if ticks > 0 else _FALLBACK_CLOCK_TICKS


def convert_jiffies_to_nanos(jiffies: int, clock_ticks: int) -> int:
    """Convert clock ticks to nanoseconds, wrapping like an unsigned 64-bit value."""
    return ((jiffies * _NANOS_PER_SECOND) & _U64_MASK) // clock_ticks


def read_cpuacct_stat(path: str, clock_ticks: int | None = None) -> CPUAccountingStats:
    """Read cpuacct.stat; a missing file gives zero statistics.

    *clock_ticks* defaults to the system's ticks per second.
    """
    ticks = clock_ticks or _system_clock_ticks()
    stats = CPUAccountingStats()
    try:
        handle = open(os.path.join(path, "cpuacct.stat"), encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return stats
    with handle:
        for line in handle:
            key, value = parse_cgroup_param_key_value(line.rstrip("\r\n"))
            if key == "user":
                stats.user_nanos = convert_jiffies_to_nanos(value, ticks)
            elif key == "system":
                stats.system_nanos = convert_jiffies_to_nanos(value, ticks)
    return stats


def read_cpuacct_usage(path: str) -> int:
    """Total CPU time of the cgroup in nanoseconds."""
    return parse_uint_from_file(path, "cpuacct.usage")


def read_cpuacct_usage_per_cpu(path: str) -> list[int]:
    """CPU time of the cgroup on each CPU in nanoseconds; empty if unavailable."""
    try:
        with open(os.path.join(path, "cpuacct.usage_percpu"), "rb") as handle:
            contents = handle.read()
    except FileNotFoundError:
        return []
    return [parse_uint(usage) for usage in contents.split()]


def read_cpuacct(path: str, clock_ticks: int | None = None) -> CPUAccountingSubsystem:
    """Read the cpuacct subsystem metrics of the cgroup at *path*."""
    return CPUAccountingSubsystem(
        stats=read_cpuacct_stat(path, clock_ticks),
        total_nanos=read_cpuacct_usage(path),
        usage_per_cpu=read_cpuacct_usage_per_cpu(path),
    )