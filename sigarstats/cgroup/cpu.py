"""Limits and throttling statistics of the cgroup "cpu" subsystem.

This subsystem guarantees a minimum share of CPU to a cgroup when the system
is busy; it does not track CPU usage, which the "cpuacct" subsystem does.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from sigarstats.cgroup.util import (
    Metadata,
    parse_cgroup_param_key_value,
    parse_uint_from_file,
)


@dataclass
class CFS:
    """Tunables of the completely fair scheduler, in microseconds and shares."""

    period_micros: int = 0
    quota_micros: int = 0
    shares: int = 0


@dataclass
class RT:
    """Tunables of the real-time scheduler, in microseconds."""

    period_micros: int = 0
    runtime_micros: int = 0


@dataclass
class ThrottleStats:
    """How much the cgroup's CPU usage was throttled."""

    periods: int = 0
    throttled_periods: int = 0
    throttled_time_nanos: int = 0


@dataclass
class CPUSubsystem(Metadata):
    """Metrics and limits from the cpu subsystem."""

    cfs: CFS = field(default_factory=CFS)
    rt: RT = field(default_factory=RT)
    stats: ThrottleStats = field(default_factory=ThrottleStats)


_STAT_KEYS = {
    "nr_periods": "periods",
    "nr_throttled": "throttled_periods",
    "throttled_time": "throttled_time_nanos",
}


def read_cpu_stat(path: str) -> ThrottleStats:
    """Read cpu.stat; a missing file gives zero statistics."""
    stats = ThrottleStats()
    try:
        handle = open(os.path.join(path, "cpu.stat"), encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return stats
    with handle:
        for line in handle:
            key, value = parse_cgroup_param_key_value(line.rstrip("\r\n"))
            attr = _STAT_KEYS.get(key)
            if attr is not None:
                setattr(stats, attr, value)
    return stats


def read_cfs(path: str) -> CFS:
    """Read the completely fair scheduler settings."""
    return CFS(
        period_micros=parse_uint_from_file(path, "cpu.cfs_period_us"),
        quota_micros=parse_uint_from_file(path, "cpu.cfs_quota_us"),
        shares=parse_uint_from_file(path, "cpu.shares"),
    )


def read_rt(path: str) -> RT:
    """Read the real-time scheduler settings."""
    return RT(
        period_micros=parse_uint_from_file(path, "cpu.rt_period_us"),
        runtime_micros=parse_uint_from_file(path, "cpu.rt_runtime_us"),
    )


def read_cpu(path: str) -> CPUSubsystem:
    """Read the cpu subsystem metrics of the cgroup at *path*."""
    return CPUSubsystem(cfs=read_cfs(path), rt=read_rt(path), stats=read_cpu_stat(path))