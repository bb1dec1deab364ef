"""Memory usage, limits and statistics from the cgroup "memory" subsystem."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from sigarstats.cgroup.util import (
    Metadata,
    parse_cgroup_param_key_value,
    parse_uint_from_file,
)


@dataclass
class MemoryData:
    """Usage, peak usage and limit in bytes, and how often the limit was hit."""

    usage: int = 0
    max_usage: int = 0
    limit: int = 0
    fail_count: int = 0


@dataclass
class MemoryStat:
    """Memory statistics and accounting of a cgroup; sizes are in bytes."""

    cache: int = 0
    rss: int = 0
    rss_huge: int = 0
    mapped_file: int = 0
    pages_in: int = 0
    pages_out: int = 0
    page_faults: int = 0
    major_page_faults: int = 0
    swap: int = 0
    active_anon: int = 0
    inactive_anon: int = 0
    active_file: int = 0
    inactive_file: int = 0
    unevictable: int = 0
    hierarchical_memory_limit: int = 0
    hierarchical_memsw_limit: int = 0


@dataclass
class MemorySubsystem(Metadata):
    """Metrics and limits from the memory subsystem."""

    mem: MemoryData = field(default_factory=MemoryData)
    mem_swap: MemoryData = field(default_factory=MemoryData)
    kernel: MemoryData = field(default_factory=MemoryData)
    kernel_tcp: MemoryData = field(default_factory=MemoryData)
    stats: MemoryStat = field(default_factory=MemoryStat)


_STAT_KEYS = {
    "cache": "cache",
    "rss": "rss",
    "rss_huge": "rss_huge",
    "mapped_file": "mapped_file",
    "pgpgin": "pages_in",
    "pgpgout": "pages_out",
    "pgfault": "page_faults",
    "pgmajfault": "major_page_faults",
    "swap": "swap",
    "active_anon": "active_anon",
    "inactive_anon": "inactive_anon",
    "active_file": "active_file",
    "inactive_file": "inactive_file",
    "unevictable": "unevictable",
    "hierarchical_memory_limit": "hierarchical_memory_limit",
    "hierarchical_memsw_limit": "hierarchical_memsw_limit",
}


def read_memory_data(path: str, prefix: str) -> MemoryData:
    """Read the usage files named ``<prefix>.*``; missing files read as 0."""
    return MemoryData(
        usage=parse_uint_from_file(path, prefix + ".usage_in_bytes"),
        max_usage=parse_uint_from_file(path, prefix + ".max_usage_in_bytes"),
        limit=parse_uint_from_file(path, prefix + ".limit_in_bytes"),
        fail_count=parse_uint_from_file(path, prefix + ".failcnt"),
    )


def read_memory_stats(path: str) -> MemoryStat:
    """Read memory.stat; a missing file gives zero statistics."""
    stats = MemoryStat()
    try:
        handle = open(os.path.join(path, "memory.stat"), encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return stats
    with handle:
        for line in handle:
            key, value = parse_cgroup_param_key_value(line.rstrip("\r\n"))
            attr = _STAT_KEYS.get(key)
            if attr is not None:
                setattr(stats, attr, value)
    return stats


def read_memory(path: str) -> MemorySubsystem:
    """Read the memory subsystem metrics of the cgroup at *path*."""
    return MemorySubsystem(
        mem=read_memory_data(path, "memory"),
        mem_swap=read_memory_data(path, "memory.memsw"),
        kernel=read_memory_data(path, "memory.kmem"),
        kernel_tcp=read_memory_data(path, "memory.kmem.tcp"),
        stats=read_memory_stats(path),
    )