"""Reading the cgroup metrics and limits that apply to a process."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass

from sigarstats.cgroup.blkio import BlockIOSubsystem, read_blkio
from sigarstats.cgroup.cpu import CPUSubsystem, read_cpu
from sigarstats.cgroup.cpuacct import CPUAccountingSubsystem, read_cpuacct
from sigarstats.cgroup.memory import MemorySubsystem, read_memory
from sigarstats.cgroup.util import (
    Metadata,
    process_cgroup_paths,
    subsystem_mountpoints,
    supported_subsystems,
)

_INTERESTED_SUBSYSTEMS = ("blkio", "cpu", "cpuacct", "memory")


@dataclass
class Stats(Metadata):
    """Metrics and limits from each cgroup subsystem of a process."""

    cpu: CPUSubsystem | None = None
    cpu_accounting: CPUAccountingSubsystem | None = None
    memory: MemorySubsystem | None = None
    block_io: BlockIOSubsystem | None = None


@dataclass(frozen=True)
class _Mount:
    subsystem: str
    mountpoint: str
    path: str
    id: str
    full_path: str


def _base(path: str) -> str:
    """Last element of a slash-separated path, "/" for the root, "." for empty."""
    if not path:
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return stripped.rsplit("/", 1)[-1]


def _join(mountpoint: str, path: str) -> str:
    return posixpath.normpath(posixpath.join(mountpoint, path.lstrip("/")))


def _common_metadata(mounts: dict[str, _Mount]) -> Metadata:
    """Path and ID shared by all subsystems, or empty metadata if they differ."""
    path = ""
    for mount in mounts.values():
        if not path:
            path = mount.path
        elif path != mount.path:
            return Metadata()
    return Metadata(id=_base(path), path=path)


class Reader:
    """Reads cgroup metrics and limits.

    *rootfs_mountpoint* is where the root filesystem is mounted ("/" by
    default). With *ignore_root_cgroups* a subsystem whose cgroup path is "/"
    is skipped. A non-empty *cgroups_hierarchy_override* replaces the cgroup
    paths listed for the process, which is useful inside a container.
    *clock_ticks* defaults to the system's ticks per second.
    """

    def __init__(
        self,
        rootfs_mountpoint: str = "/",
        ignore_root_cgroups: bool = False,
        cgroups_hierarchy_override: str = "",
        clock_ticks: int | None = None,
    ) -> None:
        self.rootfs_mountpoint = rootfs_mountpoint or "/"
        self.ignore_root_cgroups = ignore_root_cgroups
        self.cgroups_hierarchy_override = cgroups_hierarchy_override
        self.clock_ticks = clock_ticks
        subsystems = supported_subsystems(self.rootfs_mountpoint)
        self.cgroup_mountpoints = subsystem_mountpoints(self.rootfs_mountpoint, subsystems)

    def _mounts(self, pid: int) -> dict[str, _Mount]:
        paths = process_cgroup_paths(self.rootfs_mountpoint, pid)
        mounts: dict[str, _Mount] = {}
        for subsystem in _INTERESTED_SUBSYSTEMS:
            path = paths.get(subsystem)
            if path is None:
                continue
            if path == "/" and self.ignore_root_cgroups:
                continue
            mountpoint = self.cgroup_mountpoints.get(subsystem)
            if mountpoint is None:
                continue
            cgroup_id = _base(path)
            if self.cgroups_hierarchy_override:
                path = self.cgroups_hierarchy_override
            mounts[subsystem] = _Mount(
                subsystem=subsystem,
                mountpoint=mountpoint,
                path=path,
                id=cgroup_id,
                full_path=_join(mountpoint, path),
            )
        return mounts

    def get_stats_for_process(self, pid: int) -> Stats | None:
        """Cgroup metrics and limits of process *pid*, or None if there are none."""
        mounts = self._mounts(pid)
        common = _common_metadata(mounts)
        stats = Stats(id=common.id, path=common.path)

        readers = (
            ("blkio", "block_io", read_blkio),
            ("cpu", "cpu", read_cpu),
            ("cpuacct", "cpu_accounting", lambda p: read_cpuacct(p, self.clock_ticks)),
            ("memory", "memory", read_memory),
        )
        collected = False
        for subsystem, attr, read in readers:
            mount = mounts.get(subsystem)
            if mount is None:
                continue
            result = read(mount.full_path)
            result.id = mount.id
            result.path = mount.path
            setattr(stats, attr, result)
            collected = True

        return stats if collected else None