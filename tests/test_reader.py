import pytest

from sigarstats.cgroup.reader import Reader, Stats
from sigarstats.cgroup.util import CgroupsMissingError

CID = "b29faf21b7eff959f64b4192c34d5d67a707fe8561e9eaa608cb27693fba4242"
CGROUP_PATH = "/docker/" + CID

ENABLED = (
    "cpuset", "cpu", "cpuacct", "blkio", "memory", "devices",
    "freezer", "net_cls", "perf_event", "net_prio", "pids",
)
MOUNTED = ("blkio", "cpu", "cpuacct", "memory")


def _write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


def _write_cgroup_files(base, shares, usage_nanos, mem_usage, ios):
    _write(base / "cpu" / "cpu.shares", f"{shares}\n")
    _write(base / "cpu" / "cpu.cfs_period_us", "100000\n")
    _write(base / "cpu" / "cpu.cfs_quota_us", "-1\n")
    _write(base / "cpu" / "cpu.rt_period_us", "1000000\n")
    _write(base / "cpuacct" / "cpuacct.usage", f"{usage_nanos}\n")
    _write(base / "cpuacct" / "cpuacct.stat", "user 6195\nsystem 773\n")
    _write(base / "memory" / "memory.usage_in_bytes", f"{mem_usage}\n")
    _write(
        base / "blkio" / "blkio.throttle.io_serviced",
        f"7:0 Read {ios}\n7:0 Write 0\n7:0 Async {ios}\nTotal {ios}\n",
    )


@pytest.fixture
def rootfs(tmp_path):
    root = tmp_path / "docker"
    cgroups = ["#subsys_name\thierarchy\tnum_cgroups\tenabled"]
    cgroups += [f"{name}\t{i + 1}\t1\t1" for i, name in enumerate(ENABLED)]
    cgroups.append("hugetlb\t12\t1\t0")
    _write(root / "proc" / "cgroups", "\n".join(cgroups) + "\n")

    mountinfo = [f"20 1 8:1 / {root} rw,relatime - ext4 /dev/sda1 rw"]
    for i, name in enumerate(MOUNTED):
        mountpoint = root / "sys" / "fs" / "cgroup" / name
        mountinfo.append(
            f"{30 + i} 24 0:{25 + i} / {mountpoint} rw,nosuid,nodev,noexec,relatime "
            f"shared:13 - cgroup cgroup rw,{name}"
        )
    _write(root / "proc" / "self" / "mountinfo", "\n".join(mountinfo) + "\n")

    def cgroup_file(path):
        return "".join(f"{i + 1}:{name}:{path}\n" for i, name in enumerate(ENABLED))

    _write(root / "proc" / "985" / "cgroup", cgroup_file(CGROUP_PATH))
    _write(root / "proc" / "1" / "cgroup", cgroup_file("/system.slice/init.scope"))
    _write(root / "proc" / "2" / "cgroup", cgroup_file("/"))

    cgroup_root = root / "sys" / "fs" / "cgroup"
    container = tmp_path / "container-view"
    _write_cgroup_files(container, 1024, 95996653175, 295997440, 2)
    for name in MOUNTED:
        target = cgroup_root / name / CGROUP_PATH.lstrip("/")
        target.mkdir(parents=True)
        for src in (container / name).iterdir():
            (target / src.name).write_text(src.read_text())
    _write_cgroup_files(cgroup_root, 2048, 500, 1000, 9)
    return str(root)


def test_reader_get_stats(rootfs):
    reader = Reader(rootfs, True, clock_ticks=100)
    stats = reader.get_stats_for_process(985)
    assert stats is not None

    assert stats.id == CID
    assert stats.block_io.id == CID
    assert stats.cpu.id == CID
    assert stats.cpu_accounting.id == CID
    assert stats.memory.id == CID

    assert stats.path == CGROUP_PATH
    assert stats.block_io.path == CGROUP_PATH
    assert stats.cpu.path == CGROUP_PATH
    assert stats.cpu_accounting.path == CGROUP_PATH
    assert stats.memory.path == CGROUP_PATH


def test_reader_reads_container_values(rootfs):
    stats = Reader(rootfs, True, clock_ticks=100).get_stats_for_process(985)
    assert stats.cpu.cfs.shares == 1024
    assert stats.cpu.cfs.quota_micros == 0
    assert stats.cpu.rt.period_micros == 1000000
    assert stats.cpu_accounting.total_nanos == 95996653175
    assert stats.cpu_accounting.stats.user_nanos == 61950000000
    assert stats.memory.mem.usage == 295997440
    assert stats.block_io.throttle.total_ios == 2
    assert len(stats.block_io.throttle.devices) == 1


def test_reader_get_stats_hierarchy_override(rootfs):
    reader = Reader(
        rootfs_mountpoint=rootfs,
        ignore_root_cgroups=True,
        cgroups_hierarchy_override="/",
        clock_ticks=100,
    )
    stats = reader.get_stats_for_process(1)
    assert stats is not None
    assert stats.cpu is not None
    assert stats.cpu.cfs.shares == 2048
    assert stats.cpu.id == "init.scope"
    assert stats.cpu.path == "/"
    assert stats.path == "/"
    assert stats.id == "/"


def test_root_cgroups_ignored(rootfs):
    reader = Reader(rootfs, ignore_root_cgroups=True, clock_ticks=100)
    assert reader.get_stats_for_process(2) is None


def test_root_cgroups_read_when_not_ignored(rootfs):
    reader = Reader(rootfs, ignore_root_cgroups=False, clock_ticks=100)
    stats = reader.get_stats_for_process(2)
    assert isinstance(stats, Stats)
    assert stats.path == "/"
    assert stats.id == "/"
    assert stats.cpu.cfs.shares == 2048
    assert stats.memory.mem.usage == 1000
    assert stats.block_io.throttle.total_ios == 9


def test_mountpoints_discovered(rootfs):
    reader = Reader(rootfs)
    assert sorted(reader.cgroup_mountpoints) == sorted(MOUNTED)
    assert reader.cgroup_mountpoints["cpu"] == f"{rootfs}/sys/fs/cgroup/cpu"


def test_missing_cgroups(tmp_path):
    with pytest.raises(CgroupsMissingError):
        Reader(str(tmp_path / "doesnotexist"))


def test_unknown_process(rootfs):
    reader = Reader(rootfs, True)
    with pytest.raises(FileNotFoundError):
        reader.get_stats_for_process(424242)