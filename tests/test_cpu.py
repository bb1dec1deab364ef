import pytest

from sigarstats.cgroup.cpu import (
    CFS,
    RT,
    ThrottleStats,
    read_cfs,
    read_cpu,
    read_cpu_stat,
    read_rt,
)
from sigarstats.cgroup.util import InvalidFormatError


@pytest.fixture
def cpu_path(tmp_path):
    files = {
        "cpu.stat": "nr_periods 769021\nnr_throttled 1046\nthrottled_time 352597023453\n",
        "cpu.cfs_period_us": "100000\n",
        "cpu.cfs_quota_us": "-1\n",
        "cpu.shares": "1024\n",
        "cpu.rt_period_us": "1000000\n",
        "cpu.rt_runtime_us": "0\n",
    }
    for name, content in files.items():
        (tmp_path / name).write_text(content)
    return str(tmp_path)


def test_cpu_stats(cpu_path):
    stats = read_cpu_stat(cpu_path)
    assert stats.periods == 769021
    assert stats.throttled_periods == 1046
    assert stats.throttled_time_nanos == 352597023453


def test_cpu_cfs(cpu_path):
    cfs = read_cfs(cpu_path)
    assert cfs.period_micros == 100000
    assert cfs.quota_micros == 0  # -1 is changed to 0.
    assert cfs.shares == 1024


def test_cpu_rt(cpu_path):
    rt = read_rt(cpu_path)
    assert rt.period_micros == 1000000
    assert rt.runtime_micros == 0


def test_cpu_subsystem_get(cpu_path):
    cpu = read_cpu(cpu_path)
    assert cpu.stats.periods == 769021
    assert cpu.cfs.period_micros == 100000
    assert cpu.rt.period_micros == 1000000


def test_missing_files_read_as_zero(tmp_path):
    cpu = read_cpu(str(tmp_path))
    assert cpu.cfs == CFS()
    assert cpu.rt == RT()
    assert cpu.stats == ThrottleStats()


def test_cpu_stat_invalid_line(tmp_path):
    (tmp_path / "cpu.stat").write_text("nr_periods 1 2\n")
    with pytest.raises(InvalidFormatError):
        read_cpu_stat(str(tmp_path))


def test_cpu_stat_unknown_keys_ignored(tmp_path):
    (tmp_path / "cpu.stat").write_text("nr_bursts 7\nnr_throttled 3\n")
    stats = read_cpu_stat(str(tmp_path))
    assert stats == ThrottleStats(throttled_periods=3)


def test_cfs_invalid_value(tmp_path):
    (tmp_path / "cpu.shares").write_text("lots\n")
    with pytest.raises(ValueError):
        read_cfs(str(tmp_path))