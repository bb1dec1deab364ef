import time
from datetime import timedelta

import pytest

from sigarstats.concrete import ConcreteSigar, CpuSampler
from sigarstats.types import Cpu


def test_first_sample_is_immediate_and_absolute():
    sigar = ConcreteSigar()
    with sigar.collect_cpu_stats(0.5) as sampler:
        first = sampler.get(timeout=5)
    assert first.user > 0


def test_later_samples_are_deltas():
    sigar = ConcreteSigar()
    with sigar.collect_cpu_stats(timedelta(milliseconds=500)) as sampler:
        first = sampler.get(timeout=5)
        second = sampler.get(timeout=5)
    assert second.user < first.user


def test_does_not_block_when_samples_are_not_read():
    sampler = ConcreteSigar().collect_cpu_stats(0.01)
    time.sleep(0.02)
    sampler.stop()
    assert not sampler.running


def test_sampler_with_custom_source_produces_deltas():
    readings = iter([Cpu(user=10, sys=4), Cpu(user=15, sys=6), Cpu(user=30, sys=9)])
    with CpuSampler(0.01, sample=lambda: next(readings, Cpu(user=30, sys=9))) as sampler:
        assert sampler.get(timeout=2) == Cpu(user=10, sys=4)
        assert sampler.get(timeout=2) == Cpu(user=5, sys=2)


def test_get_times_out_when_stopped_and_drained():
    sampler = CpuSampler(10, sample=lambda: Cpu(user=1))
    sampler.get(timeout=2)
    sampler.stop()
    with pytest.raises(TimeoutError):
        sampler.get(timeout=0.05)


def test_non_positive_interval_rejected():
    with pytest.raises(ValueError):
        CpuSampler(0, sample=lambda: Cpu())


def test_get_load_average():
    avg = ConcreteSigar().get_load_average()
    assert avg.one >= 0
    assert avg.five >= 0
    assert avg.fifteen >= 0


def test_get_mem():
    mem = ConcreteSigar().get_mem()
    assert mem.total > 0
    assert mem.used + mem.free <= mem.total


def test_get_swap():
    swap = ConcreteSigar().get_swap()
    assert swap.used + swap.free <= swap.total


def test_file_system_usage():
    sigar = ConcreteSigar()
    usage = sigar.get_file_system_usage("/")
    assert usage.total > 0
    with pytest.raises(OSError):
        sigar.get_file_system_usage("T O T A L L Y B O G U S")


def test_get_fd_usage():
    usage = ConcreteSigar().get_fd_usage()
    assert usage.open > 0
    assert usage.open <= usage.max


def test_get_rusage():
    usage = ConcreteSigar().get_rusage(0)
    assert usage.utime >= timedelta(0)
    assert usage.stime >= timedelta(0)