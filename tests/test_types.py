from datetime import timedelta

import pytest

from sigarstats.types import (
    Cpu,
    FileSystemUsage,
    Mem,
    NotImplementedOnPlatform,
    ProcState,
    RunState,
    Rusage,
    is_not_implemented,
)


def test_cpu_total_sums_all_fields():
    cpu = Cpu(user=1, nice=2, sys=3, idle=4, wait=5, irq=6, soft_irq=7, stolen=8)
    assert cpu.total() == 1 + 2 + 3 + 4 + 5 + 6 + 7 + 8


def test_cpu_total_of_empty_is_zero():
    assert Cpu().total() == 0


def test_cpu_delta_fieldwise():
    later = Cpu(user=100, nice=20, sys=50, idle=1000, wait=5, irq=3, soft_irq=2, stolen=1)
    earlier = Cpu(user=40, nice=10, sys=25, idle=600, wait=1, irq=1, soft_irq=1, stolen=0)
    d = later.delta(earlier)
    assert d == Cpu(user=60, nice=10, sys=25, idle=400, wait=4, irq=2, soft_irq=1, stolen=1)
    assert d.total() == later.total() - earlier.total()


def test_cpu_delta_with_itself_is_zero():
    cpu = Cpu(user=7, sys=9, idle=11)
    assert cpu.delta(cpu) == Cpu()


def test_cpu_delta_wraps_as_unsigned():
    d = Cpu(user=0).delta(Cpu(user=1))
    assert d.user == 2**64 - 1


def test_not_implemented_message_and_os():
    err = NotImplementedOnPlatform("plan9")
    assert str(err) == "not implemented on " + "plan9"
    assert err.os == "plan9"


def test_is_not_implemented():
    assert is_not_implemented(NotImplementedOnPlatform("aix")) is True
    assert is_not_implemented(ValueError("x")) is False
    assert is_not_implemented(None) is False


def test_not_implemented_can_be_raised_and_caught():
    with pytest.raises(NotImplementedOnPlatform) as excinfo:
        raise NotImplementedOnPlatform("darwin")
    assert excinfo.value.os == "darwin"
    assert str(excinfo.value) == "not implemented on darwin"
    assert is_not_implemented(excinfo.value) is True


@pytest.mark.parametrize(
    "state, letter",
    [
        (RunState.SLEEP, "S"),
        (RunState.RUN, "R"),
        (RunState.STOP, "T"),
        (RunState.ZOMBIE, "Z"),
        (RunState.IDLE, "D"),
        (RunState.UNKNOWN, "?"),
    ],
)
def test_run_state_letters(state, letter):
    assert state.value == letter
    assert RunState(letter) is state


def test_proc_state_default_state_is_unknown():
    assert ProcState().state is RunState.UNKNOWN


def test_records_default_to_zero():
    assert Mem().total == 0 and Mem().actual_used == 0
    assert FileSystemUsage().free_files == 0


def test_rusage_defaults_are_independent_timedeltas():
    a = Rusage()
    b = Rusage(utime=timedelta(seconds=2))
    assert a.utime == timedelta(0)
    assert b.utime.total_seconds() == 2