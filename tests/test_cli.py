import os
import re

import pytest

from sigarstats.cli import main, run_df, run_free, run_ps, run_uptime


def test_df_prints_header_and_filesystems(capsys):
    assert run_df([]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].startswith("Filesystem")
    assert lines[0].rstrip().endswith("Mounted on")
    assert len(lines) >= 2


def test_df_rejects_extra_arguments():
    with pytest.raises(SystemExit):
        run_df(["unexpected"])


def test_free_reports_consistent_memory(capsys):
    assert run_free([]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0].split() == ["total", "used", "free"]
    mem = lines[1].split()
    assert mem[0] == "Mem:"
    total, used, free = (int(v) for v in mem[1:])
    assert total > 0
    assert used + free <= total + 1
    assert lines[2].startswith("-/+ buffers/cache:")
    assert lines[3].startswith("Swap:")


def test_ps_lists_current_process(capsys):
    assert run_ps([]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "  PID  PPID STIME     TIME    RSS USER            S COMMAND"
    prefix = f"{os.getpid():5d} {os.getppid():5d} "
    assert any(line.startswith(prefix) for line in lines[1:])


def test_uptime_output_shape(capsys):
    assert run_uptime([]) == 0
    out = capsys.readouterr().out.rstrip("\n")
    pattern = r" \d\d:\d\d:\d\d up .+ load average: \d+\.\d\d, \d+\.\d\d, \d+\.\d\d"
    assert re.fullmatch(pattern, out)


def test_main_dispatches_to_command(capsys):
    assert main(["free"]) == 0
    assert "Swap:" in capsys.readouterr().out


def test_main_rejects_unknown_command():
    with pytest.raises(SystemExit):
        main(["bogus"])


def test_main_requires_command():
    with pytest.raises(SystemExit):
        main([])