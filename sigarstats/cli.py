"""Command line tools reporting disk, memory, process and uptime statistics."""

from __future__ import annotations

import argparse
from datetime import datetime

from sigarstats import host
from sigarstats.formatting import (
    format_percent,
    format_size,
    format_start_time,
    format_total,
    format_uptime,
    use_percent,
)
from sigarstats.types import FileSystemUsage, NotImplementedOnPlatform


def _no_options(prog: str, description: str, argv: list[str] | None) -> None:
    argparse.ArgumentParser(prog=prog, description=description).parse_args(argv)


def _df_line(*columns: str) -> str:
    fs, size, used, avail, pct, mounted = columns
    return f"{fs:<15} {size:>4} {used:>4} {avail:>5} {pct:>4} {mounted:<15}"


def run_df(argv: list[str] | None = None) -> int:
    """Print space usage of every mounted filesystem."""
    _no_options("df", "Report filesystem disk space usage.", argv)
    try:
        filesystems = host.get_file_systems()
    except OSError as exc:
        print(f"Failed to get list of filesystems: {exc}", end="")
        return -1

    print(_df_line("Filesystem", "Size", "Used", "Avail", "Use%", "Mounted on"))
    for fs in filesystems:
        try:
            usage = host.get_file_system_usage(fs.dir_name)
        except OSError:
            usage = FileSystemUsage()
        print(
            _df_line(
                fs.dev_name,
                format_size(usage.total),
                format_size(usage.used),
                format_size(usage.avail),
                format_percent(use_percent(usage)),
                fs.dir_name,
            )
        )
    return 0


def run_free(argv: list[str] | None = None) -> int:
    """Print memory and swap usage in kilobytes."""
    _no_options("free", "Report memory and swap usage.", argv)
    mem = host.get_mem()
    swap = host.get_swap()

    def kb(value: int) -> int:
        return value // 1024

    print(f"{'total':>18} {'used':>10} {'free':>10}")
    print(f"Mem:    {kb(mem.total):10d} {kb(mem.used):10d} {kb(mem.free):10d}")
    print(f"-/+ buffers/cache: {kb(mem.actual_used):10d} {kb(mem.actual_free):10d}")
    print(f"Swap:   {kb(swap.total):10d} {kb(swap.used):10d} {kb(swap.free):10d}")
    return 0


def run_ps(argv: list[str] | None = None) -> int:
    """Print a line for every process that can be inspected."""
    _no_options("ps", "Report process status.", argv)
    print("  PID  PPID STIME     TIME    RSS USER            S COMMAND")
    for pid in host.get_proc_list():
        try:
            state = host.get_proc_state(pid)
            mem = host.get_proc_mem(pid)
            proc_time = host.get_proc_time(pid)
            args = host.get_proc_args(pid)
        except (OSError, NotImplementedOnPlatform):
            continue
        print(
            f"{pid:5d} {state.ppid:5d} "
            f"{format_start_time(proc_time)} {format_total(proc_time)} "
            f"{mem.resident // 1024:6d} {state.username:<15} {state.state.value} "
            f"{' '.join(args)}"
        )
    return 0


def run_uptime(argv: list[str] | None = None) -> int:
    """Print the time, the uptime and the load averages."""
    _no_options("uptime", "Report how long the system has been running.", argv)
    uptime = host.get_uptime()
    try:
        avg = host.get_load_average()
    except NotImplementedOnPlatform:
        print("Failed to get load average", end="")
        return 0
    now = datetime.now().strftime("%H:%M:%S")
    print(
        f" {now} up {format_uptime(uptime)} load average: "
        f"{avg.one:.2f}, {avg.five:.2f}, {avg.fifteen:.2f}"
    )
    return 0


_COMMANDS = {
    "df": run_df,
    "free": run_free,
    "ps": run_ps,
    "uptime": run_uptime,
}


def main(argv: list[str] | None = None) -> int:
    """Run one of the reporting commands."""
    parser = argparse.ArgumentParser(
        prog="sigarstats", description="Report host statistics."
    )
    parser.add_argument("command", choices=sorted(_COMMANDS))
    parser.add_argument("args", nargs=argparse.REMAINDER)
    ns = parser.parse_args(argv)
    return _COMMANDS[ns.command](ns.args)