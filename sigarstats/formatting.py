"""Human-readable formatting of sizes, percentages, uptimes and process times."""

from __future__ import annotations

import math
import time
from datetime import datetime
from decimal import Decimal

from sigarstats.types import FileSystemUsage, ProcTime, Uptime

_ORDERS = ("K", "M", "G", "T", "P", "E")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_U64_MASK = (1 << 64) - 1


def format_size(size: int) -> str:
    """Format a byte count compactly, e.g. ``1.0K`` or `` 12M``."""
    if size < 973:
        return f"{size:3d} "

    order = 0
    while True:
        remain = size & 1023
        size >>= 10

        if size >= 973:
            order += 1
            continue

        if size < 9 or (size == 9 and remain < 973):
            remain = (remain * 5 + 256) // 512
            if remain >= 10:
                size += 1
                remain = 0
            return f"{size}.{remain}{_ORDERS[order]}"

        if remain >= 512:
            size += 1
        return f"{size:3d}{_ORDERS[order]}"


def format_percent(percent: float) -> str:
    """Format a percentage with the shortest exact decimal and a ``%`` sign."""
    if math.isnan(percent):
        text = "NaN"
    elif math.isinf(percent):
        text = "+Inf" if percent > 0 else "-Inf"
    else:
        text = format(Decimal(repr(float(percent))), "f")
        if "." in text:
            text = text.rstrip("0").rstrip(".")
    return text + "%"


def use_percent(usage: FileSystemUsage) -> float:
    """Percentage of usable space in use, rounded up to a whole percent."""
    b_used = ((usage.total - usage.free) & _U64_MASK) // 1024
    b_avail = usage.avail // 1024
    utotal = b_used + b_avail
    if utotal == 0:
        return 0.0
    u100 = b_used * 100
    pct, rem = divmod(u100, utotal)
    if rem:
        pct += 1
    return (float(pct) / 100.0) * 100.0


def format_uptime(uptime: Uptime) -> str:
    """Format uptime as ``[N day(s), ]HH:MM``."""
    seconds = int(uptime.length)
    days = seconds // (60 * 60 * 24)
    prefix = ""
    if days:
        prefix = f"{days} day{'s' if days > 1 else ''}, "
    minutes = seconds // 60
    hours = (minutes // 60) % 24
    minutes %= 60
    return f"{prefix}{hours:2d}:{minutes:02d}"


def format_start_time(proc_time: ProcTime, now: float | None = None) -> str:
    """Format a process start time: ``HH:MM`` within a day, else ``MonDD``.

    *now* is the current time in epoch seconds and defaults to the clock.
    """
    if proc_time.start_time == 0:
        return "00:00"
    start_seconds = proc_time.start_time // 1000
    start = datetime.fromtimestamp(start_seconds)
    if now is None:
        now = time.time()
    if now - start_seconds < 60 * 60 * 24:
        return f"{start.hour:02d}:{start.minute:02d}"
    return f"{_MONTHS[start.month - 1]}{start.day:02d}"


def format_total(proc_time: ProcTime) -> str:
    """Format total process CPU time as ``HH:MM:SS``, hours modulo a day."""
    t = proc_time.total // 1000
    t, ss = divmod(t, 60)
    t, mm = divmod(t, 60)
    hh = t % 24
    return f"{hh:02d}:{mm:02d}:{ss:02d}"