"""Parsing helpers for cgroup files and discovery of cgroup subsystems."""

from __future__ import annotations

import os
import re
from collections.abc import Container
from dataclasses import dataclass, field

_U64_MAX = (1 << 64) - 1
_DIGITS = re.compile(r"[0-9]+")


class CgroupsMissingError(Exception):
    """/proc/cgroups was not found: cgroups are unsupported or the rootfs is wrong."""

    def __init__(self) -> None:
        super().__init__("cgroups not found or unsupported by OS")


class InvalidFormatError(ValueError):
    """A line does not hold a valid key/value pair."""

    def __init__(self) -> None:
        super().__init__("error invalid key/value format")


@dataclass
class Metadata:
    """ID and path of a cgroup relative to its subsystem's mountpoint."""

    id: str = ""
    path: str = ""


@dataclass
class Mountinfo:
    """The fields of a mountinfo line that matter for cgroups."""

    mountpoint: str = ""
    filesystem_type: str = ""
    super_options: list[str] = field(default_factory=list)


def _lines(path: str):
    with open(path, encoding="utf-8", errors="replace") as handle:
        for line in handle:
            yield line.rstrip("\r\n")


def parse_uint(value: bytes | str) -> int:
    """Parse an unsigned 64-bit integer, ignoring surrounding whitespace.

    Negative values are clamped to 0.
    """
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    text = value.strip()
    if _DIGITS.fullmatch(text):
        number = int(text)
        if number <= _U64_MAX:
            return number
        raise ValueError(f"value out of range: {text!r}")
    if text.startswith("-") and _DIGITS.fullmatch(text[1:]) and int(text[1:]) > 0:
        return 0
    raise ValueError(f"invalid unsigned integer: {text!r}")


def parse_cgroup_param_key_value(line: str) -> tuple[str, int]:
    """Split a ``key value`` line into its key and unsigned value."""
    parts = line.split()
    if len(parts) != 2:
        raise InvalidFormatError()
    try:
        value = parse_uint(parts[1])
    except ValueError as exc:
        raise ValueError(
            f"unable to convert param value ({parts[1]!r}) to uint64: {exc}"
        ) from exc
    return parts[0], value


def parse_uint_from_file(*path: str) -> int:
    """Read a single unsigned value from a file; a missing file reads as 0."""
    try:
        with open(os.path.join(*path), "rb") as handle:
            data = handle.read()
    except FileNotFoundError:
        return 0
    return parse_uint(data)


def parse_mountinfo_line(line: str) -> Mountinfo:
    """Parse one line of /proc/<pid>/mountinfo."""
    fields = line.split()
    if len(fields) < 10:
        raise ValueError(
            "invalid mountinfo line, expected at least 10 fields but got "
            f"{len(fields)} from line='{line}'"
        )
    mountpoint = fields[4]
    try:
        separator = fields.index("-")
    except ValueError:
        raise ValueError(
            f"invalid mountinfo line, separator ('-') not found in line='{line}'"
        ) from None
    rest = fields[separator + 1:]
    if len(rest) < 3:
        raise ValueError(
            "invalid mountinfo line, expected at least 3 fields after separator "
            f"but got {len(rest)} from line='{line}'"
        )
    return Mountinfo(
        mountpoint=mountpoint,
        filesystem_type=rest[0],
        super_options=rest[2].split(","),
    )


def supported_subsystems(rootfs_mountpoint: str = "/") -> set[str]:
    """Names of the cgroup subsystems the kernel supports and has enabled."""
    rootfs_mountpoint = rootfs_mountpoint or "/"
    try:
        lines = list(_lines(os.path.join(rootfs_mountpoint, "proc", "cgroups")))
    except FileNotFoundError:
        raise CgroupsMissingError() from None

    subsystems: set[str] = set()
    for line in lines:
        if line.startswith("#"):
            continue
        fields = line.split()
        if not fields:
            continue
        if len(fields) > 3 and fields[3] == "0":
            continue
        subsystems.add(fields[0])
    return subsystems


def subsystem_mountpoints(
    rootfs_mountpoint: str, subsystems: Container[str]
) -> dict[str, str]:
    """Map each of *subsystems* to the first mountpoint found for it."""
    rootfs_mountpoint = rootfs_mountpoint or "/"
    mounts: dict[str, str] = {}
    for raw in _lines(os.path.join(rootfs_mountpoint, "proc", "self", "mountinfo")):
        line = raw.strip()
        if not line:
            continue
        mount = parse_mountinfo_line(line)
        if mount.filesystem_type != "cgroup":
            continue
        if not mount.mountpoint.startswith(rootfs_mountpoint):
            continue
        for opt in mount.super_options:
            _, eq, name = opt.partition("=")
            if not eq:
                name = opt
            if name in subsystems:
                mounts.setdefault(name, mount.mountpoint)
    return mounts


def process_cgroup_paths(rootfs_mountpoint: str, pid: int) -> dict[str, str]:
    """Map each subsystem of a process to its cgroup path."""
    rootfs_mountpoint = rootfs_mountpoint or "/"
    paths: dict[str, str] = {}
    for line in _lines(os.path.join(rootfs_mountpoint, "proc", str(pid), "cgroup")):
        fields = line.split(":")
        if len(fields) != 3:
            continue
        for subsystem in fields[1].split(","):
            paths[subsystem] = fields[2]
    return paths