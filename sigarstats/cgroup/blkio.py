"""Limits and metrics of the cgroup "blkio" subsystem.

The blkio subsystem controls and monitors access to I/O on block devices by
the tasks in a cgroup.
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from sigarstats.cgroup.util import InvalidFormatError, Metadata, parse_uint

_U64_MAX = (1 << 64) - 1
_DIGITS = re.compile(r"[0-9]+")
_SEPARATORS = re.compile(r"[\s:]+")


@dataclass(frozen=True)
class DeviceID:
    """Major and minor numbers of a Linux block device."""

    major: int = 0
    minor: int = 0


@dataclass
class OperationValues:
    """I/O limits or metrics split by read, write, sync and async operations."""

    read: int = 0
    write: int = 0
    async_: int = 0
    sync: int = 0


@dataclass
class ThrottleDevice:
    """Throttle limits and metrics of a single device.

    A limit of zero means no limit.
    """

    device_id: DeviceID = field(default_factory=DeviceID)
    read_limit_bps: int = 0
    write_limit_bps: int = 0
    read_limit_iops: int = 0
    write_limit_iops: int = 0
    bytes: OperationValues = field(default_factory=OperationValues)
    ios: OperationValues = field(default_factory=OperationValues)


@dataclass
class ThrottlePolicy:
    """Upper I/O limits and metrics of the devices used by a cgroup."""

    devices: list[ThrottleDevice] = field(default_factory=list)
    total_bytes: int = 0
    total_ios: int = 0


@dataclass
class BlkioValue:
    """A single blkio value associated with a device."""

    device_id: DeviceID = field(default_factory=DeviceID)
    operation: str = ""
    value: int = 0


@dataclass
class BlockIOSubsystem(Metadata):
    """Limits and metrics from the blkio subsystem."""

    throttle: ThrottlePolicy = field(default_factory=ThrottlePolicy)


def _parse_device_number(text: str) -> int:
    if not _DIGITS.fullmatch(text):
        raise ValueError(f"invalid device number: {text!r}")
    number = int(text)
    if number > _U64_MAX:
        raise ValueError(f"device number out of range: {text!r}")
    return number


def parse_blkio_value(line: str) -> BlkioValue:
    """Parse a line such as ``245:1 read 18880`` or ``254:1 1909``."""
    fields = [part for part in _SEPARATORS.split(line) if part]
    if len(fields) not in (3, 4):
        raise InvalidFormatError()

    major = _parse_device_number(fields[0])
    minor = _parse_device_number(fields[1])
    if len(fields) == 3:
        operation = ""
        value = parse_uint(fields[2])
    else:
        operation = fields[2].lower()
        value = parse_uint(fields[3])
    return BlkioValue(device_id=DeviceID(major, minor), operation=operation, value=value)


def read_blkio_values(*path: str) -> list[BlkioValue] | None:
    """Read the device values of one blkio file; None if the file is missing."""
    try:
        handle = open(os.path.join(*path), encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return None
    values: list[BlkioValue] = []
    with handle:
        for raw in handle:
            text = raw.rstrip("\r\n")
            stripped = text.strip()
            if not stripped or not stripped[0].isnumeric():
                continue
            values.append(parse_blkio_value(text))
    return values


def collect_op_values(values: Iterable[BlkioValue]) -> dict[DeviceID, OperationValues]:
    """Group per-operation values by device."""
    by_device: dict[DeviceID, OperationValues] = {}
    for bv in values:
        ops = by_device.setdefault(bv.device_id, OperationValues())
        if bv.operation == "read":
            ops.read = bv.value
        elif bv.operation == "write":
            ops.write = bv.value
        elif bv.operation == "async":
            ops.async_ = bv.value
        elif bv.operation == "sync":
            ops.sync = bv.value
    return by_device


_LIMIT_FILES = (
    ("blkio.throttle.read_bps_device", "read_limit_bps"),
    ("blkio.throttle.write_bps_device", "write_limit_bps"),
    ("blkio.throttle.read_iops_device", "read_limit_iops"),
    ("blkio.throttle.write_iops_device", "write_limit_iops"),
)


def read_throttle_policy(path: str) -> ThrottlePolicy:
    """Read the limits and metrics of the blkio throttling policy."""
    devices: dict[DeviceID, ThrottleDevice] = {}

    def device(device_id: DeviceID) -> ThrottleDevice:
        return devices.setdefault(device_id, ThrottleDevice(device_id=device_id))

    for name, attr in (
        ("blkio.throttle.io_service_bytes", "bytes"),
        ("blkio.throttle.io_serviced", "ios"),
    ):
        values = read_blkio_values(path, name)
        if values is not None:
            for device_id, ops in collect_op_values(values).items():
                setattr(device(device_id), attr, ops)

    for name, attr in _LIMIT_FILES:
        values = read_blkio_values(path, name)
        if values is not None:
            for bv in values:
                setattr(device(bv.device_id), attr, bv.value)

    policy = ThrottlePolicy(devices=list(devices.values()))
    for dev in policy.devices:
        policy.total_bytes += dev.bytes.read + dev.bytes.write
        policy.total_ios += dev.ios.read + dev.ios.write
    return policy


def read_blkio(path: str) -> BlockIOSubsystem:
    """Read the blkio subsystem metrics of the cgroup at *path*."""
    return BlockIOSubsystem(throttle=read_throttle_policy(path))