"""Notification of fork, exec and exit events of watched processes.

On Linux events come from the netlink process connector, which reports every
process on the system and is filtered here by the watch table. On BSD and
macOS a kqueue reports only the processes that have been registered.
"""

from __future__ import annotations

import errno
import os
import queue
import select
import socket
import struct
import sys
import threading
from dataclasses import dataclass
from typing import Protocol

from sigarstats.types import NotImplementedOnPlatform

_USE_KQUEUE = not sys.platform.startswith("linux") and hasattr(select, "KQ_NOTE_FORK")

if _USE_KQUEUE:
    PROC_EVENT_FORK = select.KQ_NOTE_FORK
    PROC_EVENT_EXEC = select.KQ_NOTE_EXEC
    PROC_EVENT_EXIT = select.KQ_NOTE_EXIT
else:
    PROC_EVENT_FORK = 0x00000001
    PROC_EVENT_EXEC = 0x00000002
    PROC_EVENT_EXIT = 0x80000000

PROC_EVENT_ALL = PROC_EVENT_FORK | PROC_EVENT_EXEC | PROC_EVENT_EXIT

# Event codes in the "what" field of a connector proc_event.
_WHAT_FORK = 0x00000001
_WHAT_EXEC = 0x00000002
_WHAT_EXIT = 0x80000000

_CN_IDX_PROC = 0x1
_CN_VAL_PROC = 0x1
_PROC_CN_MCAST_LISTEN = 1
_PROC_CN_MCAST_IGNORE = 2
_NETLINK_CONNECTOR = 11
_NLMSG_DONE = 3

_NLMSG_HEADER = struct.Struct("=IHHII")
_CN_MSG = struct.Struct("=IIIIHH")
_EVENT_HEADER = struct.Struct("=IIQ")
_FORK_EVENT = struct.Struct("=IIII")
_EXEC_EVENT = struct.Struct("=II")
_EXIT_EVENT = struct.Struct("=IIII")
_OP = struct.Struct("=I")

_POLL_SECONDS = 0.1


@dataclass(frozen=True)
class ProcEventFork:
    """A watched process called fork(); the child pid is 0 where unknown."""

    parent_pid: int
    child_pid: int = 0


@dataclass(frozen=True)
class ProcEventExec:
    """A watched process called exec()."""

    pid: int


@dataclass(frozen=True)
class ProcEventExit:
    """A watched process exited."""

    pid: int


class WatcherClosedError(RuntimeError):
    """The watcher has been closed and accepts no more watches."""

    def __init__(self) -> None:
        super().__init__("psnotify watcher is closed")


class Listener(Protocol):
    """The OS-specific source of process events."""

    def register(self, pid: int, flags: int) -> None: ...

    def unregister(self, pid: int) -> None: ...

    def poll(self, watcher: Watcher, timeout: float) -> None: ...

    def close(self) -> None: ...


def build_control_message(op: int, seq: int, pid: int) -> bytes:
    """Netlink message that tells the connector driver to start or stop reporting."""
    payload_len = _CN_MSG.size + _OP.size
    header = _NLMSG_HEADER.pack(_NLMSG_HEADER.size + payload_len, _NLMSG_DONE, 0, seq, pid)
    cn_msg = _CN_MSG.pack(_CN_IDX_PROC, _CN_VAL_PROC, 0, 0, _OP.size, 0)
    return header + cn_msg + _OP.pack(op)


class _NetlinkListener:
    """Listens to the Linux netlink process connector."""

    def __init__(self) -> None:
        self._sock = socket.socket(socket.AF_NETLINK, socket.SOCK_DGRAM, _NETLINK_CONNECTOR)
        self._seq = 0
        try:
            self._sock.bind((0, _CN_IDX_PROC))
            self._send(_PROC_CN_MCAST_LISTEN)
        except OSError:
            self._sock.close()
            raise

    def _send(self, op: int) -> None:
        self._seq = (self._seq + 1) & 0xFFFFFFFF
        message = build_control_message(op, self._seq, os.getpid())
        self._sock.sendto(message, (0, _CN_IDX_PROC))

    def register(self, pid: int, flags: int) -> None:
        """Nothing to do: the connector reports every process."""

    def unregister(self, pid: int) -> None:
        """Nothing to do: the connector reports every process."""

    def poll(self, watcher: Watcher, timeout: float) -> None:
        ready, _, _ = select.select([self._sock], [], [], timeout)
        if not ready:
            return
        buf = self._sock.recv(os.sysconf("SC_PAGE_SIZE"))
        if len(buf) < _NLMSG_HEADER.size:
            raise OSError(errno.EINVAL, "short netlink message")
        offset = 0
        while offset + _NLMSG_HEADER.size <= len(buf):
            length, msg_type, _, _, _ = _NLMSG_HEADER.unpack_from(buf, offset)
            if length < _NLMSG_HEADER.size or offset + length > len(buf):
                break
            if msg_type == _NLMSG_DONE:
                watcher.handle_event(buf[offset + _NLMSG_HEADER.size: offset + length])
            offset += (length + 3) & ~3

    def close(self) -> None:
        try:
            self._send(_PROC_CN_MCAST_IGNORE)
        finally:
            self._sock.close()


class _KqueueListener:
    """Listens to process events registered with a BSD kqueue."""

    def __init__(self) -> None:
        self._kq = select.kqueue()

    def _kevent(self, pid: int, fflags: int, flags: int) -> None:
        event = select.kevent(pid, filter=select.KQ_FILTER_PROC, flags=flags, fflags=fflags)
        self._kq.control([event], 0)

    def register(self, pid: int, flags: int) -> None:
        self._kevent(pid, flags, select.KQ_EV_ADD | select.KQ_EV_ENABLE)

    def unregister(self, pid: int) -> None:
        self._kevent(pid, 0, select.KQ_EV_DELETE)

    def poll(self, watcher: Watcher, timeout: float) -> None:
        for event in self._kq.control(None, 10, timeout):
            pid = int(event.ident)
            if event.fflags == select.KQ_NOTE_FORK:
                watcher.forks.put(ProcEventFork(parent_pid=pid))
            elif event.fflags == select.KQ_NOTE_EXEC:
                watcher.execs.put(ProcEventExec(pid=pid))
            elif event.fflags == select.KQ_NOTE_EXIT:
                watcher._drop_watch(pid)
                watcher.exits.put(ProcEventExit(pid=pid))

    def close(self) -> None:
        self._kq.close()


def create_listener() -> Listener:
    """The process event listener for this operating system."""
    if sys.platform.startswith("linux"):
        return _NetlinkListener()
    if hasattr(select, "kqueue"):
        return _KqueueListener()
    raise NotImplementedOnPlatform(sys.platform)


class Watcher:
    """Watches processes and queues their fork, exec and exit events.

    Events are put on the ``forks``, ``execs`` and ``exits`` queues; errors
    from the listener are put on ``errors``.
    """

    def __init__(self, listener: Listener | None = None) -> None:
        self._listener = listener if listener is not None else create_listener()
        self._watches: dict[int, int] = {}
        self._lock = threading.RLock()
        self._closed = False
        self._stop = threading.Event()
        self.forks: queue.Queue[ProcEventFork] = queue.Queue()
        self.execs: queue.Queue[ProcEventExec] = queue.Queue()
        self.exits: queue.Queue[ProcEventExit] = queue.Queue()
        self.errors: queue.Queue[BaseException] = queue.Queue()
        self._thread = threading.Thread(target=self._read_events, name="psnotify", daemon=True)
        self._thread.start()

    def _read_events(self) -> None:
        while not self._stop.is_set():
            try:
                self._listener.poll(self, _POLL_SECONDS)
            except OSError as exc:
                if self._stop.is_set():
                    break
                self.errors.put(exc)

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    @property
    def watched(self) -> dict[int, int]:
        """A copy of the watch table: pid to event flags."""
        with self._lock:
            return dict(self._watches)

    def watch(self, pid: int, flags: int) -> None:
        """Watch *pid* for the events in *flags*, a mask of PROC_EVENT_* values."""
        with self._lock:
            if self._closed:
                raise WatcherClosedError()
            if pid in self._watches:
                self._watches[pid] |= flags
            else:
                self._listener.register(pid, flags)
                self._watches[pid] = flags

    def remove_watch(self, pid: int) -> None:
        """Stop watching *pid*; raise KeyError if it is not watched."""
        with self._lock:
            if pid not in self._watches:
                raise KeyError(f"watch for pid={pid} does not exist")
            del self._watches[pid]
            self._listener.unregister(pid)

    def _drop_watch(self, pid: int) -> None:
        try:
            self.remove_watch(pid)
        except (KeyError, OSError):
            pass

    def is_watching(self, pid: int, event: int) -> bool:
        """Whether *pid* is watched for every event in *event*."""
        with self._lock:
            flags = self._watches.get(pid)
            return flags is not None and flags & event == event

    def handle_event(self, data: bytes) -> None:
        """Dispatch one connector message (cn_msg and proc_event) to the queues."""
        needed = _CN_MSG.size + _EVENT_HEADER.size + _EXIT_EVENT.size
        data = bytes(data).ljust(needed, b"\0")
        what, _, _ = _EVENT_HEADER.unpack_from(data, _CN_MSG.size)
        body = _CN_MSG.size + _EVENT_HEADER.size

        with self._lock:
            if what == _WHAT_FORK:
                _, parent_tgid, _, child_tgid = _FORK_EVENT.unpack_from(data, body)
                if self.is_watching(parent_tgid, PROC_EVENT_EXEC):
                    try:
                        self.watch(child_tgid, self._watches[parent_tgid])
                    except (WatcherClosedError, OSError):
                        pass
                if self.is_watching(parent_tgid, PROC_EVENT_FORK):
                    self.forks.put(ProcEventFork(parent_pid=parent_tgid, child_pid=child_tgid))
            elif what == _WHAT_EXEC:
                _, tgid = _EXEC_EVENT.unpack_from(data, body)
                if self.is_watching(tgid, PROC_EVENT_EXEC):
                    self.execs.put(ProcEventExec(pid=tgid))
            elif what == _WHAT_EXIT:
                _, tgid, _, _ = _EXIT_EVENT.unpack_from(data, body)
                if self.is_watching(tgid, PROC_EVENT_EXIT):
                    self._drop_watch(tgid)
                    self.exits.put(ProcEventExit(pid=tgid))

    def close(self) -> None:
        """Remove all watches, stop reading events and close the listener."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for pid in list(self._watches):
                self._drop_watch(pid)
        self._stop.set()
        if self._thread is not threading.current_thread():
            self._thread.join()
        try:
            self._listener.close()
        except OSError:
            pass

    def __enter__(self) -> Watcher:
        return self

    def __exit__(self, *args) -> None:
        self.close()