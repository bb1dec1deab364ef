"""An in-memory statistics source with canned results, for use in tests."""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass, field
from datetime import timedelta

from sigarstats.types import Cpu, FileSystemUsage, LoadAverage, Mem, Swap

_POLL_SECONDS = 0.01


class _CpuFeed:
    """Forwards CPU samples pushed into a source queue to a reader."""

    def __init__(self, source: queue.Queue[Cpu], halt: threading.Event) -> None:
        self._source = source
        self._halt = halt
        self._samples: queue.Queue[Cpu] = queue.Queue(maxsize=1)
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name="fake-cpu-feed", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not (self._halt.is_set() or self._stopped.is_set()):
            try:
                cpu = self._source.get(timeout=_POLL_SECONDS)
            except queue.Empty:
                continue
            try:
                self._samples.put_nowait(cpu)
            except queue.Full:
                pass

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def get(self, timeout: float | None = None) -> Cpu:
        try:
            return self._samples.get(timeout=timeout)
        except queue.Empty:
            raise TimeoutError("no CPU sample available") from None

    def stop(self) -> None:
        self._stopped.set()
        self._thread.join()

    def __enter__(self) -> _CpuFeed:
        return self

    def __exit__(self, *args) -> None:
        self.stop()


@dataclass
class FakeSigar:
    """Returns the values and raises the errors it is configured with."""

    load_average: LoadAverage = field(default_factory=LoadAverage)
    load_average_err: BaseException | None = None

    mem: Mem = field(default_factory=Mem)
    mem_err: BaseException | None = None

    swap: Swap = field(default_factory=Swap)
    swap_err: BaseException | None = None

    file_system_usage: FileSystemUsage = field(default_factory=FileSystemUsage)
    file_system_usage_err: BaseException | None = None
    file_system_usage_path: str = ""

    cpu_stats: queue.Queue = field(default_factory=lambda: queue.Queue(maxsize=1))
    stop_cpu_stats: threading.Event = field(default_factory=threading.Event)

    def collect_cpu_stats(self, collection_interval: float | timedelta) -> _CpuFeed:
        """Relay samples put on ``cpu_stats`` until ``stop_cpu_stats`` is set."""
        return _CpuFeed(self.cpu_stats, self.stop_cpu_stats)

    def get_load_average(self) -> LoadAverage:
        if self.load_average_err is not None:
            raise self.load_average_err
        return self.load_average

    def get_mem(self) -> Mem:
        if self.mem_err is not None:
            raise self.mem_err
        return self.mem

    def get_swap(self) -> Swap:
        if self.swap_err is not None:
            raise self.swap_err
        return self.swap

    def get_file_system_usage(self, path: str) -> FileSystemUsage:
        self.file_system_usage_path = path
        if self.file_system_usage_err is not None:
            raise self.file_system_usage_err
        return self.file_system_usage