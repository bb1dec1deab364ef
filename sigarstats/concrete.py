"""Statistics gathered from the running host, including periodic CPU sampling."""

from __future__ import annotations

import queue
import threading
from collections.abc import Callable
from datetime import timedelta

from sigarstats import host
from sigarstats.types import (
    Cpu,
    FDUsage,
    FileSystemUsage,
    HugeTLBPages,
    LoadAverage,
    Mem,
    Rusage,
    Swap,
)


def _seconds(interval: float | timedelta) -> float:
    if isinstance(interval, timedelta):
        return interval.total_seconds()
    return float(interval)


class CpuSampler:
    """Samples CPU counters in a background thread.

    The first sample holds absolute counters and is available at once; every
    later sample is the difference from the previous reading. Only the most
    recent unread sample is kept: readings taken while one is pending are
    dropped.
    """

    def __init__(
        self,
        interval: float | timedelta,
        sample: Callable[[], Cpu] = host.get_cpu,
    ) -> None:
        seconds = _seconds(interval)
        if seconds <= 0:
            raise ValueError("collection interval must be positive")
        self._interval = seconds
        self._sample = sample
        self._samples: queue.Queue[Cpu] = queue.Queue(maxsize=1)
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, name="cpu-sampler", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        current = self._sample()
        self._samples.put(current)
        while not self._stop_event.wait(self._interval):
            previous, current = current, self._sample()
            try:
                self._samples.put_nowait(current.delta(previous))
            except queue.Full:
                pass

    @property
    def running(self) -> bool:
        """Whether the sampling thread is still alive."""
        return self._thread.is_alive()

    def get(self, timeout: float | None = None) -> Cpu:
        """Wait for the next sample; raise TimeoutError if none arrives in time."""
        try:
            return self._samples.get(timeout=timeout)
        except queue.Empty:
            raise TimeoutError("no CPU sample available") from None

    def stop(self) -> None:
        """Stop sampling and wait for the thread to finish."""
        self._stop_event.set()
        if self._thread is not threading.current_thread():
            self._thread.join()

    def __enter__(self) -> CpuSampler:
        return self

    def __exit__(self, *args) -> None:
        self.stop()


class ConcreteSigar:
    """Statistics source backed by the running host."""

    def collect_cpu_stats(self, collection_interval: float | timedelta) -> CpuSampler:
        """Start sampling CPU counters every *collection_interval* seconds."""
        return CpuSampler(collection_interval)

    def get_load_average(self) -> LoadAverage:
        return host.get_load_average()

    def get_mem(self) -> Mem:
        return host.get_mem()

    def get_swap(self) -> Swap:
        return host.get_swap()

    def get_huge_tlb_pages(self) -> HugeTLBPages:
        return host.get_huge_tlb_pages()

    def get_file_system_usage(self, path: str) -> FileSystemUsage:
        return host.get_file_system_usage(path)

    def get_fd_usage(self) -> FDUsage:
        return host.get_fd_usage()

    def get_rusage(self, who: int) -> Rusage:
        """Resource usage: 0 for this process, 1 for its children, 2 for this thread."""
        return host.get_rusage(who)