"""Host, process and cgroup statistics, CPU sampling and process event notification."""

__version__ = "0.1.0"