[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sigarstats"
version = "0.1.0"
description = "Host, process and cgroup statistics: CPU, memory, swap, file systems, processes and process events."
requires-python = ">=3.10"
keywords = ["sigar", "system", "monitoring", "cgroup", "metrics", "processes", "memory", "cpu"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Environment :: Console",
    "Operating System :: POSIX :: Linux",
    "Operating System :: MacOS",
    "Operating System :: POSIX :: BSD :: FreeBSD",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]
dependencies = [
    "psutil",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
sigarstats = "sigarstats.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["sigarstats"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
