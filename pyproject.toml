[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "canine-watch"
version = "0.1.0"
description = "Host-level intrusion detection building blocks: events, an event bus, journal rules and monitoring, package verification and alert policy"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "intrusion-detection",
    "ids",
    "security",
    "journal",
    "systemd",
    "event-bus",
    "policy",
    "rpm",
    "dpkg",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security",
    "Topic :: System :: Logging",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["canine_watch"]

[tool.hatch.build.targets.sdist]
include = ["canine_watch", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
