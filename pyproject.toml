[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "distrifein"
version = "0.1.0"
description = "Event-driven broadcast primitives (best-effort, reliable, uniform reliable) over local TCP, with a heartbeat failure detector"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "distributed-systems",
    "broadcast",
    "reliable-broadcast",
    "uniform-reliable-broadcast",
    "failure-detector",
    "event-bus",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
distrifein = "distrifein.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["distrifein"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
