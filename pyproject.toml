[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cocbs"
version = "0.1.0"
description = "Building blocks for cooperative conflict-based search in multi-agent path finding"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "multi-agent path finding",
    "MAPF",
    "CBS",
    "conflict-based search",
    "vertex cover",
    "mutex propagation",
    "planning",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["cocbs"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
