[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mapfsolve"
version = "0.1.0"
description = "Multi-agent path finding on grid maps: path tables, PIBT, winPIBT and Parallel Push & Swap"
requires-python = ">=3.10"
dependencies = []
keywords = ["mapf", "multi-agent", "path-finding", "pibt", "planning", "grid"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mapfsolve"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
