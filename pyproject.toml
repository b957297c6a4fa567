[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "canbridge"
version = "0.1.0"
description = "CAN bus side of a publish/subscribe bridge: frame headers, control frame builders, reassembly, message layout conversion and node bookkeeping"
requires-python = ">=3.10"
dependencies = []
keywords = ["can", "socketcan", "canbus", "embedded", "robotics", "publish-subscribe"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems :: Controller Area Network (CAN)",
    "Topic :: System :: Networking",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
canbridge-sender = "canbridge.sender:main"

[tool.hatch.build.targets.wheel]
packages = ["canbridge"]

[tool.hatch.build.targets.sdist]
include = ["canbridge", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
