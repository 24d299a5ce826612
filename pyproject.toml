[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cloudlet"
version = "0.1.0"
description = "Run code workloads in lightweight virtual machines: workload agents, initramfs helpers, x86-64 boot tables and a command-line client"
requires-python = ">=3.10"
keywords = [
    "virtual-machine",
    "vmm",
    "microvm",
    "initramfs",
    "workload",
    "serverless",
    "gdt",
    "mptable",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
]
dependencies = [
    "requests>=2.28",
    "tomli>=2.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[project.scripts]
cloudlet = "cloudlet.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["cloudlet"]

[tool.hatch.build.targets.sdist]
include = ["cloudlet", "tests"]

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
