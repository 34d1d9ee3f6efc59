[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "procsim"
version = "0.1.0"
description = "A simulated operating-system kernel: process scheduling, paged address translation, TLB, write-back page cache and I/O devices."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "operating-system",
    "simulation",
    "scheduler",
    "mmu",
    "tlb",
    "page-cache",
    "pcb",
    "srt",
    "sjf",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["procsim"]

[tool.hatch.build.targets.sdist]
include = ["procsim", "tests", "README.md", "pyproject.toml"]

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
