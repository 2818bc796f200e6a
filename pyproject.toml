[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sonoplugins"
version = "0.1.0"
description = "Sonobuoy plugins for Kubernetes clusters: cluster inventory, requirement checks, reliability reporting and plugin helpers"
requires-python = ">=3.10"
keywords = ["kubernetes", "sonobuoy", "plugin", "inventory", "reliability", "requirements"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
    "Topic :: System :: Monitoring",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
cluster-inventory = "sonoplugins.inventory:main"
requirements-check = "sonoplugins.requirements:main"

[tool.hatch.build.targets.wheel]
packages = ["sonoplugins"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
