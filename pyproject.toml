[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "topohub"
version = "0.1.0"
description = "Resource models, an in-memory resource store and reconcilers for bare-metal hosts reached over Redfish or SSH"
requires-python = ">=3.10"
keywords = ["redfish", "ssh", "dhcp", "bare-metal", "reconciler", "pxe", "ztp"]
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
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["topohub"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
