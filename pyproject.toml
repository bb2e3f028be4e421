[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vuinputd"
version = "0.3.2"
description = "Building blocks for mediating /dev/uinput devices between a Linux host and its containers: device nodes, udev runtime data, netlink announcements, namespaces and per-target job queues."
requires-python = ">=3.10"
dependencies = []
keywords = ["uinput", "udev", "netlink", "containers", "namespaces", "input devices"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Hardware",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["vuinputd"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
