[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "keybinder"
version = "0.1.0"
description = "Keyboard remapping daemon driven by JSON profiles with layers, tap sequences and macros"
requires-python = ">=3.10"
dependencies = []
keywords = ["keyboard", "remapping", "keybinding", "evdev", "uinput", "macro"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: No Input/Output (Daemon)",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
keybinder = "keybinder.main:main"

[tool.hatch.build.targets.wheel]
packages = ["keybinder"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
