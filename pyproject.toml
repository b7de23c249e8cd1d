[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pyboycore"
version = "0.0.1"
description = "A small Game Boy (DMG) emulator: CPU, memory, timers, joypad and pixel-FIFO PPU"
requires-python = ">=3.10"
dependencies = [
    "pygame",
]
keywords = ["gameboy", "emulator", "dmg", "lr35902", "sm83"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: End Users/Desktop",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
pyboycore = "pyboycore.app:main"

[tool.hatch.build.targets.wheel]
packages = ["pyboycore"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
