"""A small Game Boy (DMG) emulator: CPU, memory map, timers, joypad and PPU."""

__version__ = "0.0.1"