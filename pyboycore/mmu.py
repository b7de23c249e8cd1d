"""Memory map, timers, DMA and joypad register of the console."""

from __future__ import annotations

from .joypad import Button, Joypad
from .utils import is_bit_set

ROM_SIZE = 0x8000
DMA_CYCLES = 0x0280
OAM_START = 0xFE00
OAM_SIZE = 0xA0

_IO_DEFAULTS = {
    0xFF00: 0xCF,
    0xFF02: 0x7E,
    0xFF04: 0xAB,
    0xFF07: 0xF8,
    0xFF0F: 0xE1,
    0xFF10: 0x80,
    0xFF11: 0xBF,
    0xFF12: 0xF3,
    0xFF13: 0xFF,
    0xFF14: 0xBF,
    0xFF16: 0x3F,
    0xFF18: 0xFF,
    0xFF19: 0xBF,
    0xFF1A: 0x7F,
    0xFF1B: 0xFF,
    0xFF1C: 0x9F,
    0xFF1D: 0xFF,
    0xFF1E: 0xBF,
    0xFF20: 0xFF,
    0xFF23: 0xBF,
    0xFF24: 0x77,
    0xFF25: 0xF3,
    0xFF26: 0xF1,
    0xFF40: 0x91,
    0xFF41: 0x85,
    0xFF46: 0xFF,
    0xFF47: 0xFC,
}

# Bit of the internal divider watched by the timer, per TAC clock select.
_TIMER_DIV_BITS = (9, 3, 5, 7)


class MMU:
    """The 64 KiB address space with its memory-mapped hardware."""

    def __init__(self, cartridge: bytes) -> None:
        if len(cartridge) < ROM_SIZE:
            raise ValueError(
                f"cartridge holds {len(cartridge)} bytes, at least {ROM_SIZE} needed"
            )
        self._memory = bytearray(0x10000)
        self._memory[:ROM_SIZE] = cartridge[:ROM_SIZE]
        for address, value in _IO_DEFAULTS.items():
            self._memory[address] = value
        self._div_counter = 0xABCC
        self._prev_and_result = False
        self._dma_cycles = 0
        self._joypad = Joypad()

    def read_byte(self, address: int) -> int:
        """Read one byte."""
        if 0xA000 <= address < 0xC000:
            return 0x00
        if 0xE000 <= address < 0xFE00:
            return self._memory[address - 0x2000]
        if 0xFEA0 <= address < 0xFF00:
            return 0x00
        if address == 0xFF00:
            return self._joypad.read(self._memory[0xFF00])
        if address == 0xFF04:
            return (self._div_counter >> 8) & 0xFF
        return self._memory[address]

    def write_byte(self, address: int, value: int) -> None:
        """Write one byte, honouring read-only and special regions."""
        value &= 0xFF
        if address == 0xFF46:
            self._dma_cycles = DMA_CYCLES

        if address < 0x8000 or 0xA000 <= address < 0xC000 or 0xFEA0 <= address < 0xFF00:
            return
        if 0xE000 <= address < 0xFE00:
            self._memory[address - 0x2000] = value
        elif address == 0xFF00:
            self._memory[0xFF00] = (self._memory[0xFF00] & 0xCF) | (value & 0x30)
        elif address == 0xFF04:
            self._div_counter = 0
        else:
            self._memory[address] = value

    def press_key(self, button: Button) -> None:
        """Press a button, raising the joypad interrupt when it is selected."""
        selected = (self._memory[0xFF00] >> 4) & 0x03 < 0x03
        if self._joypad.press(button) and selected:
            self.request_interrupt(4)

    def release_key(self, button: Button) -> None:
        """Release a button."""
        self._joypad.release(button)

    def request_interrupt(self, bit: int) -> None:
        """Set bit ``bit`` (0 to 4) of the interrupt flag register."""
        if not 0 <= bit <= 4:
            raise ValueError(f"interrupt bit must be 0 to 4, not {bit}")
        self.write_byte(0xFF0F, self.read_byte(0xFF0F) | (1 << bit))

    def update_timers(self, cycles: int) -> None:
        """Advance the divider, the timer and any running DMA transfer."""
        if self._dma_cycles > 0:
            self._dma_cycles = max(0, self._dma_cycles - cycles)
            if self._dma_cycles == 0:
                source = self._memory[0xFF46] << 8
                self._memory[OAM_START:OAM_START + OAM_SIZE] = self._memory[
                    source:source + OAM_SIZE
                ]

        self._div_counter = (self._div_counter + cycles) & 0xFFFF

        tac = self.read_byte(0xFF07)
        timer_enabled = is_bit_set(tac, 2)
        div_bit = _TIMER_DIV_BITS[tac & 0x03]
        and_result = timer_enabled and (self._div_counter >> div_bit) & 0x01 == 0x01

        if self._prev_and_result and not and_result:
            tima = (self.read_byte(0xFF05) + 1) & 0xFF
            if tima == 0x00:
                tima = self.read_byte(0xFF06)
                self.request_interrupt(2)
            self.write_byte(0xFF05, tima)

        self._prev_and_result = and_result