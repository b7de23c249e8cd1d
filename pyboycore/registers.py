"""CPU register file, flag access and the memory operations built on it."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .mmu import MMU

# Operand index 6 in the 3-bit register field addresses memory at HL.
_HL_INDIRECT = 6
_OPERAND_NAMES = ("b", "c", "d", "e", "h", "l", None, "a")


class Flag(IntEnum):
    """A flag of the F register; the value is its bit position."""

    Z = 7
    N = 6
    H = 5
    C = 4


@dataclass
class Registers:
    """The eight 8-bit registers, the stack pointer and the program counter."""

    a: int = 0x01
    f: int = 0xB0
    b: int = 0x00
    c: int = 0x13
    d: int = 0x00
    e: int = 0xD8
    h: int = 0x01
    l: int = 0x4D  # noqa: E741
    sp: int = 0xFFFE
    pc: int = 0x0100

    @property
    def af(self) -> int:
        return (self.a << 8) | self.f

    @af.setter
    def af(self, value: int) -> None:
        self.a = (value >> 8) & 0xFF
        self.f = value & 0xF0

    @property
    def bc(self) -> int:
        return (self.b << 8) | self.c

    @bc.setter
    def bc(self, value: int) -> None:
        self.b = (value >> 8) & 0xFF
        self.c = value & 0xFF

    @property
    def de(self) -> int:
        return (self.d << 8) | self.e

    @de.setter
    def de(self, value: int) -> None:
        self.d = (value >> 8) & 0xFF
        self.e = value & 0xFF

    @property
    def hl(self) -> int:
        return (self.h << 8) | self.l

    @hl.setter
    def hl(self, value: int) -> None:
        self.h = (value >> 8) & 0xFF
        self.l = value & 0xFF

    def flag(self, flag: Flag) -> bool:
        """Return whether ``flag`` is set."""
        return (self.f >> flag) & 0x01 == 0x01

    def set_flag(self, flag: Flag, value: bool) -> None:
        """Set or clear ``flag``."""
        if value:
            self.f |= 1 << flag
        else:
            self.f &= ~(1 << flag) & 0xFF

    def read_operand(self, index: int, mmu: MMU) -> int:
        """Read the operand selected by a 3-bit register field (B C D E H L (HL) A)."""
        if index == _HL_INDIRECT:
            return mmu.read_byte(self.hl)
        return getattr(self, _operand_name(index))

    def write_operand(self, index: int, value: int, mmu: MMU) -> None:
        """Write the operand selected by a 3-bit register field."""
        value &= 0xFF
        if index == _HL_INDIRECT:
            mmu.write_byte(self.hl, value)
        else:
            setattr(self, _operand_name(index), value)

    def fetch_byte(self, mmu: MMU) -> int:
        """Read the byte at PC and advance PC."""
        value = mmu.read_byte(self.pc)
        self.pc = (self.pc + 1) & 0xFFFF
        return value

    def fetch_word(self, mmu: MMU) -> int:
        """Read a little-endian word at PC and advance PC past it."""
        low = self.fetch_byte(mmu)
        high = self.fetch_byte(mmu)
        return (high << 8) | low

    def push(self, mmu: MMU, value: int) -> None:
        """Push a 16-bit value: high byte first, low byte at the new SP."""
        self.sp = (self.sp - 1) & 0xFFFF
        mmu.write_byte(self.sp, (value >> 8) & 0xFF)
        self.sp = (self.sp - 1) & 0xFFFF
        mmu.write_byte(self.sp, value & 0xFF)

    def pop(self, mmu: MMU) -> int:
        """Pop a 16-bit value pushed by :meth:`push`."""
        low = mmu.read_byte(self.sp)
        self.sp = (self.sp + 1) & 0xFFFF
        high = mmu.read_byte(self.sp)
        self.sp = (self.sp + 1) & 0xFFFF
        return (high << 8) | low


def _operand_name(index: int) -> str:
    if not 0 <= index < len(_OPERAND_NAMES) or index == _HL_INDIRECT:
        raise ValueError(f"operand index must be 0 to 7, not {index}")
    name = _OPERAND_NAMES[index]
    assert name is not None
    return name