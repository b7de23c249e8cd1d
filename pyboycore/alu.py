"""Arithmetic and logic operations of the CPU and their effect on the flags."""

from __future__ import annotations

from .registers import Flag, Registers
from .utils import (
    carry_add8,
    carry_add16,
    carry_sub8,
    half_carry_add8,
    half_carry_add16,
    half_carry_sub8,
)


def _carry_in(regs: Registers, use_carry: bool) -> int:
    return 1 if use_carry and regs.flag(Flag.C) else 0


def _set_logic_flags(regs: Registers, half_carry: bool) -> None:
    regs.set_flag(Flag.Z, regs.a == 0x00)
    regs.set_flag(Flag.N, False)
    regs.set_flag(Flag.H, half_carry)
    regs.set_flag(Flag.C, False)


def add(regs: Registers, value: int, use_carry: bool = False) -> None:
    """Add ``value`` (plus the carry flag for ADC) to A."""
    carry = _carry_in(regs, use_carry)
    regs.set_flag(Flag.H, half_carry_add8(regs.a, value, carry))
    regs.set_flag(Flag.C, carry_add8(regs.a, value, carry))
    regs.a = (regs.a + value + carry) & 0xFF
    regs.set_flag(Flag.Z, regs.a == 0x00)
    regs.set_flag(Flag.N, False)


def sub(regs: Registers, value: int, use_carry: bool = False) -> None:
    """Subtract ``value`` (plus the carry flag for SBC) from A."""
    carry = _carry_in(regs, use_carry)
    regs.set_flag(Flag.H, half_carry_sub8(regs.a, value, carry))
    regs.set_flag(Flag.C, carry_sub8(regs.a, value, carry))
    regs.a = (regs.a - value - carry) & 0xFF
    regs.set_flag(Flag.Z, regs.a == 0x00)
    regs.set_flag(Flag.N, True)


def compare(regs: Registers, value: int) -> None:
    """Set the flags as a subtraction of ``value`` from A would, leaving A alone."""
    regs.set_flag(Flag.H, half_carry_sub8(regs.a, value, 0))
    regs.set_flag(Flag.C, carry_sub8(regs.a, value, 0))
    regs.set_flag(Flag.Z, (regs.a - value) & 0xFF == 0x00)
    regs.set_flag(Flag.N, True)


def and_(regs: Registers, value: int) -> None:
    """A &= value."""
    regs.a &= value & 0xFF
    _set_logic_flags(regs, half_carry=True)


def xor(regs: Registers, value: int) -> None:
    """A ^= value."""
    regs.a = (regs.a ^ value) & 0xFF
    _set_logic_flags(regs, half_carry=False)


def or_(regs: Registers, value: int) -> None:
    """A |= value."""
    regs.a = (regs.a | value) & 0xFF
    _set_logic_flags(regs, half_carry=False)


def inc(regs: Registers, value: int) -> int:
    """Return ``value + 1`` as a byte, setting Z, N and H; C is kept."""
    result = (value + 1) & 0xFF
    regs.set_flag(Flag.Z, result == 0x00)
    regs.set_flag(Flag.N, False)
    regs.set_flag(Flag.H, result & 0x0F == 0x00)
    return result


def dec(regs: Registers, value: int) -> int:
    """Return ``value - 1`` as a byte, setting Z, N and H; C is kept."""
    regs.set_flag(Flag.H, half_carry_sub8(value, 1, 0))
    result = (value - 1) & 0xFF
    regs.set_flag(Flag.Z, result == 0x00)
    regs.set_flag(Flag.N, True)
    return result


def add_hl(regs: Registers, value: int) -> None:
    """HL += value, setting N, H and C; Z is kept."""
    regs.set_flag(Flag.H, half_carry_add16(regs.hl, value, 0))
    regs.set_flag(Flag.C, carry_add16(regs.hl, value, 0))
    regs.hl = (regs.hl + value) & 0xFFFF
    regs.set_flag(Flag.N, False)


def sp_plus_offset(regs: Registers, offset: int) -> int:
    """Return SP plus the signed byte ``offset``, with the flags of ADD SP,e."""
    offset &= 0xFF
    low = regs.sp & 0xFF
    regs.set_flag(Flag.Z, False)
    regs.set_flag(Flag.N, False)
    regs.set_flag(Flag.H, half_carry_add8(low, offset, 0))
    regs.set_flag(Flag.C, carry_add8(low, offset, 0))
    signed = offset - 0x100 if offset & 0x80 else offset
    return (regs.sp + signed) & 0xFFFF


def daa(regs: Registers) -> None:
    """Adjust A to packed BCD after an addition or subtraction."""
    adjustment = 0
    if regs.flag(Flag.N):
        if regs.flag(Flag.H):
            adjustment += 0x06
        if regs.flag(Flag.C):
            adjustment += 0x60
        regs.a = (regs.a - adjustment) & 0xFF
    else:
        if regs.flag(Flag.H) or regs.a & 0x0F > 0x09:
            adjustment += 0x06
        if regs.flag(Flag.C) or regs.a > 0x99:
            adjustment += 0x60
            regs.set_flag(Flag.C, True)
        regs.a = (regs.a + adjustment) & 0xFF
    regs.set_flag(Flag.Z, regs.a == 0x00)
    regs.set_flag(Flag.H, False)