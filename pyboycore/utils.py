"""Bit helpers and carry checks shared by the emulator components."""

from __future__ import annotations


def is_bit_set(value: int, bit: int) -> bool:
    """Return True when ``bit`` of ``value`` is 1."""
    return (value >> bit) & 0x01 == 0x01


def half_carry_add8(a: int, b: int, c: int) -> bool:
    """True when adding ``a + b + c`` carries out of bit 3."""
    return (a & 0x0F) + (b & 0x0F) + (c & 0x0F) > 0x0F


def half_carry_sub8(a: int, b: int, c: int) -> bool:
    """True when subtracting ``b + c`` from ``a`` borrows from bit 4."""
    return (b & 0x0F) + (c & 0x0F) > (a & 0x0F)


def carry_add8(a: int, b: int, c: int) -> bool:
    """True when the 8-bit sum ``a + b + c`` overflows."""
    return (a & 0xFF) + (b & 0xFF) + (c & 0xFF) > 0xFF


def carry_sub8(a: int, b: int, c: int) -> bool:
    """True when the 8-bit difference ``a - b - c`` borrows."""
    if a == b:
        return c == 0x01
    return b > a or b + c > a


def half_carry_add16(a: int, b: int, c: int) -> bool:
    """True when the 16-bit sum ``a + b + c`` carries out of bit 11."""
    return (a & 0x0FFF) + (b & 0x0FFF) + (c & 0xFFFF) > 0x0FFF


def carry_add16(a: int, b: int, c: int) -> bool:
    """True when the 16-bit sum ``a + b + c`` overflows."""
    return (a & 0xFFFF) + (b & 0xFFFF) + (c & 0xFFFF) > 0xFFFF