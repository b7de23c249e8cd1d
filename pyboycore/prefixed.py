"""Instructions behind the 0xCB prefix: rotates, shifts, swaps and bit operations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from .registers import Flag, Registers

if TYPE_CHECKING:
    from .mmu import MMU

_HL_INDIRECT = 6

# Each shift takes the operand and the incoming carry flag and returns the
# result byte together with the new carry flag.
_Shift = Callable[[int, bool], "tuple[int, bool]"]


def _rlc(value: int, carry_in: bool) -> tuple[int, bool]:
    carry = value & 0x80 == 0x80
    return ((value << 1) | int(carry)) & 0xFF, carry


def _rrc(value: int, carry_in: bool) -> tuple[int, bool]:
    carry = value & 0x01 == 0x01
    return (value >> 1) | (0x80 if carry else 0x00), carry


def _rl(value: int, carry_in: bool) -> tuple[int, bool]:
    return ((value << 1) | int(carry_in)) & 0xFF, value & 0x80 == 0x80


def _rr(value: int, carry_in: bool) -> tuple[int, bool]:
    return (value >> 1) | (0x80 if carry_in else 0x00), value & 0x01 == 0x01


def _sla(value: int, carry_in: bool) -> tuple[int, bool]:
    return (value << 1) & 0xFF, value & 0x80 == 0x80


def _sra(value: int, carry_in: bool) -> tuple[int, bool]:
    return (value >> 1) | (value & 0x80), value & 0x01 == 0x01


def _swap(value: int, carry_in: bool) -> tuple[int, bool]:
    return ((value & 0x0F) << 4) | (value >> 4), False


def _srl(value: int, carry_in: bool) -> tuple[int, bool]:
    return value >> 1, value & 0x01 == 0x01


_SHIFTS: tuple[_Shift, ...] = (_rlc, _rrc, _rl, _rr, _sla, _sra, _swap, _srl)


def execute_prefixed(regs: Registers, mmu: MMU, opcode: int) -> int:
    """Execute the 0xCB-prefixed instruction ``opcode`` and return its cycle count."""
    if not 0x00 <= opcode <= 0xFF:
        raise ValueError(f"prefixed opcode must be a byte, not {opcode!r}")

    index = opcode & 0x07
    indirect = index == _HL_INDIRECT
    bit = (opcode >> 3) & 0x07

    if opcode < 0x40:
        value = regs.read_operand(index, mmu)
        result, carry = _SHIFTS[opcode >> 3](value, regs.flag(Flag.C))
        regs.write_operand(index, result, mmu)
        regs.set_flag(Flag.Z, result == 0x00)
        regs.set_flag(Flag.N, False)
        regs.set_flag(Flag.H, False)
        regs.set_flag(Flag.C, carry)
        return 16 if indirect else 8

    if opcode < 0x80:
        value = regs.read_operand(index, mmu)
        regs.set_flag(Flag.Z, (value >> bit) & 0x01 == 0x00)
        regs.set_flag(Flag.N, False)
        regs.set_flag(Flag.H, True)
        return 12 if indirect else 8

    value = regs.read_operand(index, mmu)
    if opcode < 0xC0:
        value &= ~(1 << bit) & 0xFF
    else:
        value |= 1 << bit
    regs.write_operand(index, value, mmu)
    return 16 if indirect else 8