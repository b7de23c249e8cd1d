"""The CPU: instruction decoding, execution, interrupts and the serial port."""

from __future__ import annotations

import logging
import sys
from functools import partial
from typing import Callable, Optional

from . import alu
from .mmu import MMU
from .prefixed import execute_prefixed
from .registers import Flag, Registers

_log = logging.getLogger(__name__)

_HL_INDIRECT = 6
_IE = 0xFFFF
_IF = 0xFF0F
_SB = 0xFF01
_SC = 0xFF02
_EI = 0xFB

# ALU operations in the order of their opcode field: ADD ADC SUB SBC AND XOR OR CP.
_ALU = (
    alu.add,
    partial(alu.add, use_carry=True),
    alu.sub,
    partial(alu.sub, use_carry=True),
    alu.and_,
    alu.xor,
    alu.or_,
    alu.compare,
)

_Handler = Callable[[MMU], int]


class UnknownOpcodeError(Exception):
    """Raised when the CPU fetches an opcode it does not implement."""

    def __init__(self, opcode: int, address: int) -> None:
        super().__init__(f"opcode {opcode:02X} at {address:04X} is not implemented")
        self.opcode = opcode
        self.address = address


def _write_stdout(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


def _signed(byte: int) -> int:
    return byte - 0x100 if byte & 0x80 else byte


class CPU:
    """Executes one instruction per call of :meth:`execute_next`."""

    def __init__(self, serial: Optional[Callable[[str], None]] = None) -> None:
        self.regs = Registers()
        self.ime = False
        self.ime_scheduled = False
        self.halted = False
        self._serial = serial if serial is not None else _write_stdout
        self._ops = self._build_table()

    def _build_table(self) -> list[Optional[_Handler]]:
        ops: list[Optional[_Handler]] = [None] * 256

        def put(opcode: int, handler: Callable[..., int], *args: object) -> None:
            ops[opcode] = partial(handler, *args)

        put(0x00, self._nop)
        for i, pair in enumerate(("bc", "de", "hl", "sp")):
            put(0x01 | i << 4, self._ld_rr_nn, pair)
            put(0x03 | i << 4, self._step_rr, pair, 1)
            put(0x09 | i << 4, self._add_hl_rr, pair)
            put(0x0B | i << 4, self._step_rr, pair, -1)

        for opcode, pair, delta in (
            (0x02, "bc", 0), (0x12, "de", 0), (0x22, "hl", 1), (0x32, "hl", -1),
        ):
            put(opcode, self._store_a, pair, delta)
            put(opcode | 0x08, self._load_a, pair, delta)

        for reg in range(8):
            put(0x04 | reg << 3, self._inc_r, reg)
            put(0x05 | reg << 3, self._dec_r, reg)
            put(0x06 | reg << 3, self._ld_r_n, reg)
            for src in range(8):
                put(0x40 | reg << 3 | src, self._ld_r_r, reg, src)
        for k, op in enumerate(_ALU):
            for src in range(8):
                put(0x80 | k << 3 | src, self._alu_r, op, src)
            put(0xC6 | k << 3, self._alu_n, op)

        put(0x07, self._rotate_a, True, False)
        put(0x0F, self._rotate_a, False, False)
        put(0x17, self._rotate_a, True, True)
        put(0x1F, self._rotate_a, False, True)
        put(0x08, self._ld_nn_sp)
        put(0x18, self._jr, None)
        put(0x27, self._daa)
        put(0x2F, self._cpl)
        put(0x37, self._scf)
        put(0x3F, self._ccf)
        put(0x76, self._halt)

        for cc in range(4):
            put(0x20 | cc << 3, self._jr, cc)
            put(0xC0 | cc << 3, self._ret, cc)
            put(0xC2 | cc << 3, self._jp, cc)
            put(0xC4 | cc << 3, self._call, cc)
        for i, pair in enumerate(("bc", "de", "hl", "af")):
            put(0xC1 | i << 4, self._pop, pair)
            put(0xC5 | i << 4, self._push, pair)
        for target in range(0x00, 0x40, 0x08):
            put(0xC7 | target, self._rst, target)

        put(0xC3, self._jp, None)
        put(0xC9, self._ret, None)
        put(0xCB, self._prefixed)
        put(0xCD, self._call, None)
        put(0xD9, self._reti)
        put(0xE0, self._ldh_store)
        put(0xE2, self._ld_c_store)
        put(0xE8, self._add_sp)
        put(0xE9, self._jp_hl)
        put(0xEA, self._ld_nn_a)
        put(0xF0, self._ldh_load)
        put(0xF2, self._ld_c_load)
        put(0xF3, self._di)
        put(0xF8, self._ld_hl_sp)
        put(0xF9, self._ld_sp_hl)
        put(0xFA, self._ld_a_nn)
        put(0xFB, self._ei)
        return ops

    def execute_next(self, mmu: MMU) -> int:
        """Service a pending interrupt or execute one instruction; return its cycles."""
        cycles = self._service_interrupts(mmu)
        if cycles > 0:
            return cycles
        if self.halted:
            return 4

        if _log.isEnabledFor(logging.DEBUG):
            _log.debug(self._trace(mmu))

        opcode = self.regs.fetch_byte(mmu)
        handler = self._ops[opcode]
        if handler is None:
            raise UnknownOpcodeError(opcode, (self.regs.pc - 1) & 0xFFFF)
        cycles = handler(mmu)

        if self.ime_scheduled and opcode != _EI:
            self.ime = True
            self.ime_scheduled = False

        if mmu.read_byte(_SC) == 0x81:
            self._serial(chr(mmu.read_byte(_SB)))
            mmu.write_byte(_SC, 0x00)

        return cycles

    def _service_interrupts(self, mmu: MMU) -> int:
        enabled = mmu.read_byte(_IE)
        requested = mmu.read_byte(_IF)
        pending = 0x1F & enabled & requested
        if not pending:
            return 0
        self.halted = False
        if not self.ime:
            return 0
        self.ime = False
        self.regs.push(mmu, self.regs.pc)
        bit = next(b for b in range(5) if (pending >> b) & 0x01)
        self.regs.pc = 0x0040 + 8 * bit
        mmu.write_byte(_IF, requested & ~(1 << bit) & 0xFF)
        return 20

    def _trace(self, mmu: MMU) -> str:
        r = self.regs
        mem = ",".join(f"{mmu.read_byte((r.pc + i) & 0xFFFF):02X}" for i in range(4))
        return (
            f"A:{r.a:02X} F:{r.f:02X} B:{r.b:02X} C:{r.c:02X} D:{r.d:02X} "
            f"E:{r.e:02X} H:{r.h:02X} L:{r.l:02X} SP:{r.sp:04X} PC:{r.pc:04X} "
            f"PCMEM:{mem}"
        )

    def _condition(self, cc: Optional[int]) -> bool:
        if cc is None:
            return True
        flag = Flag.Z if cc < 2 else Flag.C
        return self.regs.flag(flag) == bool(cc & 0x01)

    # Loads and 8-bit arithmetic

    def _nop(self, mmu: MMU) -> int:
        return 4

    def _ld_r_r(self, dst: int, src: int, mmu: MMU) -> int:
        self.regs.write_operand(dst, self.regs.read_operand(src, mmu), mmu)
        return 8 if _HL_INDIRECT in (dst, src) else 4

    def _ld_r_n(self, dst: int, mmu: MMU) -> int:
        self.regs.write_operand(dst, self.regs.fetch_byte(mmu), mmu)
        return 12 if dst == _HL_INDIRECT else 8

    def _alu_r(self, op: Callable[[Registers, int], None], src: int, mmu: MMU) -> int:
        op(self.regs, self.regs.read_operand(src, mmu))
        return 8 if src == _HL_INDIRECT else 4

    def _alu_n(self, op: Callable[[Registers, int], None], mmu: MMU) -> int:
        op(self.regs, self.regs.fetch_byte(mmu))
        return 8

    def _inc_r(self, index: int, mmu: MMU) -> int:
        value = self.regs.read_operand(index, mmu)
        self.regs.write_operand(index, alu.inc(self.regs, value), mmu)
        return 12 if index == _HL_INDIRECT else 4

    def _dec_r(self, index: int, mmu: MMU) -> int:
        value = self.regs.read_operand(index, mmu)
        self.regs.write_operand(index, alu.dec(self.regs, value), mmu)
        return 12 if index == _HL_INDIRECT else 4

    def _store_a(self, pair: str, delta: int, mmu: MMU) -> int:
        address = getattr(self.regs, pair)
        mmu.write_byte(address, self.regs.a)
        if delta:
            self.regs.hl = (address + delta) & 0xFFFF
        return 8

    def _load_a(self, pair: str, delta: int, mmu: MMU) -> int:
        address = getattr(self.regs, pair)
        self.regs.a = mmu.read_byte(address)
        if delta:
            self.regs.hl = (address + delta) & 0xFFFF
        return 8

    def _ldh_store(self, mmu: MMU) -> int:
        mmu.write_byte(0xFF00 | self.regs.fetch_byte(mmu), self.regs.a)
        return 12

    def _ldh_load(self, mmu: MMU) -> int:
        self.regs.a = mmu.read_byte(0xFF00 | self.regs.fetch_byte(mmu))
        return 12

    def _ld_c_store(self, mmu: MMU) -> int:
        mmu.write_byte(0xFF00 | self.regs.c, self.regs.a)
        return 8

    def _ld_c_load(self, mmu: MMU) -> int:
        self.regs.a = mmu.read_byte(0xFF00 | self.regs.c)
        return 8

    def _ld_nn_a(self, mmu: MMU) -> int:
        mmu.write_byte(self.regs.fetch_word(mmu), self.regs.a)
        return 16

    def _ld_a_nn(self, mmu: MMU) -> int:
        self.regs.a = mmu.read_byte(self.regs.fetch_word(mmu))
        return 16

    def _rotate_a(self, left: bool, through_carry: bool, mmu: MMU) -> int:
        regs = self.regs
        a = regs.a
        carry_in = regs.flag(Flag.C)
        if left:
            carry_out = a & 0x80 == 0x80
            fill = carry_in if through_carry else carry_out
            regs.a = ((a << 1) & 0xFF) | int(fill)
        else:
            carry_out = a & 0x01 == 0x01
            fill = carry_in if through_carry else carry_out
            regs.a = (a >> 1) | (0x80 if fill else 0x00)
        regs.set_flag(Flag.Z, False)
        regs.set_flag(Flag.N, False)
        regs.set_flag(Flag.H, False)
        regs.set_flag(Flag.C, carry_out)
        return 4

    def _daa(self, mmu: MMU) -> int:
        alu.daa(self.regs)
        return 4

    def _cpl(self, mmu: MMU) -> int:
        self.regs.a = ~self.regs.a & 0xFF
        self.regs.set_flag(Flag.N, True)
        self.regs.set_flag(Flag.H, True)
        return 4

    def _scf(self, mmu: MMU) -> int:
        self.regs.set_flag(Flag.N, False)
        self.regs.set_flag(Flag.H, False)
        self.regs.set_flag(Flag.C, True)
        return 4

    def _ccf(self, mmu: MMU) -> int:
        self.regs.set_flag(Flag.N, False)
        self.regs.set_flag(Flag.H, False)
        self.regs.set_flag(Flag.C, not self.regs.flag(Flag.C))
        return 4

    def _prefixed(self, mmu: MMU) -> int:
        return execute_prefixed(self.regs, mmu, self.regs.fetch_byte(mmu))

    # 16-bit operations

    def _ld_rr_nn(self, pair: str, mmu: MMU) -> int:
        setattr(self.regs, pair, self.regs.fetch_word(mmu))
        return 12

    def _step_rr(self, pair: str, delta: int, mmu: MMU) -> int:
        setattr(self.regs, pair, (getattr(self.regs, pair) + delta) & 0xFFFF)
        return 8

    def _add_hl_rr(self, pair: str, mmu: MMU) -> int:
        alu.add_hl(self.regs, getattr(self.regs, pair))
        return 8

    def _ld_nn_sp(self, mmu: MMU) -> int:
        address = self.regs.fetch_word(mmu)
        mmu.write_byte(address, self.regs.sp & 0xFF)
        mmu.write_byte((address + 1) & 0xFFFF, self.regs.sp >> 8)
        return 20

    def _add_sp(self, mmu: MMU) -> int:
        self.regs.sp = alu.sp_plus_offset(self.regs, self.regs.fetch_byte(mmu))
        return 16

    def _ld_hl_sp(self, mmu: MMU) -> int:
        self.regs.hl = alu.sp_plus_offset(self.regs, self.regs.fetch_byte(mmu))
        return 12

    def _ld_sp_hl(self, mmu: MMU) -> int:
        self.regs.sp = self.regs.hl
        return 8

    def _push(self, pair: str, mmu: MMU) -> int:
        self.regs.push(mmu, getattr(self.regs, pair))
        return 16

    def _pop(self, pair: str, mmu: MMU) -> int:
        setattr(self.regs, pair, self.regs.pop(mmu))
        return 12

    # Control flow

    def _jr(self, cc: Optional[int], mmu: MMU) -> int:
        offset = _signed(self.regs.fetch_byte(mmu))
        if self._condition(cc):
            self.regs.pc = (self.regs.pc + offset) & 0xFFFF
            return 12
        return 8

    def _jp(self, cc: Optional[int], mmu: MMU) -> int:
        address = self.regs.fetch_word(mmu)
        if self._condition(cc):
            self.regs.pc = address
            return 16
        return 12

    def _jp_hl(self, mmu: MMU) -> int:
        self.regs.pc = self.regs.hl
        return 4

    def _call(self, cc: Optional[int], mmu: MMU) -> int:
        address = self.regs.fetch_word(mmu)
        if self._condition(cc):
            self.regs.push(mmu, self.regs.pc)
            self.regs.pc = address
            return 24
        return 12

    def _ret(self, cc: Optional[int], mmu: MMU) -> int:
        if cc is None:
            self.regs.pc = self.regs.pop(mmu)
            return 16
        if self._condition(cc):
            self.regs.pc = self.regs.pop(mmu)
            return 20
        return 8

    def _reti(self, mmu: MMU) -> int:
        self.regs.pc = self.regs.pop(mmu)
        self.ime = True
        return 16

    def _rst(self, target: int, mmu: MMU) -> int:
        self.regs.push(mmu, self.regs.pc)
        self.regs.pc = target
        return 16

    def _halt(self, mmu: MMU) -> int:
        self.halted = True
        return 4

    def _di(self, mmu: MMU) -> int:
        self.ime = False
        self.ime_scheduled = False
        return 4

    def _ei(self, mmu: MMU) -> int:
        self.ime_scheduled = True
        return 4