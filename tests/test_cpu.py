import pytest

from pyboycore.cpu import CPU, UnknownOpcodeError
from pyboycore.mmu import MMU
from pyboycore.registers import Flag


def make(program, serial=None):
    rom = bytearray(0x8000)
    rom[0x100:0x100 + len(program)] = bytes(program)
    return CPU(serial), MMU(bytes(rom))


def test_initial_registers():
    cpu, _ = make([])
    assert cpu.regs.a == 0x01
    assert cpu.regs.f == 0xB0
    assert cpu.regs.sp == 0xFFFE
    assert cpu.regs.pc == 0x0100
    assert cpu.ime is False


def test_nop_advances_pc():
    cpu, mmu = make([0x00])
    assert cpu.execute_next(mmu) == 4
    assert cpu.regs.pc == 0x0101


def test_load_word_into_bc():
    cpu, mmu = make([0x01, 0x34, 0x12])
    assert cpu.execute_next(mmu) == 12
    assert cpu.regs.bc == 0x1234
    assert cpu.regs.pc == 0x0103


def test_push_pop_round_trip():
    cpu, mmu = make([0x01, 0x34, 0x12, 0xC5, 0xD1])
    cpu.execute_next(mmu)
    assert cpu.execute_next(mmu) == 16
    assert cpu.execute_next(mmu) == 12
    assert cpu.regs.de == 0x1234
    assert cpu.regs.sp == 0xFFFE


def test_call_and_return():
    program = [0x00] * 0x11
    program[0:3] = [0xCD, 0x10, 0x01]
    program[0x10] = 0xC9
    cpu, mmu = make(program)
    assert cpu.execute_next(mmu) == 24
    assert cpu.regs.pc == 0x0110
    assert cpu.regs.sp == 0xFFFC
    assert cpu.execute_next(mmu) == 16
    assert cpu.regs.pc == 0x0103
    assert cpu.regs.sp == 0xFFFE


def test_relative_jump_backwards():
    cpu, mmu = make([0x18, 0xFE])
    assert cpu.execute_next(mmu) == 12
    assert cpu.regs.pc == 0x0100


def test_conditional_jump_not_taken():
    cpu, mmu = make([0xAF, 0x20, 0x05])
    cpu.execute_next(mmu)
    assert cpu.regs.flag(Flag.Z)
    assert cpu.execute_next(mmu) == 8
    assert cpu.regs.pc == 0x0103


def test_xor_a_clears_a_and_sets_zero():
    cpu, mmu = make([0xAF])
    cpu.execute_next(mmu)
    assert cpu.regs.a == 0
    assert cpu.regs.flag(Flag.Z)
    assert not cpu.regs.flag(Flag.C)


def test_store_a_through_hl():
    cpu, mmu = make([0x21, 0x00, 0xC0, 0x77])
    cpu.execute_next(mmu)
    assert cpu.execute_next(mmu) == 8
    assert mmu.read_byte(0xC000) == cpu.regs.a


def test_register_copy():
    cpu, mmu = make([0x47])
    assert cpu.execute_next(mmu) == 4
    assert cpu.regs.b == cpu.regs.a


def test_inc_then_dec_restores_register():
    cpu, mmu = make([0x04, 0x05])
    before = cpu.regs.b
    cpu.execute_next(mmu)
    cpu.execute_next(mmu)
    assert cpu.regs.b == before
    assert cpu.regs.flag(Flag.N)


def test_prefixed_swap_twice_restores_a():
    cpu, mmu = make([0xCB, 0x37, 0xCB, 0x37])
    before = cpu.regs.a
    assert cpu.execute_next(mmu) == 8
    cpu.execute_next(mmu)
    assert cpu.regs.a == before


@pytest.mark.parametrize("opcode", [0x10, 0xD3, 0xDB, 0xDD, 0xE3, 0xE4, 0xEB, 0xEC, 0xED, 0xF4, 0xFC, 0xFD])
def test_unknown_opcode_raises(opcode):
    cpu, mmu = make([opcode])
    with pytest.raises(UnknownOpcodeError) as info:
        cpu.execute_next(mmu)
    assert info.value.opcode == opcode
    assert info.value.address == 0x0100


def test_halt_idles():
    cpu, mmu = make([0x76, 0x00])
    cpu.execute_next(mmu)
    assert cpu.halted
    assert cpu.execute_next(mmu) == 4
    assert cpu.regs.pc == 0x0101


def test_pending_interrupt_wakes_halt_without_ime():
    cpu, mmu = make([0x76, 0x00])
    cpu.execute_next(mmu)
    mmu.write_byte(0xFFFF, 0x01)
    cpu.execute_next(mmu)
    assert not cpu.halted
    assert cpu.regs.pc == 0x0102


def test_ei_takes_effect_after_next_instruction_and_interrupt_is_serviced():
    cpu, mmu = make([0xFB, 0x00, 0x00])
    mmu.write_byte(0xFFFF, 0x01)
    cpu.execute_next(mmu)
    assert not cpu.ime
    cpu.execute_next(mmu)
    assert cpu.ime
    assert cpu.execute_next(mmu) == 20
    assert cpu.regs.pc == 0x0040
    assert mmu.read_byte(0xFF0F) & 0x01 == 0
    assert not cpu.ime
    assert cpu.regs.pop(mmu) == 0x0102


def test_di_cancels_scheduled_ime():
    cpu, mmu = make([0xFB, 0xF3, 0x00])
    for _ in range(3):
        cpu.execute_next(mmu)
    assert not cpu.ime
    assert not cpu.ime_scheduled


def test_serial_output():
    received = []
    cpu, mmu = make([0x3E, 0x41, 0xE0, 0x01, 0x3E, 0x81, 0xE0, 0x02], received.append)
    for _ in range(4):
        cpu.execute_next(mmu)
    assert received == ["A"]
    assert mmu.read_byte(0xFF02) == 0x00