import pytest

from pyboycore.joypad import Button
from pyboycore.mmu import DMA_CYCLES, MMU, ROM_SIZE
from pyboycore.utils import is_bit_set


@pytest.fixture
def cartridge():
    return bytes(i & 0xFF for i in range(ROM_SIZE))


@pytest.fixture
def mmu(cartridge):
    return MMU(cartridge)


def test_short_cartridge_rejected():
    with pytest.raises(ValueError):
        MMU(b"\x00" * 16)


def test_rom_is_loaded_and_read_only(mmu, cartridge):
    assert mmu.read_byte(0x0150) == cartridge[0x0150]
    mmu.write_byte(0x0150, cartridge[0x0150] ^ 0xFF)
    assert mmu.read_byte(0x0150) == cartridge[0x0150]


def test_io_defaults(mmu):
    assert mmu.read_byte(0xFF40) == 0x91
    assert mmu.read_byte(0xFF0F) == 0xE1
    assert mmu.read_byte(0xFF04) == 0xAB
    assert mmu.read_byte(0xFF00) == 0xCF


def test_work_ram_round_trip_and_echo(mmu):
    mmu.write_byte(0xC123, 0x5A)
    assert mmu.read_byte(0xC123) == 0x5A
    assert mmu.read_byte(0xE123) == 0x5A
    mmu.write_byte(0xE200, 0x3C)
    assert mmu.read_byte(0xC200) == 0x3C


@pytest.mark.parametrize("address", [0xA000, 0xBFFF, 0xFEA0, 0xFEFF])
def test_blocked_regions(mmu, address):
    mmu.write_byte(address, 0x77)
    assert mmu.read_byte(address) == 0x00


def test_divider_write_resets(mmu):
    mmu.write_byte(0xFF04, 0x12)
    assert mmu.read_byte(0xFF04) == 0x00


def test_joypad_register_keeps_only_select_bits(mmu):
    mmu.write_byte(0xFF00, 0xFF)
    assert mmu.read_byte(0xFF00) & 0x30 == 0x30
    mmu.write_byte(0xFF00, 0x00)
    assert mmu.read_byte(0xFF00) & 0x30 == 0x00
    assert mmu.read_byte(0xFF00) & 0xC0 == 0xC0


def test_press_key_requests_joypad_interrupt(mmu):
    mmu.press_key(Button.START)
    assert is_bit_set(mmu.read_byte(0xFF0F), 4)
    assert not is_bit_set(mmu.read_byte(0xFF00), Button.START)
    mmu.release_key(Button.START)
    assert mmu.read_byte(0xFF00) & 0x0F == 0x0F


def test_press_key_without_selection_raises_no_interrupt(mmu):
    mmu.write_byte(0xFF00, 0x30)
    mmu.press_key(Button.A)
    assert not is_bit_set(mmu.read_byte(0xFF0F), 4)


def test_request_interrupt_sets_bit(mmu):
    before = mmu.read_byte(0xFF0F)
    mmu.request_interrupt(2)
    assert mmu.read_byte(0xFF0F) == before | (1 << 2)


def test_request_interrupt_rejects_bad_bit(mmu):
    with pytest.raises(ValueError):
        mmu.request_interrupt(5)


def test_timer_increments_on_falling_edge(mmu):
    mmu.write_byte(0xFF07, 0x05)
    mmu.write_byte(0xFF04, 0x00)
    before = mmu.read_byte(0xFF05)
    for _ in range(16):
        mmu.update_timers(1)
    assert mmu.read_byte(0xFF05) == before + 1


def test_timer_disabled_does_not_count(mmu):
    mmu.write_byte(0xFF07, 0x01)
    before = mmu.read_byte(0xFF05)
    for _ in range(64):
        mmu.update_timers(1)
    assert mmu.read_byte(0xFF05) == before


def test_timer_overflow_reloads_and_interrupts(mmu):
    mmu.write_byte(0xFF07, 0x05)
    mmu.write_byte(0xFF04, 0x00)
    mmu.write_byte(0xFF05, 0xFF)
    mmu.write_byte(0xFF06, 0x42)
    mmu.write_byte(0xFF0F, 0x00)
    for _ in range(16):
        mmu.update_timers(1)
    assert mmu.read_byte(0xFF05) == 0x42
    assert is_bit_set(mmu.read_byte(0xFF0F), 2)


def test_dma_copies_after_delay(mmu):
    data = bytes((i * 3) & 0xFF for i in range(0xA0))
    for offset, value in enumerate(data):
        mmu.write_byte(0xC000 + offset, value)
    oam_before = bytes(mmu.read_byte(0xFE00 + i) for i in range(0xA0))
    mmu.write_byte(0xFF46, 0xC0)
    mmu.update_timers(DMA_CYCLES - 1)
    assert bytes(mmu.read_byte(0xFE00 + i) for i in range(0xA0)) == oam_before
    mmu.update_timers(1)
    assert bytes(mmu.read_byte(0xFE00 + i) for i in range(0xA0)) == data