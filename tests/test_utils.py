import pytest

from pyboycore.utils import (
    carry_add8,
    carry_add16,
    carry_sub8,
    half_carry_add8,
    half_carry_add16,
    half_carry_sub8,
    is_bit_set,
)


@pytest.mark.parametrize("bit", range(8))
def test_single_bit_values(bit):
    value = 1 << bit
    for other in range(8):
        assert is_bit_set(value, other) == (other == bit)


def test_all_and_no_bits():
    assert all(is_bit_set(0xFF, bit) for bit in range(8))
    assert not any(is_bit_set(0x00, bit) for bit in range(8))


def test_half_carry_add8_boundary():
    assert half_carry_add8(0x0F, 0x01, 0x00)
    assert not half_carry_add8(0x0E, 0x01, 0x00)


def test_half_carry_add8_ignores_high_nibbles_and_is_symmetric():
    for a in range(0, 256, 7):
        for b in range(0, 256, 11):
            assert half_carry_add8(a, b, 1) == half_carry_add8(a & 0x0F, b & 0x0F, 1)
            assert half_carry_add8(a, b, 0) == half_carry_add8(b, a, 0)


def test_carry_add8_matches_wrapped_sum():
    for a in range(256):
        for b in range(0, 256, 5):
            wrapped = (a + b) & 0xFF
            assert carry_add8(a, b, 0) == (wrapped < a)


def test_carry_add8_with_carry_in():
    assert carry_add8(0xFF, 0x00, 0x01)
    assert not carry_add8(0xFE, 0x00, 0x01)


def test_half_carry_sub8_matches_nibble_borrow():
    for a in range(256):
        for b in range(0, 256, 3):
            wrapped = (a - b) & 0x0F
            assert half_carry_sub8(a, b, 0) == (wrapped > (a & 0x0F))


def test_carry_sub8_equal_operands_depend_on_carry():
    for a in range(256):
        assert carry_sub8(a, a, 1)
        assert not carry_sub8(a, a, 0)


def test_carry_sub8_without_carry_is_ordering():
    for a in range(0, 256, 3):
        for b in range(0, 256, 5):
            if a != b:
                assert carry_sub8(a, b, 0) == ((a - b) & 0xFF > a or b > a)


def test_half_carry_add16_boundary():
    assert half_carry_add16(0x0FFF, 0x0001, 0x0000)
    assert half_carry_add16(0xF0FF, 0x0F00, 0x0000) == half_carry_add16(0x00FF, 0x0F00, 0x0000)


def test_carry_add16_matches_wrapped_sum():
    for a in range(0, 0x10000, 0x0FFF):
        for b in range(0, 0x10000, 0x1111):
            wrapped = (a + b) & 0xFFFF
            assert carry_add16(a, b, 0) == (wrapped < a)