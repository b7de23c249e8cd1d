"""Joypad buttons and the state behind the P1 register."""

from __future__ import annotations

from enum import IntEnum

from .utils import is_bit_set


class Button(IntEnum):
    """A joypad button; the value is its bit in the joypad state."""

    A = 0
    B = 1
    SELECT = 2
    START = 3
    RIGHT = 4
    LEFT = 5
    UP = 6
    DOWN = 7
    UNKNOWN = 8


class Joypad:
    """Button state, one bit per button, 0 meaning pressed."""

    def __init__(self) -> None:
        self.state = 0xFF

    def read(self, register: int) -> int:
        """Return the P1 register value as seen for the given select bits."""
        actions_off = is_bit_set(register, 4)
        directions_off = is_bit_set(register, 5)
        if not actions_off and not directions_off:
            low = 0x0F & (self.state | (self.state >> 4))
        elif not actions_off:
            low = 0x0F & (self.state >> 4)
        elif not directions_off:
            low = 0x0F & self.state
        else:
            low = 0x0F
        return (register & 0xF0) | low

    def press(self, button: Button) -> bool:
        """Mark ``button`` pressed; return True if it was released before."""
        if button is Button.UNKNOWN or not is_bit_set(self.state, button):
            return False
        self.state &= ~(1 << button) & 0xFF
        return True

    def release(self, button: Button) -> None:
        """Mark ``button`` released."""
        if button is not Button.UNKNOWN:
            self.state |= 1 << button