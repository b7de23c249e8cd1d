"""Pixel processing unit: scanline state machine, pixel FIFOs and frame buffer."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import IntEnum

from .mmu import MMU
from .utils import is_bit_set

WIDTH = 160
HEIGHT = 144

LCDC = 0xFF40
STAT = 0xFF41
SCY = 0xFF42
SCX = 0xFF43
LY = 0xFF44
LYC = 0xFF45
BGP = 0xFF47
OBP0 = 0xFF48
OBP1 = 0xFF49
WY = 0xFF4A
WX = 0xFF4B

MAX_CYCLES_PER_SCANLINE = 456
LINES_PER_FRAME = 0x9A
VISIBLE_LINES = 0x90


class Mode(IntEnum):
    """PPU mode as reported in the low two bits of STAT."""

    HBLANK = 0
    VBLANK = 1
    OAMSCAN = 2
    RENDER = 3


class Color(IntEnum):
    """The four shades, as 0RGB pixel values."""

    WHITE = 0x00FAFBF6
    LIGHT_GRAY = 0x00C6B7BE
    DARK_GRAY = 0x00565A75
    BLACK = 0x000F0F1B


_SHADES = (Color.WHITE, Color.LIGHT_GRAY, Color.DARK_GRAY, Color.BLACK)


def tile_row(low: int, high: int) -> list[int]:
    """Decode one tile row from its two bit planes into eight colour ids, left first."""
    return [
        (is_bit_set(high, bit) << 1) | is_bit_set(low, bit)
        for bit in range(7, -1, -1)
    ]


def palette_to_color(palette: int, color_id: int) -> Color:
    """Map a colour id through a palette register to a shade."""
    return _SHADES[(palette >> (2 * color_id)) & 0x03]


@dataclass
class _SpritePixel:
    color: int
    palette_address: int
    bg_priority: bool


class PPU:
    """Advances one dot per tick and draws into ``frame_buffer``."""

    def __init__(self, mmu: MMU) -> None:
        self.frame_buffer = [0] * (WIDTH * HEIGHT)
        self.frame_ready = False
        self._background_fifo: deque[int] = deque()
        self._sprite_fifo: deque[_SpritePixel] = deque()
        self._sprite_buffer: list[int] = []
        self._interrupt_triggered = False
        self._cycles_waste = 0
        self._cycles_spent = 0
        self.mode = Mode(mmu.read_byte(STAT) & 0x03)
        self.ly = mmu.read_byte(LY)
        self.lx = 0
        self._w_present = False
        self._w_ly = 0
        self._w_lx = 0

    def _next_mode(self) -> Mode:
        mode, ly, cycles = self.mode, self.ly, self._cycles_spent
        visible = ly < VISIBLE_LINES
        if mode is Mode.VBLANK and ly == 0 and cycles == 0:
            return Mode.OAMSCAN
        if mode is Mode.OAMSCAN and visible and cycles < 0x50:
            return Mode.OAMSCAN
        if mode is Mode.OAMSCAN and visible and cycles == 0x50:
            return Mode.RENDER
        if mode is Mode.RENDER and visible:
            return Mode.RENDER if self.lx < WIDTH else Mode.HBLANK
        if mode is Mode.HBLANK and cycles == 0:
            return Mode.OAMSCAN if visible else Mode.VBLANK
        if mode is Mode.HBLANK and visible:
            return Mode.HBLANK
        if mode is Mode.VBLANK and VISIBLE_LINES <= ly < LINES_PER_FRAME:
            return Mode.VBLANK
        raise RuntimeError(
            f"invalid PPU state: mode={mode.name} ly={ly} cycles={cycles} lx={self.lx}"
        )

    def _update_mode(self, mmu: MMU) -> None:
        previous = self.mode
        self.mode = self._next_mode()
        if self.mode is previous:
            return

        stat = mmu.read_byte(STAT)
        mmu.write_byte(STAT, (stat & 0xFC) | self.mode)

        if self.mode is Mode.OAMSCAN:
            self._cycles_waste += 79
        elif self.mode is Mode.RENDER:
            self._cycles_waste += 12
        elif self.mode is Mode.VBLANK:
            self._w_ly = 0
            self.frame_ready = True
            mmu.request_interrupt(0)

        if (
            self.mode is not Mode.RENDER
            and not self._interrupt_triggered
            and is_bit_set(stat, 3 + self.mode)
        ):
            self._interrupt_triggered = True
            mmu.request_interrupt(1)

    def _find_object_address(self, mmu: MMU) -> int | None:
        return next(
            (
                address
                for address in self._sprite_buffer
                if self.lx < mmu.read_byte(address + 1) <= self.lx + 8
            ),
            None,
        )

    def _fill_sprite_fifo(self, mmu: MMU) -> None:
        obj_addr = self._find_object_address(mmu)
        if obj_addr is None:
            self._sprite_fifo.append(_SpritePixel(0, OBP0, True))
            return

        self._cycles_waste += 6
        lcdc = mmu.read_byte(LCDC)
        obj_enabled = is_bit_set(lcdc, 1)
        tall = is_bit_set(lcdc, 2)
        obj_y = mmu.read_byte(obj_addr)
        obj_x = mmu.read_byte(obj_addr + 1)
        tile_index = mmu.read_byte(obj_addr + 2)
        attributes = mmu.read_byte(obj_addr + 3)

        bg_priority = is_bit_set(attributes, 7)
        y_flip = is_bit_set(attributes, 6)
        x_flip = is_bit_set(attributes, 5)
        palette_address = OBP1 if is_bit_set(attributes, 4) else OBP0

        if tall:
            upper_half = y_flip ^ (self.ly + 8 < obj_y)
            tile_index = tile_index & 0xFE if upper_half else tile_index | 0x01
        tile_address = 0x8000 + 16 * tile_index

        row = ((self.ly + 16 - obj_y) & 0xFF) % 8
        if y_flip:
            row = 7 - row
        row_address = tile_address + row * 2

        pixels = tile_row(mmu.read_byte(row_address), mmu.read_byte(row_address + 1))
        if x_flip:
            pixels.reverse()

        for color in pixels[self.lx + 8 - obj_x:]:
            self._sprite_fifo.append(
                _SpritePixel(color if obj_enabled else 0, palette_address, bg_priority)
            )

    def _fill_background_fifo(self, mmu: MMU) -> None:
        scy = mmu.read_byte(SCY)
        scx = mmu.read_byte(SCX)
        wy = mmu.read_byte(WY)
        wx = mmu.read_byte(WX)
        lcdc = mmu.read_byte(LCDC)
        bg_enabled = is_bit_set(lcdc, 0)
        is_window = is_bit_set(lcdc, 5) and self.ly >= wy and self.lx + 7 >= wx

        if is_window:
            high_map = is_bit_set(lcdc, 6)
            column = ((self.lx + 7 - wx) & 0xFF) >> 3
            index_offset = ((self._w_ly >> 3) << 5) + column
            line_offset = (self._w_ly & 0x07) << 1
        else:
            high_map = is_bit_set(lcdc, 3)
            y = (scy + self.ly) & 0xFF
            x = (scx + self.lx) & 0xFF
            index_offset = ((y >> 3) << 5) + (x >> 3)
            line_offset = (y & 0x07) << 1

        tile_index = mmu.read_byte(index_offset + (0x9C00 if high_map else 0x9800))

        if is_bit_set(lcdc, 4):
            tile_address = 0x8000 + 16 * tile_index
        else:
            signed_index = tile_index - 0x100 if tile_index & 0x80 else tile_index
            tile_address = (0x9000 + 16 * signed_index) & 0xFFFF
        line_address = (tile_address + line_offset) & 0xFFFF

        pixels = tile_row(mmu.read_byte(line_address), mmu.read_byte(line_address + 1))
        self._background_fifo.extend(p if bg_enabled else 0 for p in pixels)

        if self.lx == 0:
            remaining = 1 + wx if is_window else 8 - (scx % 8)
            while len(self._background_fifo) > remaining:
                self._cycles_waste += 1
                self._background_fifo.popleft()

    def _render(self, mmu: MMU) -> None:
        if (
            not self._w_present
            and is_bit_set(mmu.read_byte(LCDC), 5)
            and self.ly >= mmu.read_byte(WY)
            and self.lx + 7 >= mmu.read_byte(WX)
        ):
            self._background_fifo.clear()
            self._w_present = True
            self._cycles_waste += 6
            self._w_lx = self.lx

        if not self._background_fifo:
            self._fill_background_fifo(mmu)

        if not self._sprite_fifo:
            self._fill_sprite_fifo(mmu)
            if self._cycles_waste > 0:
                if self.lx != 0 and len(self._background_fifo) < 6:
                    self._cycles_waste += 6 - len(self._background_fifo)
                return

        bg_pixel = self._background_fifo.popleft()
        sprite = self._sprite_fifo.popleft()
        if sprite.color == 0 or (sprite.bg_priority and bg_pixel > 0):
            color = palette_to_color(mmu.read_byte(BGP), bg_pixel)
        else:
            color = palette_to_color(mmu.read_byte(sprite.palette_address), sprite.color)
        self.frame_buffer[self.ly * WIDTH + self.lx] = int(color)
        self.lx += 1

    def _oamscan(self, mmu: MMU) -> None:
        height = 16 if is_bit_set(mmu.read_byte(LCDC), 2) else 8
        for address in range(0xFE00, 0xFEA0, 4):
            if len(self._sprite_buffer) >= 10:
                break
            obj_y = mmu.read_byte(address)
            if obj_y <= self.ly + 16 < obj_y + height:
                self._sprite_buffer.append(address)

    def _process(self, mmu: MMU) -> None:
        if self._cycles_waste > 0:
            self._cycles_waste -= 1
            return
        if self.mode is Mode.OAMSCAN:
            self._oamscan(mmu)
        elif self.mode is Mode.RENDER:
            self._render(mmu)

    def _start_scanline(self, mmu: MMU) -> None:
        self._interrupt_triggered = False
        self._background_fifo.clear()
        self._sprite_fifo.clear()
        self._sprite_buffer.clear()
        if self._w_present:
            self._w_ly = (self._w_ly + 1) & 0xFF
        self._w_lx = 0
        self._w_present = False
        lyc = mmu.read_byte(LYC)
        self.ly = (self.ly + 1) % LINES_PER_FRAME
        self.lx = 0

        mmu.write_byte(LY, self.ly)
        if lyc == self.ly:
            self._interrupt_triggered = True
            mmu.request_interrupt(1)

    def tick(self, mmu: MMU) -> None:
        """Advance by one dot."""
        self.frame_ready = False
        self._update_mode(mmu)
        self._process(mmu)

        self._cycles_spent = (self._cycles_spent + 1) % MAX_CYCLES_PER_SCANLINE
        if self._cycles_spent == 0:
            self._start_scanline(mmu)