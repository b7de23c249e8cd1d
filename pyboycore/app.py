"""The console wired together, and a windowed front end to play a cartridge."""

from __future__ import annotations

import argparse
import os
import time
from pathlib import Path
from typing import Callable, Optional, Sequence

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

import pygame  # noqa: E402

from .cpu import CPU  # noqa: E402
from .joypad import Button  # noqa: E402
from .mmu import MMU  # noqa: E402
from .ppu import HEIGHT, PPU, WIDTH  # noqa: E402

SCALE = 4
FRAME_PAUSE = 0.008

_KEYS = {
    Button.A: pygame.K_j,
    Button.B: pygame.K_k,
    Button.SELECT: pygame.K_BACKSPACE,
    Button.START: pygame.K_RETURN,
    Button.RIGHT: pygame.K_d,
    Button.LEFT: pygame.K_a,
    Button.UP: pygame.K_w,
    Button.DOWN: pygame.K_s,
}


def key_for_button(button: Button) -> Optional[int]:
    """Return the keyboard key bound to ``button``, or None if it has none."""
    return _KEYS.get(button)


class GameBoy:
    """CPU, memory and PPU stepped together."""

    def __init__(self, cartridge: bytes) -> None:
        self.mmu = MMU(cartridge)
        self.cpu = CPU()
        self.ppu = PPU(self.mmu)
        self.frames = 0
        self.on_frame: Optional[Callable[[list[int]], None]] = None

    def step(self) -> int:
        """Run one instruction and the hardware for its cycles; return the cycles."""
        cycles = self.cpu.execute_next(self.mmu)
        for _ in range(cycles):
            self.mmu.update_timers(1)
            self.ppu.tick(self.mmu)
            if self.ppu.frame_ready:
                self.frames += 1
                if self.on_frame is not None:
                    self.on_frame(self.ppu.frame_buffer)
        return cycles

    def set_button(self, button: Button, pressed: bool) -> None:
        """Press or release a joypad button."""
        if pressed:
            self.mmu.press_key(button)
        else:
            self.mmu.release_key(button)


def _to_rgb(buffer: Sequence[int]) -> bytes:
    return b"".join(pixel.to_bytes(3, "big") for pixel in buffer)


def _fit(size: tuple[int, int]) -> pygame.Rect:
    width, height = size
    scale = min(width / WIDTH, height / HEIGHT)
    target = pygame.Rect(0, 0, max(1, int(WIDTH * scale)), max(1, int(HEIGHT * scale)))
    target.center = (width // 2, height // 2)
    return target


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Play a cartridge in a window until it is closed or Escape is pressed."""
    parser = argparse.ArgumentParser(prog="pyboycore", description="Run a cartridge.")
    parser.add_argument(
        "rom", nargs="?", type=Path, default=Path.cwd() / "rom.gb",
        help="cartridge image (default: rom.gb in the working directory)",
    )
    args = parser.parse_args(argv)

    try:
        gameboy = GameBoy(args.rom.read_bytes())
    except (OSError, ValueError) as exc:
        raise SystemExit(f"unable to load cartridge: {exc}") from exc

    pygame.init()
    try:
        window = pygame.display.set_mode((WIDTH * SCALE, HEIGHT * SCALE), pygame.RESIZABLE)
        pygame.display.set_caption("pyboycore")
        running = True

        def present(buffer: list[int]) -> None:
            nonlocal running
            frame = pygame.image.frombuffer(_to_rgb(buffer), (WIDTH, HEIGHT), "RGB")
            target = _fit(window.get_size())
            window.fill((0, 0, 0))
            window.blit(pygame.transform.scale(frame, target.size), target)
            pygame.display.flip()
            time.sleep(FRAME_PAUSE)
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
            pressed = pygame.key.get_pressed()
            if pressed[pygame.K_ESCAPE]:
                running = False
            for button in Button:
                key = key_for_button(button)
                gameboy.set_button(button, key is not None and bool(pressed[key]))

        gameboy.on_frame = present
        start = time.monotonic()
        while running:
            gameboy.step()
        elapsed = time.monotonic() - start
    finally:
        pygame.quit()

    fps = gameboy.frames / elapsed if elapsed > 0 else 0.0
    print(f"frames: {gameboy.frames}, time elapsed: {elapsed:.3f}s, fps: {fps}")