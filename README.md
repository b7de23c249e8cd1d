# pyboycore

A small emulator for the original Game Boy (DMG). It models the CPU, the
memory map with its divider, timer, OAM DMA and joypad registers, and a
pixel-FIFO picture processor that renders 160×144 frames. A resizable pygame
window shows the frames and keeps their aspect ratio.

The machine starts in the register and I/O state a console has after its boot
ROM has run, with execution at address `0x0100`. The first 32 KiB of the
cartridge image are mapped as ROM; a shorter image is refused.

Whenever a program starts a serial transfer by writing `0x81` to the serial
control register, the byte in the serial data register is written to standard
output. This makes the package usable with test ROMs that report their results
over serial.

## Installation

```
pip install .
```

To install the test dependencies too:

```
pip install ".[test]"
```

## Running a game

```
pyboycore path/to/game.gb
```

Without an argument the command loads `rom.gb` from the current directory.
If the file cannot be read or is too short, the command exits with an error
message.

Close the window or press Escape to quit. When the program exits it prints
the number of frames drawn, the elapsed time and the average frame rate.

### Controls

| Game Boy | Keyboard  |
|----------|-----------|
| A        | J         |
| B        | K         |
| Select   | Backspace |
| Start    | Enter     |
| Up       | W         |
| Down     | S         |
| Left     | A         |
| Right    | D         |

## Using the library

The `pyboycore.app.GameBoy` class ties the components together. It does not
need a window:

```python
from pathlib import Path

from pyboycore.app import GameBoy
from pyboycore.joypad import Button

gb = GameBoy(Path("rom.gb").read_bytes())
gb.on_frame = lambda pixels: print("frame", len(pixels))
gb.set_button(Button.START, True)
cycles = gb.step()
```

`step` runs one instruction (or services one interrupt), advances the timers
and the picture processor by the cycles it took, and returns those cycles.
`frames` counts finished frames. `on_frame`, if set, is called with the frame
buffer: a list of 160 × 144 pixel values in `0xRRGGBB` form, row by row.

The pieces can also be used on their own:

- `pyboycore.mmu.MMU` holds the memory map: `read_byte`, `write_byte`,
  `update_timers`, `request_interrupt`, `press_key` and `release_key`.
- `pyboycore.cpu.CPU` executes instructions against an `MMU` with
  `execute_next`. Its `serial` argument takes a callable that receives each
  serial character instead of standard output. It raises `UnknownOpcodeError`
  for opcodes it does not implement. With the `pyboycore.cpu` logger at
  `DEBUG` level, every instruction is logged with the registers and the four
  bytes at PC.
- `pyboycore.registers.Registers` is the register file, with `Flag` naming the
  flag bits; `pyboycore.alu` and `pyboycore.prefixed` hold the arithmetic and
  the 0xCB-prefixed instructions.
- `pyboycore.ppu.PPU` advances one dot at a time with `tick`; `tile_row` and
  `palette_to_color` decode tile data and palettes into `Color` shades.
- `pyboycore.joypad.Joypad` keeps the state of the `Button`s.

## What it does not do

- There is no sound: the audio registers hold values but nothing plays.
- There is no memory bank controller support, so cartridges larger than
  32 KiB do not work beyond their first two banks. Cartridge RAM is absent:
  reads from it return 0 and writes are ignored, so nothing is saved.
- Only the original monochrome model is emulated.

## Tests

```
pytest
```