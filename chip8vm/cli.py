#!/usr/bin/env python3
"""
Command-line front-end: load a ROM file and run it headless or in a window
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

import numpy as np

from .chip8 import DEFAULT_CYCLE_RATE, Chip8Emulator, DEFAULT_QUIRKS, load_rom_file
from .display import pixel_density, render_ascii, save_display_png
from .errors import Chip8Error, Chip8Fault


def positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="CHIP-8 virtual machine")
    parser.add_argument("rom", type=Path, help="ROM file to load")
    parser.add_argument("--cycles", type=int, default=5000,
                        help="Instructions to run in headless mode")
    parser.add_argument("--rate", type=positive_int, default=DEFAULT_CYCLE_RATE,
                        help=f"Instructions per second (default: {DEFAULT_CYCLE_RATE})")
    parser.add_argument("--interactive", action="store_true",
                        help="Run in a window with keyboard input")
    parser.add_argument("--scale", type=int, default=8,
                        help="Pixel scale for the window and PNG output")
    parser.add_argument("--png", type=Path, default=None,
                        help="Save the final display as a PNG")
    parser.add_argument("--show-display", action="store_true",
                        help="Print the final display as text")
    parser.add_argument("--stats", action="store_true",
                        help="Print execution statistics")
    parser.add_argument("--quirk", action="append", default=[],
                        choices=sorted(DEFAULT_QUIRKS),
                        help="Enable a compatibility quirk (repeatable)")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for the random number instruction")
    parser.add_argument("--debug", action="store_true",
                        help="Trace every instruction to chip8_debug_<rom>.log")
    return parser


def configure_logging(rom_path: Path, debug: bool) -> Optional[logging.Handler]:
    """Console logging, plus a per-ROM trace file when debugging"""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    if not debug:
        return None

    debug_file = Path(f"chip8_debug_{rom_path.stem}.log")
    handler = logging.FileHandler(debug_file, mode='w', encoding='utf-8')
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    handler.setLevel(logging.DEBUG)
    package_logger = logging.getLogger("chip8vm")
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG)
    print(f"Debug output will be written to: {debug_file}")
    return handler


def run_rom(args: argparse.Namespace) -> int:
    try:
        rom_data = load_rom_file(args.rom)
    except FileNotFoundError:
        print(f"ROM file not found: {args.rom}")
        return 1

    emulator = Chip8Emulator(rng=np.random.default_rng(args.seed),
                             quirks={name: True for name in args.quirk},
                             trace=args.debug)
    try:
        emulator.load_rom(rom_data)
    except Chip8Error as e:
        print(f"Error loading ROM: {e}")
        return 1

    if args.interactive:
        from .frontend import run_window
        run_window(emulator, scale=args.scale, rate=args.rate, title=f"CHIP-8: {args.rom.name}")
    else:
        try:
            executed = emulator.run(cycles=args.cycles, rate=args.rate)
            print(f"Execution completed: {executed} instructions")
        except Chip8Fault as e:
            print(f"Emulator crashed: {e}")

    print(f"Program counter: 0x{emulator.program_counter:03X}")
    print(f"Pixel density: {pixel_density(emulator.display):.3f}")

    if args.stats:
        emulator.print_stats()
    if args.show_display:
        print(render_ascii(emulator.display))
    if args.png:
        save_display_png(emulator.display, args.png, scale=args.scale)
        print(f"Display saved to: {args.png}")

    return 1 if emulator.crashed else 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    handler = configure_logging(args.rom, args.debug)
    try:
        return run_rom(args)
    finally:
        if handler is not None:
            package_logger = logging.getLogger("chip8vm")
            package_logger.removeHandler(handler)
            package_logger.setLevel(logging.NOTSET)
            handler.close()


if __name__ == "__main__":
    sys.exit(main())
