"""
chip8vm: a CHIP-8 virtual machine
"""

from .chip8 import (
    DISPLAY_HEIGHT,
    DISPLAY_PIXELS,
    DISPLAY_WIDTH,
    MAX_ROM_SIZE,
    MEMORY_SIZE,
    PROGRAM_START,
    Chip8Emulator,
    load_rom_file,
)
from .errors import (
    Chip8Error,
    Chip8Fault,
    MemoryAccessError,
    RomTooLargeError,
    StackOverflowError,
    StackUnderflowError,
)

__version__ = "0.1.0"

__all__ = [
    "Chip8Emulator",
    "load_rom_file",
    "Chip8Error",
    "Chip8Fault",
    "MemoryAccessError",
    "RomTooLargeError",
    "StackOverflowError",
    "StackUnderflowError",
    "DISPLAY_HEIGHT",
    "DISPLAY_PIXELS",
    "DISPLAY_WIDTH",
    "MAX_ROM_SIZE",
    "MEMORY_SIZE",
    "PROGRAM_START",
]
