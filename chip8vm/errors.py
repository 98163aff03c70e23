"""
Exceptions raised by the CHIP-8 virtual machine
"""


class Chip8Error(Exception):
    """Base class for all CHIP-8 errors"""


class RomTooLargeError(Chip8Error, ValueError):
    """ROM does not fit in the program region"""

    def __init__(self, size: int, limit: int):
        super().__init__(f"ROM too large: {size} bytes, max {limit}")
        self.size = size
        self.limit = limit


class Chip8Fault(Chip8Error):
    """
    Runtime fault raised by a step. The VM is marked crashed and
    executes nothing further until reset or reloaded.
    """

    def __init__(self, message: str, pc: int = None, opcode: int = None):
        if opcode is not None:
            message = f"{message} (opcode 0x{opcode:04X} at PC=0x{pc:03X})"
        elif pc is not None:
            message = f"{message} (PC=0x{pc:03X})"
        super().__init__(message)
        self.pc = pc
        self.opcode = opcode


class StackOverflowError(Chip8Fault):
    """Subroutine call with all 16 stack entries in use"""


class StackUnderflowError(Chip8Fault):
    """Return with an empty call stack"""


class MemoryAccessError(Chip8Fault):
    """Computed address range falls outside the 4096-byte memory"""
