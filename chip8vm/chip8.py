"""
CHIP-8 Virtual Machine
Single-instance interpreter: memory and register model, the
fetch-decode-execute cycle, timer decay and keypad tracking.

The VM never schedules itself. A host constructs it, loads a ROM and then
repeatedly delivers key edges, calls step() and reads back the framebuffer
and sound timer.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Union

import numpy as np

from .errors import (
    Chip8Fault,
    MemoryAccessError,
    RomTooLargeError,
    StackOverflowError,
    StackUnderflowError,
)

logger = logging.getLogger(__name__)

# CHIP-8 System Constants
MEMORY_SIZE = 4096
DISPLAY_WIDTH = 64
DISPLAY_HEIGHT = 32
DISPLAY_PIXELS = DISPLAY_WIDTH * DISPLAY_HEIGHT
REGISTER_COUNT = 16
STACK_SIZE = 16
KEYPAD_SIZE = 16
PROGRAM_START = 0x200
MAX_ROM_SIZE = MEMORY_SIZE - PROGRAM_START  # 3584 bytes available for programs
FONT_START = 0x000
GLYPH_SIZE = 5
FONT_SIZE = GLYPH_SIZE * 16
ADDRESS_MASK = 0xFFF
PIXEL_ON = 0xFF
TIMER_HZ = 60.0
DEFAULT_CYCLE_RATE = 700  # instructions per second of simulated time

# CHIP-8 Font set (hexadecimal digits 0-F)
CHIP8_FONT = np.array([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80   # F
], dtype=np.uint8)

# All quirks are off by default
DEFAULT_QUIRKS = {
    'memory': False,     # Fx55/Fx65 increment I register
    'jumping': False,    # Bnnn uses vX instead of v0
    'shifting': False,   # 8xy6/8xyE shift vY into vX
    'logic': False,      # 8xy1/8xy2/8xy3 reset vF to 0
}

STAT_KEYS = (
    'instructions_executed',
    'display_clears',
    'display_writes',
    'sprite_collisions',
    'subroutine_calls',
    'returns',
    'jumps_taken',
    'key_checks',
    'blocking_key_waits',
    'random_generations',
    'timer_sets',
    'unknown_opcodes',
)


def load_rom_file(filename: Union[str, Path]) -> bytes:
    """Load a ROM file"""
    with open(filename, 'rb') as f:
        return f.read()


class Chip8Emulator:
    """
    Single-instance CHIP-8 emulator.

    Args:
        rng: random source for Cxkk, anything with numpy Generator's
            ``integers(low, high)``. Defaults to ``np.random.default_rng()``.
        clock: callable returning seconds, used when step() is not given
            an explicit elapsed time. Defaults to ``time.perf_counter``.
        quirks: overrides for DEFAULT_QUIRKS.
        trace: log every executed instruction at DEBUG level.
    """

    def __init__(self, rng=None, clock: Callable[[], float] = None,
                 quirks: dict = None, trace: bool = False):
        self.quirks = dict(DEFAULT_QUIRKS)
        if quirks:
            unknown = set(quirks) - set(DEFAULT_QUIRKS)
            if unknown:
                raise ValueError(f"Unknown quirks: {', '.join(sorted(unknown))}")
            self.quirks.update(quirks)

        self.rng = rng if rng is not None else np.random.default_rng()
        self.clock = clock or time.perf_counter
        self.trace = trace

        self.memory = np.zeros(MEMORY_SIZE, dtype=np.uint8)
        self.memory[FONT_START:FONT_START + FONT_SIZE] = CHIP8_FONT
        self.display = np.zeros((DISPLAY_HEIGHT, DISPLAY_WIDTH), dtype=np.uint8)
        self.registers = np.zeros(REGISTER_COUNT, dtype=np.uint8)
        self.stack = np.zeros(STACK_SIZE, dtype=np.uint16)
        # Level state survives reset(); only the edge latch is cleared
        self.keypad = np.zeros(KEYPAD_SIZE, dtype=bool)

        self.reset()

    def reset(self):
        """Restore CPU, timer, stack, display and latch state. Memory is left alone."""
        self.display.fill(0)
        self.registers.fill(0)
        self.stack.fill(0)
        self.index_register = 0
        self.program_counter = PROGRAM_START
        self.stack_pointer = 0
        self.delay_timer = 0.0
        self.sound_timer = 0.0
        self.last_pressed_key: Optional[int] = None
        self.last_time = self.clock()

        self.stats = dict.fromkeys(STAT_KEYS, 0)
        self.crashed = False
        self.fault: Optional[Chip8Fault] = None

    def load_rom(self, rom_data: Union[bytes, bytearray, np.ndarray, str, Path]):
        """
        Install a program at 0x200 and reset the CPU.

        The whole program region is zeroed first so nothing from a previously
        loaded ROM survives. An oversized ROM raises RomTooLargeError and
        leaves the current state untouched.
        """
        if isinstance(rom_data, (str, Path)):
            rom_bytes = load_rom_file(rom_data)
        elif isinstance(rom_data, np.ndarray):
            if rom_data.size and (rom_data.min() < 0 or rom_data.max() > 0xFF):
                raise ValueError("ROM array values must be bytes (0-255)")
            rom_bytes = rom_data.astype(np.uint8).tobytes()
        else:
            rom_bytes = bytes(rom_data)

        if len(rom_bytes) > MAX_ROM_SIZE:
            raise RomTooLargeError(len(rom_bytes), MAX_ROM_SIZE)

        self.reset()
        self.memory[PROGRAM_START:] = 0
        self.memory[PROGRAM_START:PROGRAM_START + len(rom_bytes)] = np.frombuffer(rom_bytes, dtype=np.uint8)

        logger.info("Loaded ROM: %d bytes", len(rom_bytes))
        if len(rom_bytes) >= 2:
            logger.debug("First instruction: 0x%02X%02X",
                         self.memory[PROGRAM_START], self.memory[PROGRAM_START + 1])

    def set_key(self, key: int, pressed: bool):
        """Set key state (0-F). Out-of-range keys are ignored."""
        if not 0 <= key < KEYPAD_SIZE:
            return
        if pressed and not self.keypad[key]:
            self.last_pressed_key = key
        self.keypad[key] = bool(pressed)

    def step(self, elapsed: float = None) -> bool:
        """
        Execute one instruction, then decay the timers and clear the key latch.

        ``elapsed`` is the time in seconds since the previous step. When it
        is omitted the injected clock is read instead.

        Returns False without doing anything if the VM has crashed. A fault
        raised by the instruction marks the VM crashed, restores the program
        counter to the faulting instruction and propagates.
        """
        if self.crashed:
            return False

        pc = self.program_counter
        try:
            instruction = self._fetch()
            self._execute_instruction(instruction, pc)
            self.stats['instructions_executed'] += 1
        except Chip8Fault as fault:
            self.program_counter = pc
            self.crashed = True
            self.fault = fault
            logger.error("CHIP-8 fault: %s", fault)
            raise

        now = self.clock()
        if elapsed is None:
            elapsed = now - self.last_time
        self.last_time = now
        self._decay_timers(elapsed)

        self.last_pressed_key = None
        return True

    def run(self, cycles: int = 1000, rate: float = DEFAULT_CYCLE_RATE) -> int:
        """
        Run up to ``cycles`` instructions, simulating 1/rate seconds per step.
        Returns how many instructions were executed.
        """
        if rate <= 0:
            raise ValueError(f"rate must be positive, got {rate}")
        elapsed = 1.0 / rate
        executed = 0
        for _ in range(cycles):
            if not self.step(elapsed):
                break
            executed += 1
        return executed

    def _fetch(self) -> int:
        pc = self.program_counter
        if pc + 1 >= MEMORY_SIZE:
            raise MemoryAccessError("Instruction fetch past end of memory", pc=pc)
        instruction = (int(self.memory[pc]) << 8) | int(self.memory[pc + 1])
        self.program_counter = pc + 2
        return instruction

    def _decay_timers(self, elapsed: float):
        decay = max(0.0, elapsed) * TIMER_HZ
        self.delay_timer = max(0.0, self.delay_timer - decay)
        self.sound_timer = max(0.0, self.sound_timer - decay)

    def _check_range(self, start: int, length: int, what: str, pc: int, instruction: int):
        if start < 0 or start + length > MEMORY_SIZE:
            raise MemoryAccessError(
                f"{what} at 0x{start:03X}+{length} outside memory", pc=pc, opcode=instruction)

    def _execute_instruction(self, instruction: int, pc: int):
        """Decode and execute a single CHIP-8 instruction fetched from ``pc``"""
        opcode = (instruction & 0xF000) >> 12
        x = (instruction & 0x0F00) >> 8
        y = (instruction & 0x00F0) >> 4
        n = instruction & 0x000F
        kk = instruction & 0x00FF
        nnn = instruction & 0x0FFF

        if self.trace:
            logger.debug("Executing: 0x%04X at PC=0x%03X  I=0x%03X SP=%d V=%s",
                         instruction, pc, self.index_register, self.stack_pointer,
                         [int(v) for v in self.registers])

        if instruction == 0x00E0:  # CLS
            self.display.fill(0)
            self.stats['display_clears'] += 1

        elif instruction == 0x00EE:  # RET
            if self.stack_pointer == 0:
                raise StackUnderflowError("RET with empty stack", pc=pc, opcode=instruction)
            self.stack_pointer -= 1
            self.program_counter = int(self.stack[self.stack_pointer])
            self.stats['returns'] += 1

        elif opcode == 0x1:  # JP addr
            self.program_counter = nnn
            self.stats['jumps_taken'] += 1

        elif opcode == 0x2:  # CALL addr
            if self.stack_pointer >= STACK_SIZE:
                raise StackOverflowError("CALL with full stack", pc=pc, opcode=instruction)
            self.stack[self.stack_pointer] = self.program_counter
            self.stack_pointer += 1
            self.program_counter = nnn
            self.stats['subroutine_calls'] += 1

        elif opcode == 0x3:  # SE Vx, byte
            if int(self.registers[x]) == kk:
                self.program_counter += 2

        elif opcode == 0x4:  # SNE Vx, byte
            if int(self.registers[x]) != kk:
                self.program_counter += 2

        elif opcode == 0x5 and n == 0x0:  # SE Vx, Vy
            if self.registers[x] == self.registers[y]:
                self.program_counter += 2

        elif opcode == 0x6:  # LD Vx, byte
            self.registers[x] = kk

        elif opcode == 0x7:  # ADD Vx, byte
            self.registers[x] = (int(self.registers[x]) + kk) & 0xFF

        elif opcode == 0x8:
            if not self._execute_alu(x, y, n):
                self._unknown_instruction(instruction, pc)

        elif opcode == 0x9 and n == 0x0:  # SNE Vx, Vy
            if self.registers[x] != self.registers[y]:
                self.program_counter += 2

        elif opcode == 0xA:  # LD I, addr
            self.index_register = nnn

        elif opcode == 0xB:  # JP V0, addr
            offset_reg = (nnn & 0xF00) >> 8 if self.quirks['jumping'] else 0
            target = nnn + int(self.registers[offset_reg])
            if target >= MEMORY_SIZE:
                raise MemoryAccessError(f"Jump target 0x{target:03X} outside memory",
                                        pc=pc, opcode=instruction)
            self.program_counter = target
            self.stats['jumps_taken'] += 1

        elif opcode == 0xC:  # RND Vx, byte
            random_byte = int(self.rng.integers(0, 256))
            self.registers[x] = random_byte & kk
            self.stats['random_generations'] += 1

        elif opcode == 0xD:  # DRW Vx, Vy, nibble
            self._check_range(self.index_register, n, "Sprite read", pc, instruction)
            self._draw_sprite(x, y, n)

        elif opcode == 0xE and kk in (0x9E, 0xA1):
            self.stats['key_checks'] += 1
            pressed = bool(self.keypad[int(self.registers[x]) & 0xF])
            if pressed == (kk == 0x9E):  # SKP Vx / SKNP Vx
                self.program_counter += 2

        elif opcode == 0xF:
            if not self._execute_misc(x, kk, pc, instruction):
                self._unknown_instruction(instruction, pc)

        else:
            self._unknown_instruction(instruction, pc)

    def _execute_alu(self, x: int, y: int, n: int) -> bool:
        """
        8xyN register-register operations. Returns False for unassigned N.

        VF is written before Vx, both from the operands read up front, so
        8FyN leaves the result rather than the flag in VF.
        """
        vx = int(self.registers[x])
        vy = int(self.registers[y])

        if n == 0x0:  # LD Vx, Vy
            self.registers[x] = vy
        elif n in (0x1, 0x2, 0x3):  # OR / AND / XOR
            if n == 0x1:
                self.registers[x] = vx | vy
            elif n == 0x2:
                self.registers[x] = vx & vy
            else:
                self.registers[x] = vx ^ vy
            if self.quirks['logic']:
                self.registers[0xF] = 0
        elif n == 0x4:  # ADD Vx, Vy
            result = vx + vy
            self.registers[0xF] = 1 if result > 0xFF else 0
            self.registers[x] = result & 0xFF
        elif n == 0x5:  # SUB Vx, Vy
            self.registers[0xF] = 1 if vx > vy else 0  # NOT borrow
            self.registers[x] = (vx - vy) & 0xFF
        elif n == 0x6:  # SHR Vx {, Vy}
            source = vy if self.quirks['shifting'] else vx
            self.registers[0xF] = source & 0x1
            self.registers[x] = source >> 1
        elif n == 0x7:  # SUBN Vx, Vy
            self.registers[0xF] = 1 if vy > vx else 0
            self.registers[x] = (vy - vx) & 0xFF
        elif n == 0xE:  # SHL Vx {, Vy}
            source = vy if self.quirks['shifting'] else vx
            self.registers[0xF] = source >> 7
            self.registers[x] = (source << 1) & 0xFF
        else:
            return False
        return True

    def _execute_misc(self, x: int, kk: int, pc: int, instruction: int) -> bool:
        """FxKK timer, keypad-wait and memory operations. Returns False for unassigned KK."""
        vx = int(self.registers[x])

        if kk == 0x07:  # LD Vx, DT
            self.registers[x] = int(self.delay_timer) & 0xFF

        elif kk == 0x0A:  # LD Vx, K
            if self.last_pressed_key is None:
                # Re-execute this instruction on the next step
                self.program_counter -= 2
                self.stats['blocking_key_waits'] += 1
            else:
                self.registers[x] = self.last_pressed_key
                self.last_pressed_key = None

        elif kk == 0x15:  # LD DT, Vx
            self.delay_timer = float(vx)
            self.stats['timer_sets'] += 1

        elif kk == 0x18:  # LD ST, Vx
            self.sound_timer = float(vx)
            self.stats['timer_sets'] += 1

        elif kk == 0x1E:  # ADD I, Vx
            self.index_register = (self.index_register + vx) & ADDRESS_MASK

        elif kk == 0x29:  # LD F, Vx
            self.index_register = (FONT_START + vx * GLYPH_SIZE) & ADDRESS_MASK

        elif kk == 0x33:  # LD B, Vx
            start = self.index_register
            self._check_range(start, 3, "BCD store", pc, instruction)
            self.memory[start] = vx // 100
            self.memory[start + 1] = (vx // 10) % 10
            self.memory[start + 2] = vx % 10

        elif kk == 0x55:  # LD [I], Vx
            start = self.index_register
            self._check_range(start, x + 1, "Register store", pc, instruction)
            self.memory[start:start + x + 1] = self.registers[:x + 1]
            if self.quirks['memory']:
                self.index_register = (start + x + 1) & ADDRESS_MASK

        elif kk == 0x65:  # LD Vx, [I]
            start = self.index_register
            self._check_range(start, x + 1, "Register load", pc, instruction)
            self.registers[:x + 1] = self.memory[start:start + x + 1]
            if self.quirks['memory']:
                self.index_register = (start + x + 1) & ADDRESS_MASK

        else:
            return False
        return True

    def _unknown_instruction(self, instruction: int, pc: int):
        # Never fatal: the program counter has already moved past it
        self.stats['unknown_opcodes'] += 1
        logger.warning("Unknown instruction 0x%04X at PC=0x%03X", instruction, pc)

    def _draw_sprite(self, x_reg: int, y_reg: int, height: int):
        """XOR an 8-pixel-wide sprite from memory[I] onto the display at (Vx, Vy)"""
        origin_x = int(self.registers[x_reg])
        origin_y = int(self.registers[y_reg])
        collision = False

        for row in range(height):
            sprite_byte = int(self.memory[self.index_register + row])
            frame_y = (origin_y + row) % DISPLAY_HEIGHT

            for col in range(8):
                if sprite_byte & (0x80 >> col):
                    frame_x = (origin_x + col) % DISPLAY_WIDTH

                    if self.display[frame_y, frame_x]:
                        collision = True
                    self.display[frame_y, frame_x] ^= PIXEL_ON

        self.registers[0xF] = 1 if collision else 0
        self.stats['display_writes'] += 1
        if collision:
            self.stats['sprite_collisions'] += 1

    def get_framebuffer(self) -> np.ndarray:
        """Read-only flat view of the 2048 display bytes (0x00 or 0xFF), row-major"""
        view = self.display.reshape(DISPLAY_PIXELS)
        view.flags.writeable = False
        return view

    def get_display(self) -> np.ndarray:
        """Get current display state as a (32, 64) copy"""
        return self.display.copy()

    def get_sound_timer(self) -> int:
        return int(self.sound_timer)

    def get_delay_timer(self) -> int:
        return int(self.delay_timer)

    def get_stats(self) -> Dict[str, int]:
        """Get current instrumentation statistics"""
        return self.stats.copy()

    def print_stats(self):
        """Print current statistics"""
        print("CHIP-8 Emulator Statistics:")
        print("-" * 30)
        for key, value in self.stats.items():
            print(f"{key:25s}: {value}")
