import pytest

from chip8vm import Chip8Emulator


class FixedRandom:
    """Stands in for numpy's Generator, always returning the same byte"""

    def __init__(self, value: int):
        self.value = value
        self.calls = []

    def integers(self, low, high):
        self.calls.append((low, high))
        return self.value


class FakeClock:
    def __init__(self, start: float = 0.0):
        self.now = start

    def advance(self, seconds: float):
        self.now += seconds

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_vm(clock):
    """Build an emulator with a frozen clock and the given program loaded"""

    def _make(program=b"", **kwargs):
        kwargs.setdefault("clock", clock)
        vm = Chip8Emulator(**kwargs)
        vm.load_rom(bytes(program))
        return vm

    return _make


def run_steps(vm, count: int, elapsed: float = 0.0):
    for _ in range(count):
        vm.step(elapsed)
