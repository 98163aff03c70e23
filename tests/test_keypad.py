import pytest

from chip8vm import PROGRAM_START

WAIT_FOR_KEY = [0xF3, 0x0A]  # LD V3, K


def test_key_wait_blocks_without_key(make_vm):
    vm = make_vm(WAIT_FOR_KEY)
    for _ in range(25):
        vm.step(0.0)
        assert vm.program_counter == PROGRAM_START
    assert vm.get_stats()['blocking_key_waits'] == 25


def test_key_wait_consumes_key_edge(make_vm):
    vm = make_vm(WAIT_FOR_KEY)
    vm.step(0.0)
    vm.set_key(0xB, True)
    vm.step(0.0)
    assert vm.registers[3] == 0xB
    assert vm.program_counter == PROGRAM_START + 2
    assert vm.last_pressed_key is None


def test_latch_is_cleared_at_end_of_every_step(make_vm):
    vm = make_vm([0x60, 0x00] + WAIT_FOR_KEY)
    vm.set_key(5, True)
    vm.step(0.0)  # LD V0, 0 does not consume the latch
    assert vm.last_pressed_key is None

    vm.step(0.0)
    assert vm.program_counter == PROGRAM_START + 2  # still waiting


def test_holding_a_key_does_not_relatch(make_vm):
    vm = make_vm(WAIT_FOR_KEY)
    vm.set_key(5, True)
    vm.step(0.0)
    assert vm.program_counter == PROGRAM_START + 2
    assert vm.registers[3] == 5

    vm.reset()
    vm.set_key(5, True)  # still held, no false->true edge
    vm.step(0.0)
    assert vm.program_counter == PROGRAM_START


def test_most_recent_edge_wins(make_vm):
    vm = make_vm(WAIT_FOR_KEY)
    vm.set_key(1, True)
    vm.set_key(9, True)
    vm.step(0.0)
    assert vm.registers[3] == 9


def test_release_then_press_relatches(make_vm):
    vm = make_vm(WAIT_FOR_KEY + WAIT_FOR_KEY)
    vm.set_key(2, True)
    vm.step(0.0)
    vm.set_key(2, False)
    assert vm.last_pressed_key is None
    vm.set_key(2, True)
    vm.step(0.0)
    assert vm.program_counter == PROGRAM_START + 4


@pytest.mark.parametrize("key", [-1, 16, 255])
def test_out_of_range_keys_are_ignored(make_vm, key):
    vm = make_vm()
    vm.set_key(key, True)
    assert vm.last_pressed_key is None
    assert not vm.keypad.any()


@pytest.mark.parametrize("pressed,skp_pc,sknp_pc", [
    (True, PROGRAM_START + 6, PROGRAM_START + 4),
    (False, PROGRAM_START + 4, PROGRAM_START + 6),
])
def test_skip_on_key_level(make_vm, pressed, skp_pc, sknp_pc):
    skp = make_vm([0x6A, 0x0C, 0xEA, 0x9E])
    sknp = make_vm([0x6A, 0x0C, 0xEA, 0xA1])
    skp.set_key(0xC, pressed)
    sknp.set_key(0xC, pressed)
    for _ in range(2):
        skp.step(0.0)
        sknp.step(0.0)
    assert skp.program_counter == skp_pc
    assert sknp.program_counter == sknp_pc


def test_key_level_persists_across_steps(make_vm):
    vm = make_vm([0x60, 0x07, 0xE0, 0x9E, 0x00, 0x00, 0x00, 0x00, 0x12, 0x02])
    vm.set_key(7, True)
    vm.step(0.0)
    vm.step(0.0)
    assert vm.program_counter == PROGRAM_START + 6
    vm.step(0.0)  # unknown 0000 at 0x206 is skipped over
    vm.step(0.0)  # JP 0x202
    vm.step(0.0)
    assert vm.program_counter == PROGRAM_START + 6


def test_key_check_uses_low_nibble(make_vm):
    vm = make_vm([0x60, 0x13, 0xE0, 0x9E])
    vm.set_key(3, True)
    vm.step(0.0)
    vm.step(0.0)
    assert vm.program_counter == PROGRAM_START + 6
