import pytest

from chip8vm.keymap import HEX_KEYS, QWERTY_LAYOUT, translate_key


def test_hex_keys_cover_keypad():
    assert sorted(HEX_KEYS.values()) == list(range(16))
    assert HEX_KEYS[48] == 0x0
    assert HEX_KEYS[57] == 0x9
    assert HEX_KEYS[97] == 0xA
    assert HEX_KEYS[102] == 0xF


def test_qwerty_layout_covers_keypad():
    assert sorted(QWERTY_LAYOUT.values()) == list(range(16))


@pytest.mark.parametrize("code,expected", [
    (ord('7'), 0x7),
    (ord('c'), 0xC),
    (ord('g'), None),
    ('x', 0x0),
    ('V', 0xF),
    ('4', 0xC),
    ('Escape', None),
])
def test_translate_key(code, expected):
    assert translate_key(code) == expected


def test_translate_key_with_explicit_mapping():
    assert translate_key('1', HEX_KEYS) is None
    assert translate_key(ord('1'), HEX_KEYS) == 1
