"""
Host key translation tables

The CHIP-8 keypad is a 4x4 hex pad:

    1 2 3 C
    4 5 6 D
    7 8 9 E
    A 0 B F

Front-ends translate their own key codes into keypad indices 0x0-0xF
before calling Chip8Emulator.set_key().
"""

from typing import Dict, Optional, Union

# Character codes '0'-'9' and 'a'-'f' map straight onto the hex digit they name
HEX_KEYS: Dict[int, int] = {
    **{ord(str(digit)): digit for digit in range(10)},
    **{ord(letter): 0xA + i for i, letter in enumerate('abcdef')},
}

# Modern keyboard mapping:
# 1 2 3 4        1 2 3 C
# Q W E R   =>   4 5 6 D
# A S D F        7 8 9 E
# Z X C V        A 0 B F
QWERTY_LAYOUT: Dict[str, int] = {
    '1': 0x1, '2': 0x2, '3': 0x3, '4': 0xC,
    'q': 0x4, 'w': 0x5, 'e': 0x6, 'r': 0xD,
    'a': 0x7, 's': 0x8, 'd': 0x9, 'f': 0xE,
    'z': 0xA, 'x': 0x0, 'c': 0xB, 'v': 0xF,
}


def translate_key(code: Union[int, str], mapping: Dict = None) -> Optional[int]:
    """
    Translate a host key code into a keypad index, or None if unmapped.

    Integer codes are looked up in HEX_KEYS and string key names in
    QWERTY_LAYOUT unless an explicit mapping is given. Key names are
    matched case-insensitively.
    """
    if mapping is None:
        mapping = QWERTY_LAYOUT if isinstance(code, str) else HEX_KEYS
    if isinstance(code, str):
        code = code.lower()
    return mapping.get(code)
