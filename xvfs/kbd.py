"""Translation of PC keyboard scancodes into characters."""

from __future__ import annotations

from collections.abc import Iterable

SHIFT = 1 << 0
CTL = 1 << 1
ALT = 1 << 2
CAPSLOCK = 1 << 3
NUMLOCK = 1 << 4
SCROLLLOCK = 1 << 5
E0ESC = 1 << 6

KEY_HOME = 0xE0
KEY_END = 0xE1
KEY_UP = 0xE2
KEY_DN = 0xE3
KEY_LF = 0xE4
KEY_RT = 0xE5
KEY_PGUP = 0xE6
KEY_PGDN = 0xE7
KEY_INS = 0xE8
KEY_DEL = 0xE9


def _ctrl(ch: str) -> int:
    return (ord(ch) - ord("@")) & 0xFF


_SHIFTCODE = [0] * 256
for _code, _bit in ((0x1D, CTL), (0x2A, SHIFT), (0x36, SHIFT), (0x38, ALT),
                    (0x9D, CTL), (0xB8, ALT)):
    _SHIFTCODE[_code] = _bit

_TOGGLECODE = [0] * 256
for _code, _bit in ((0x3A, CAPSLOCK), (0x45, NUMLOCK), (0x46, SCROLLLOCK)):
    _TOGGLECODE[_code] = _bit

_KEYPAD = "\0" * 7 + "789-456+1230.\0\0\0\0"

_NORMAL_LAYOUT = (
    "\0\x1b1234567890-=\b\t"
    "qwertyuiop[]\n\0as"
    "dfghjkl;'`\0\\zxcv"
    "bnm,./\0*\0 \0\0\0\0\0\0"
) + _KEYPAD

_SHIFT_LAYOUT = (
    "\0\x1b!@#$%^&*()_+\b\t"
    "QWERTYUIOP{}\n\0AS"
    'DFGHJKL:"~\0|ZXCV'
    "BNM<>?\0*\0 \0\0\0\0\0\0"
) + _KEYPAD

_CTL_LAYOUT = (
    "\0" * 16
    + "QWERTYUIOP\0\0\r\0AS"
    + "DFGHJKL\0\0\0\0\\ZXCV"
    + "BNM\0\0/\0\0"
)

_E0_KEYS = {
    0xC8: KEY_UP, 0xD0: KEY_DN, 0xC9: KEY_PGUP, 0xD1: KEY_PGDN,
    0xCB: KEY_LF, 0xCD: KEY_RT, 0x97: KEY_HOME, 0xCF: KEY_END,
    0xD2: KEY_INS, 0xD3: KEY_DEL,
}


def _table(codes: list[int], enter: int, div: int) -> list[int]:
    table = codes + [0] * (256 - len(codes))
    table[0x9C] = enter
    table[0xB5] = div
    for code, key in _E0_KEYS.items():
        table[code] = key
    return table


_NORMALMAP = _table([ord(c) for c in _NORMAL_LAYOUT], ord("\n"), ord("/"))
_SHIFTMAP = _table([ord(c) for c in _SHIFT_LAYOUT], ord("\n"), ord("/"))
_CTLMAP = _table(
    [0 if c == "\0" else ord(c) if c == "\r" else _ctrl(c) for c in _CTL_LAYOUT],
    ord("\r"),
    _ctrl("/"),
)
_CHARCODE = (_NORMALMAP, _SHIFTMAP, _CTLMAP, _CTLMAP)


class Keyboard:
    """Scancode decoder that tracks modifier and lock-key state."""

    def __init__(self):
        self.shift = 0

    def feed(self, scancode: int) -> int:
        """Process one scancode; return the character code, or 0 if none."""
        if not 0 <= scancode <= 0xFF:
            raise ValueError(f"scancode out of range: {scancode}")
        data = scancode
        if data == 0xE0:
            self.shift |= E0ESC
            return 0
        if data & 0x80:
            # Key released.
            if not self.shift & E0ESC:
                data &= 0x7F
            self.shift &= ~(_SHIFTCODE[data] | E0ESC)
            return 0
        if self.shift & E0ESC:
            data |= 0x80
            self.shift &= ~E0ESC

        self.shift |= _SHIFTCODE[data]
        self.shift ^= _TOGGLECODE[data]
        c = _CHARCODE[self.shift & (CTL | SHIFT)][data]
        if self.shift & CAPSLOCK:
            if ord("a") <= c <= ord("z"):
                c += ord("A") - ord("a")
            elif ord("A") <= c <= ord("Z"):
                c += ord("a") - ord("A")
        return c

    def decode(self, scancodes: Iterable[int]) -> str:
        """Decode a run of scancodes into the text they type."""
        return "".join(chr(c) for c in map(self.feed, scancodes) if c)