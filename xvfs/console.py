"""Console: a line-edited input buffer and a text screen with serial echo."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable

from .layout import Panic

BACKSPACE = 0x100
INPUT_BUF = 128
COLS = 80
ROWS = 25
_ATTR = 0x0700
_NL = ord("\n")
_CR = ord("\r")


def _ctrl(ch: str) -> int:
    return ord(ch) - ord("@")


_MISSING = object()


class Console:
    """Keyboard input editing and output to a screen and a serial line.

    Output bytes sent to the serial line accumulate in ``output``; the
    screen contents live in ``crt`` as 80x25 character cells.
    """

    def __init__(self):
        self.crt = [0] * (COLS * ROWS)
        self.pos = 0
        self.output = bytearray()
        self.procdump: Callable[[], None] | None = None
        self._cond = threading.Condition()
        self._buf = bytearray(INPUT_BUF)
        self._r = 0
        self._w = 0
        self._e = 0

    def _cgaputc(self, c: int) -> None:
        pos = self.pos
        if c == _NL:
            pos += COLS - pos % COLS
        elif c == BACKSPACE:
            if pos > 0:
                pos -= 1
        else:
            self.crt[pos] = (c & 0xFF) | _ATTR
            pos += 1

        if pos < 0 or pos > ROWS * COLS:
            raise Panic("pos under/overflow")

        if pos // COLS >= 24:
            self.crt[: 23 * COLS] = self.crt[COLS : 24 * COLS]
            pos -= COLS
            self.crt[pos : 24 * COLS] = [0] * (24 * COLS - pos)

        self.pos = pos
        self.crt[pos] = ord(" ") | _ATTR

    def putc(self, c) -> None:
        """Send one character to the serial line and the screen."""
        if isinstance(c, str):
            c = ord(c)
        if c == BACKSPACE:
            self.output += b"\b \b"
        else:
            self.output.append(c & 0xFF)
        self._cgaputc(c)

    def _puts(self, text: str) -> None:
        for ch in text:
            self.putc(ord(ch) & 0xFF)

    def intr(self, chars: Iterable) -> None:
        """Handle typed characters: line editing, echo and ^P process listing."""
        run_dump = False
        with self._cond:
            for c in chars:
                if isinstance(c, str):
                    c = ord(c)
                if c == _ctrl("P"):
                    run_dump = True
                elif c == _ctrl("U"):
                    while (
                        self._e != self._w
                        and self._buf[(self._e - 1) % INPUT_BUF] != _NL
                    ):
                        self._e -= 1
                        self.putc(BACKSPACE)
                elif c in (_ctrl("H"), 0x7F):
                    if self._e != self._w:
                        self._e -= 1
                        self.putc(BACKSPACE)
                elif c != 0 and self._e - self._r < INPUT_BUF:
                    if c == _CR:
                        c = _NL
                    self._buf[self._e % INPUT_BUF] = c & 0xFF
                    self._e += 1
                    self.putc(c)
                    if (
                        c == _NL
                        or c == _ctrl("D")
                        or self._e == self._r + INPUT_BUF
                    ):
                        self._w = self._e
                        self._cond.notify_all()
        if run_dump and self.procdump is not None:
            self.procdump()

    def read(self, n: int) -> bytes:
        """Read up to n bytes of committed input, stopping after a newline.

        Blocks until a line is available. ^D ends the read; it is kept for
        the next read when some bytes were already returned.
        """
        target = n
        out = bytearray()
        with self._cond:
            while n > 0:
                while self._r == self._w:
                    self._cond.wait()
                c = self._buf[self._r % INPUT_BUF]
                self._r += 1
                if c == _ctrl("D"):
                    if n < target:
                        self._r -= 1
                    break
                out.append(c)
                n -= 1
                if c == _NL:
                    break
        return bytes(out)

    def write(self, data) -> int:
        """Write bytes to the console; return how many were written."""
        if isinstance(data, str):
            data = data.encode("latin-1")
        data = bytes(data)
        with self._cond:
            for byte in data:
                self.putc(byte)
        return len(data)

    def cprintf(self, fmt: str, *args) -> None:
        """Print a format understanding %d, %x, %p, %s and %%."""
        if fmt is None:
            raise Panic("null fmt")
        values = iter(args)

        def next_arg():
            value = next(values, _MISSING)
            if value is _MISSING:
                raise TypeError("not enough arguments for format string")
            return value

        with self._cond:
            chars = iter(fmt)
            for ch in chars:
                if ch != "%":
                    self._puts(ch)
                    continue
                spec = next(chars, None)
                if spec is None:
                    break
                if spec == "d":
                    value = int(next_arg()) & 0xFFFFFFFF
                    if value >= 0x80000000:
                        value -= 1 << 32
                    self._puts(str(value))
                elif spec in ("x", "p"):
                    self._puts(format(int(next_arg()) & 0xFFFFFFFF, "x"))
                elif spec == "s":
                    s = next_arg()
                    self._puts("(null)" if s is None else str(s))
                elif spec == "%":
                    self._puts("%")
                else:
                    self._puts("%" + spec)

    def screen_text(self) -> str:
        """The screen as text, without trailing blanks or trailing empty rows."""
        rows = []
        for row in range(ROWS):
            cells = self.crt[row * COLS : (row + 1) * COLS]
            rows.append(
                "".join(chr(cell & 0xFF) if cell & 0xFF else " " for cell in cells).rstrip()
            )
        return "\n".join(rows).rstrip("\n")