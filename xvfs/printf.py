"""Small formatted printing understanding %d, %x, %p, %s, %c and %lu."""

from __future__ import annotations

import re

_MASK = 0xFFFFFFFF
_SPEC_PATTERN = re.compile(r"%(lu|.)?|[^%]+", re.S)
_MISSING = object()


def _signed(value) -> int:
    value = int(value) & _MASK
    return value - (1 << 32) if value & 0x80000000 else value


def format(fmt: str, *args) -> str:
    """Render fmt with args as 32-bit values.

    %d is signed decimal, %x and %p unsigned upper-case hex, %lu unsigned
    decimal, %c one character, %s a string (None prints as "(null)") and
    %% a percent sign. Unknown sequences are printed as they stand, and a
    lone % at the end is dropped.
    """
    values = iter(args)

    def arg():
        value = next(values, _MISSING)
        if value is _MISSING:
            raise TypeError("not enough arguments for format string")
        return value

    out = []
    for piece in _SPEC_PATTERN.finditer(fmt):
        text = piece.group(0)
        if not text.startswith("%"):
            out.append(text)
            continue
        spec = piece.group(1)
        if spec is None:
            continue
        if spec == "d":
            out.append(str(_signed(arg())))
        elif spec in ("x", "p"):
            out.append(f"{int(arg()) & _MASK:X}")
        elif spec == "s":
            s = arg()
            out.append("(null)" if s is None else str(s))
        elif spec == "c":
            c = arg()
            out.append(c[:1] if isinstance(c, str) else chr(int(c) & 0xFF))
        elif spec == "lu":
            out.append(str(int(arg()) & _MASK))
        elif spec == "%":
            out.append("%")
        else:
            out.append("%" + spec)
    return "".join(out)


def fprintf(stream, fmt: str, *args) -> int:
    """Write the formatted text to a text stream; return its length."""
    text = format(fmt, *args)
    stream.write(text)
    return len(text)