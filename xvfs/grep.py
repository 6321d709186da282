"""Line filter with a tiny regular-expression matcher: ^ . * $ only."""

from __future__ import annotations

import sys
from pathlib import Path

_BUFSIZE = 1024


def _matchhere(pattern: str, text: str) -> bool:
    if not pattern:
        return True
    if len(pattern) > 1 and pattern[1] == "*":
        return _matchstar(pattern[0], pattern[2:], text)
    if pattern == "$":
        return not text
    if text and pattern[0] in (".", text[0]):
        return _matchhere(pattern[1:], text[1:])
    return False


def _matchstar(c: str, pattern: str, text: str) -> bool:
    while True:
        if _matchhere(pattern, text):
            return True
        if text and (text[0] == c or c == "."):
            text = text[1:]
        else:
            return False


def match(pattern: str, text: str) -> bool:
    """Whether pattern matches anywhere in text."""
    if pattern.startswith("^"):
        return _matchhere(pattern[1:], text)
    return any(_matchhere(pattern, text[i:]) for i in range(len(text) + 1))


def grep(pattern: str, stream, out) -> None:
    """Copy the newline-terminated lines of a binary stream that match.

    Input is read through a buffer of 1023 bytes: a line that does not fit,
    and a last line with no newline, are dropped.
    """
    pending = b""
    while chunk := stream.read(_BUFSIZE - len(pending) - 1):
        *lines, rest = (pending + chunk).split(b"\n")
        for line in lines:
            if match(pattern, line.decode("latin-1")):
                out.write(line + b"\n")
        pending = rest if lines else b""


def main(argv=None) -> int:
    """grep pattern [file ...]"""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print("usage: grep pattern [file ...]", file=sys.stderr)
        return 1
    pattern, names = args[0], args[1:]
    out = sys.stdout.buffer
    if not names:
        grep(pattern, sys.stdin.buffer, out)
        out.flush()
        return 0
    for name in names:
        try:
            stream = Path(name).open("rb")
        except OSError:
            out.write(f"grep: cannot open {name}\n".encode())
            out.flush()
            return 1
        with stream:
            grep(pattern, stream, out)
    out.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())