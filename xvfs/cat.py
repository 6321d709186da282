"""Copy files to output, and echo arguments."""

from __future__ import annotations

import errno
import sys
from pathlib import Path

_CHUNK = 512


def cat(stream, out) -> None:
    """Copy a binary stream to a binary output in 512-byte pieces."""
    while True:
        try:
            chunk = stream.read(_CHUNK)
        except OSError as exc:
            raise OSError(errno.EIO, "cat: read error") from exc
        if not chunk:
            return
        written = out.write(chunk)
        if written is not None and written != len(chunk):
            raise OSError(errno.EIO, "cat: write error")


def echo(args, out) -> None:
    """Write the arguments separated by blanks, ending with a newline."""
    if args:
        out.write(" ".join(args) + "\n")


def main(argv=None) -> int:
    """cat [file ...]; with no files, copies standard input."""
    args = sys.argv[1:] if argv is None else list(argv)
    out = sys.stdout.buffer
    try:
        if not args:
            cat(sys.stdin.buffer, out)
            return 0
        for name in args:
            try:
                stream = Path(name).open("rb")
            except OSError:
                out.write(f"cat: cannot open {name}\n".encode())
                return 1
            with stream:
                cat(stream, out)
        return 0
    except OSError as exc:
        out.write(f"{exc.strerror}\n".encode())
        return 1
    finally:
        out.flush()


if __name__ == "__main__":
    sys.exit(main())