"""In-memory pipes with a bounded buffer and blocking reads and writes."""

from __future__ import annotations

import errno
import threading

PIPESIZE = 512


class PipeClosed(BrokenPipeError):
    """Raised when writing to a full pipe whose read end is closed."""


class Pipe:
    """A one-way byte channel holding at most PIPESIZE unread bytes."""

    def __init__(self):
        self._cond = threading.Condition()
        self._data = bytearray()
        self.nread = 0
        self.nwrite = 0
        self.readopen = True
        self.writeopen = True

    def write(self, data) -> int:
        """Write all of data, blocking while the pipe is full.

        Raises PipeClosed if the pipe is full and nobody can read it anymore.
        """
        data = bytes(data)
        with self._cond:
            for byte in data:
                while len(self._data) == PIPESIZE:
                    if not self.readopen:
                        raise PipeClosed(errno.EPIPE, "pipe read end is closed")
                    self._cond.notify_all()
                    self._cond.wait()
                self._data.append(byte)
                self.nwrite += 1
            self._cond.notify_all()
        return len(data)

    def read(self, n: int) -> bytes:
        """Read up to n bytes, blocking while the pipe is empty and writable.

        Returns b"" once the pipe is empty and its write end is closed.
        """
        with self._cond:
            while not self._data and self.writeopen:
                self._cond.wait()
            count = max(n, 0)
            chunk = bytes(self._data[:count])
            del self._data[:count]
            self.nread += len(chunk)
            self._cond.notify_all()
            return chunk

    def close(self, writable: bool) -> None:
        """Close the write end if writable is true, otherwise the read end."""
        with self._cond:
            if writable:
                self.writeopen = False
            else:
                self.readopen = False
            self._cond.notify_all()