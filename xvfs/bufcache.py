"""Buffer cache of disk blocks with least-recently-used recycling."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from .layout import BSIZE, NBUF, Panic


@dataclass(eq=False)
class Buf:
    """A cached copy of one disk block."""

    dev: int = 0
    blockno: int = 0
    data: bytearray = field(default_factory=lambda: bytearray(BSIZE))
    valid: bool = False
    dirty: bool = False
    refcnt: int = 0
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )
    _holder: int | None = field(default=None, init=False, repr=False)

    @property
    def locked(self) -> bool:
        """Whether the calling thread holds this buffer."""
        return self._holder == threading.get_ident()

    def _acquire(self) -> None:
        self._lock.acquire()
        self._holder = threading.get_ident()

    def _release(self) -> None:
        self._holder = None
        self._lock.release()


class BufferCache:
    """A fixed pool of block buffers in front of a disk."""

    def __init__(self, disk, nbuf: int = NBUF):
        self.disk = disk
        self._lock = threading.Lock()
        # Most recently used first.
        self._lru = [Buf() for _ in range(nbuf)]

    def _get(self, dev: int, blockno: int) -> Buf:
        with self._lock:
            buf = next(
                (b for b in self._lru if b.dev == dev and b.blockno == blockno),
                None,
            )
            if buf is not None:
                buf.refcnt += 1
            else:
                # A dirty buffer is still owned by the log even when unreferenced.
                buf = next(
                    (b for b in reversed(self._lru) if b.refcnt == 0 and not b.dirty),
                    None,
                )
                if buf is None:
                    raise Panic("bget: no buffers")
                buf.dev = dev
                buf.blockno = blockno
                buf.valid = False
                buf.dirty = False
                buf.refcnt = 1
        buf._acquire()
        return buf

    def read(self, dev: int, blockno: int) -> Buf:
        """Return a locked buffer holding the block's contents."""
        buf = self._get(dev, blockno)
        if not buf.valid:
            self.disk.rw(buf)
        return buf

    def write(self, buf: Buf) -> None:
        """Write a locked buffer's contents to disk."""
        if not buf.locked:
            raise Panic("bwrite")
        buf.dirty = True
        self.disk.rw(buf)

    def release(self, buf: Buf) -> None:
        """Unlock a buffer and, once unreferenced, make it most recently used."""
        if not buf.locked:
            raise Panic("brelse")
        buf._release()
        with self._lock:
            buf.refcnt -= 1
            if buf.refcnt == 0:
                self._lru.remove(buf)
                self._lru.insert(0, buf)