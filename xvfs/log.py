"""Redo log that makes groups of block writes atomic."""

from __future__ import annotations

import struct
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from .layout import BSIZE, LOGSIZE, MAXOPBLOCKS, ROOTDEV, Panic, SuperBlock

_HEADER = struct.Struct(f"<i{LOGSIZE}i")


class Log:
    """Write-ahead log of whole blocks, committed when no operation is active.

    The on-disk log is a header block listing home block numbers,
    followed by the logged copies of those blocks.
    """

    def __init__(self, cache, dev: int = ROOTDEV):
        if _HEADER.size >= BSIZE:
            raise Panic("initlog: too big logheader")
        self.cache = cache
        self.dev = dev
        bp = cache.read(dev, 1)
        sb = SuperBlock.unpack(bp.data)
        cache.release(bp)
        self.start = sb.logstart
        self.size = sb.nlog
        self.outstanding = 0
        self.committing = False
        self.blocks: list[int] = []
        self._cond = threading.Condition()
        self._recover()

    def _install_trans(self) -> None:
        for tail, home in enumerate(self.blocks):
            lbuf = self.cache.read(self.dev, self.start + tail + 1)
            dbuf = self.cache.read(self.dev, home)
            dbuf.data[:] = lbuf.data
            self.cache.write(dbuf)
            self.cache.release(lbuf)
            self.cache.release(dbuf)

    def _read_head(self) -> None:
        buf = self.cache.read(self.dev, self.start)
        n, *blocks = _HEADER.unpack_from(buf.data)
        self.blocks = blocks[:n]
        self.cache.release(buf)

    def _write_head(self) -> None:
        """Write the header; this is the point at which a transaction commits."""
        buf = self.cache.read(self.dev, self.start)
        fields = list(_HEADER.unpack_from(buf.data))
        fields[0] = len(self.blocks)
        fields[1 : 1 + len(self.blocks)] = self.blocks
        _HEADER.pack_into(buf.data, 0, *fields)
        self.cache.write(buf)
        self.cache.release(buf)

    def _recover(self) -> None:
        self._read_head()
        self._install_trans()
        self.blocks = []
        self._write_head()

    def _write_log(self) -> None:
        for tail, home in enumerate(self.blocks):
            to = self.cache.read(self.dev, self.start + tail + 1)
            src = self.cache.read(self.dev, home)
            to.data[:] = src.data
            self.cache.write(to)
            self.cache.release(src)
            self.cache.release(to)

    def _commit(self) -> None:
        if self.blocks:
            self._write_log()
            self._write_head()
            self._install_trans()
            self.blocks = []
            self._write_head()

    def begin_op(self) -> None:
        """Start a file-system operation, waiting while the log is busy or full."""
        with self._cond:
            while (
                self.committing
                or len(self.blocks) + (self.outstanding + 1) * MAXOPBLOCKS > LOGSIZE
            ):
                self._cond.wait()
            self.outstanding += 1

    def end_op(self) -> None:
        """End an operation; the last one out commits the log."""
        with self._cond:
            self.outstanding -= 1
            if self.committing:
                raise Panic("log.committing")
            do_commit = self.outstanding == 0
            if do_commit:
                self.committing = True
            else:
                self._cond.notify_all()
        if do_commit:
            self._commit()
            with self._cond:
                self.committing = False
                self._cond.notify_all()

    def log_write(self, buf) -> None:
        """Record a modified buffer in the current transaction and pin it."""
        if len(self.blocks) >= LOGSIZE or len(self.blocks) >= self.size - 1:
            raise Panic("too big a transaction")
        if self.outstanding < 1:
            raise Panic("log_write outside of trans")
        with self._cond:
            if buf.blockno not in self.blocks:
                self.blocks.append(buf.blockno)
            buf.dirty = True

    @contextmanager
    def transaction(self) -> Iterator[Log]:
        """Run the enclosed block as one operation."""
        self.begin_op()
        try:
            yield self
        finally:
            self.end_op()