"""A disk held in memory as a byte image."""

from __future__ import annotations

from .layout import BSIZE, ROOTDEV, Panic


class MemDisk:
    """Block device backed by an in-memory image."""

    def __init__(self, image, dev: int = ROOTDEV):
        self._data = bytearray(image)
        self.dev = dev
        self.nblocks = len(self._data) // BSIZE

    def rw(self, buf) -> None:
        """Sync a locked buffer with the disk.

        A dirty buffer is written out and becomes clean; an invalid one is
        read in. Either way the buffer ends up valid.
        """
        if not buf.locked:
            raise Panic("iderw: buf not locked")
        if buf.valid and not buf.dirty:
            raise Panic("iderw: nothing to do")
        if buf.dev != self.dev:
            raise Panic(f"iderw: request not for disk {self.dev}")
        if buf.blockno >= self.nblocks:
            raise Panic("iderw: block out of range")

        start = buf.blockno * BSIZE
        if buf.dirty:
            buf.dirty = False
            self._data[start : start + BSIZE] = buf.data
        else:
            buf.data[:] = self._data[start : start + BSIZE]
        buf.valid = True

    def image(self) -> bytes:
        """A copy of the whole disk image."""
        return bytes(self._data)