"""Allocator of whole physical pages from a free list."""

from __future__ import annotations

import threading

from .layout import Panic

PGSIZE = 4096


def _pgroundup(addr: int) -> int:
    return (addr + PGSIZE - 1) & ~(PGSIZE - 1)


class PageAllocator:
    """Hands out PGSIZE-byte pages between the kernel's end and phystop.

    The pages from start to end are free at first; more can be added with
    free_range. The most recently freed page is handed out first.
    """

    def __init__(self, start: int, end: int, phystop: int):
        self.kernel_end = start
        self.phystop = phystop
        self._lock = threading.Lock()
        self._free: list[int] = []
        self.free_range(start, end)

    def free_range(self, start: int, end: int) -> None:
        """Free every whole page that lies between start and end."""
        for page in range(_pgroundup(start), end - PGSIZE + 1, PGSIZE):
            self.free(page)

    def free(self, addr: int) -> None:
        """Return a page to the free list."""
        if addr % PGSIZE or addr < self.kernel_end or addr >= self.phystop:
            raise Panic("kfree")
        with self._lock:
            self._free.append(addr)

    def alloc(self) -> int:
        """Take a free page; raise MemoryError when none is left."""
        with self._lock:
            if not self._free:
                raise MemoryError("out of physical pages")
            return self._free.pop()

    def __len__(self) -> int:
        with self._lock:
            return len(self._free)