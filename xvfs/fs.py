"""Inodes, directories and path names on top of the logged block layer."""

from __future__ import annotations

import errno
import struct
import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from .layout import (
    BPB,
    BSIZE,
    DINODE_SIZE,
    DIRENT_SIZE,
    DIRSIZ,
    IPB,
    MAXFILE,
    NDEV,
    NDIRECT,
    NINDIRECT,
    NINODE,
    ROOTDEV,
    ROOTINO,
    Dirent,
    DiskInode,
    InodeType,
    Panic,
    Stat,
    SuperBlock,
    bblock,
    iblock,
)

CONSOLE = 1

_INDIRECT = struct.Struct(f"<{NINDIRECT}I")
_ADDR = struct.Struct("<I")


@dataclass(eq=False)
class Inode:
    """In-memory copy of an inode, shared by everyone who references it."""

    dev: int = 0
    inum: int = 0
    ref: int = 0
    valid: bool = False
    type: int = 0
    major: int = 0
    minor: int = 0
    nlink: int = 0
    size: int = 0
    addrs: list[int] = field(default_factory=lambda: [0] * (NDIRECT + 1))
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )
    _holder: int | None = field(default=None, init=False, repr=False)

    @property
    def locked(self) -> bool:
        """Whether the calling thread holds this inode's lock."""
        return self._holder == threading.get_ident()

    def _acquire(self) -> None:
        self._lock.acquire()
        self._holder = threading.get_ident()

    def _release(self) -> None:
        self._holder = None
        self._lock.release()


@dataclass
class Device:
    """Read and write handlers for one major device number."""

    read: Callable[[Inode, int], bytes] | None = None
    write: Callable[[Inode, bytes], int] | None = None


def skipelem(path: str) -> tuple[str, str] | None:
    """Split off the first path element.

    Returns the element (cut to DIRSIZ characters) and the remaining path
    without leading slashes, or None when no element is left.
    """
    path = path.lstrip("/")
    if not path:
        return None
    elem, _, rest = path.partition("/")
    return elem[:DIRSIZ], rest.lstrip("/")


def namecmp(s: str, t: str) -> int:
    """Compare two directory entry names over their first DIRSIZ characters."""
    a, b = s[:DIRSIZ], t[:DIRSIZ]
    return (a > b) - (a < b)


class FileSystem:
    """Block allocation, the inode cache, file content, directories and paths."""

    def __init__(self, cache, log, dev: int = ROOTDEV):
        self.cache = cache
        self.log = log
        self.dev = dev
        self._lock = threading.Lock()
        self._inodes = [Inode() for _ in range(NINODE)]
        self.devsw = [Device() for _ in range(NDEV)]
        bp = cache.read(dev, 1)
        self.sb = SuperBlock.unpack(bp.data)
        cache.release(bp)

    # Blocks.

    def _bzero(self, bno: int) -> None:
        bp = self.cache.read(self.dev, bno)
        bp.data[:] = bytes(BSIZE)
        self.log.log_write(bp)
        self.cache.release(bp)

    def _balloc(self) -> int:
        size = self.sb.size
        for base in range(0, size, BPB):
            bp = self.cache.read(self.dev, bblock(base, self.sb))
            for bi in range(min(BPB, size - base)):
                mask = 1 << (bi % 8)
                if not bp.data[bi // 8] & mask:
                    bp.data[bi // 8] |= mask
                    self.log.log_write(bp)
                    self.cache.release(bp)
                    self._bzero(base + bi)
                    return base + bi
            self.cache.release(bp)
        raise Panic("balloc: out of blocks")

    def _bfree(self, b: int) -> None:
        bp = self.cache.read(self.dev, bblock(b, self.sb))
        bi = b % BPB
        mask = 1 << (bi % 8)
        if not bp.data[bi // 8] & mask:
            self.cache.release(bp)
            raise Panic("freeing free block")
        bp.data[bi // 8] &= ~mask & 0xFF
        self.log.log_write(bp)
        self.cache.release(bp)

    # Inodes.

    def _slot(self, inum: int) -> tuple[int, int]:
        return iblock(inum, self.sb), (inum % IPB) * DINODE_SIZE

    def ialloc(self, type) -> Inode:
        """Allocate a free inode on disk and return it referenced but unlocked."""
        for inum in range(1, self.sb.ninodes):
            blockno, off = self._slot(inum)
            bp = self.cache.read(self.dev, blockno)
            dip = DiskInode.unpack(bytes(bp.data[off : off + DINODE_SIZE]))
            if dip.type == 0:
                bp.data[off : off + DINODE_SIZE] = DiskInode(type=int(type)).pack()
                self.log.log_write(bp)
                self.cache.release(bp)
                return self.iget(inum)
            self.cache.release(bp)
        raise Panic("ialloc: no inodes")

    def iupdate(self, ip: Inode) -> None:
        """Copy an inode's on-disk fields to its disk block."""
        blockno, off = self._slot(ip.inum)
        bp = self.cache.read(ip.dev, blockno)
        dip = DiskInode(
            int(ip.type), ip.major, ip.minor, ip.nlink, ip.size, list(ip.addrs)
        )
        bp.data[off : off + DINODE_SIZE] = dip.pack()
        self.log.log_write(bp)
        self.cache.release(bp)

    def iget(self, inum: int) -> Inode:
        """Find or make the cached inode for inum; neither locks nor reads it."""
        with self._lock:
            empty = None
            for ip in self._inodes:
                if ip.ref > 0 and ip.dev == self.dev and ip.inum == inum:
                    ip.ref += 1
                    return ip
                if empty is None and ip.ref == 0:
                    empty = ip
            if empty is None:
                raise Panic("iget: no inodes")
            empty.dev = self.dev
            empty.inum = inum
            empty.ref = 1
            empty.valid = False
            return empty

    def idup(self, ip: Inode) -> Inode:
        """Take another reference to ip."""
        with self._lock:
            ip.ref += 1
        return ip

    def ilock(self, ip: Inode) -> None:
        """Lock an inode, reading it from disk if needed."""
        if ip is None or ip.ref < 1:
            raise Panic("ilock")
        ip._acquire()
        if not ip.valid:
            blockno, off = self._slot(ip.inum)
            bp = self.cache.read(ip.dev, blockno)
            dip = DiskInode.unpack(bytes(bp.data[off : off + DINODE_SIZE]))
            self.cache.release(bp)
            ip.type = dip.type
            ip.major = dip.major
            ip.minor = dip.minor
            ip.nlink = dip.nlink
            ip.size = dip.size
            ip.addrs = list(dip.addrs)
            ip.valid = True
            if ip.type == 0:
                raise Panic("ilock: no type")

    def iunlock(self, ip: Inode) -> None:
        """Unlock an inode held by the caller."""
        if ip is None or not ip.locked or ip.ref < 1:
            raise Panic("iunlock")
        ip._release()

    def iput(self, ip: Inode) -> None:
        """Drop a reference; free the inode on disk if it was the last and unlinked.

        Must run inside a transaction.
        """
        ip._acquire()
        try:
            if ip.valid and ip.nlink == 0:
                with self._lock:
                    refs = ip.ref
                if refs == 1:
                    self._itrunc(ip)
                    ip.type = 0
                    self.iupdate(ip)
                    ip.valid = False
        finally:
            ip._release()
        with self._lock:
            ip.ref -= 1

    def iunlockput(self, ip: Inode) -> None:
        """Unlock, then drop a reference."""
        self.iunlock(ip)
        self.iput(ip)

    # Inode content.

    def _bmap(self, ip: Inode, bn: int) -> int:
        if bn < NDIRECT:
            if ip.addrs[bn] == 0:
                ip.addrs[bn] = self._balloc()
            return ip.addrs[bn]
        bn -= NDIRECT
        if bn < NINDIRECT:
            if ip.addrs[NDIRECT] == 0:
                ip.addrs[NDIRECT] = self._balloc()
            bp = self.cache.read(ip.dev, ip.addrs[NDIRECT])
            (addr,) = _ADDR.unpack_from(bp.data, bn * _ADDR.size)
            if addr == 0:
                addr = self._balloc()
                _ADDR.pack_into(bp.data, bn * _ADDR.size, addr)
                self.log.log_write(bp)
            self.cache.release(bp)
            return addr
        raise Panic("bmap: out of range")

    def _itrunc(self, ip: Inode) -> None:
        for i, addr in enumerate(ip.addrs[:NDIRECT]):
            if addr:
                self._bfree(addr)
                ip.addrs[i] = 0
        if ip.addrs[NDIRECT]:
            bp = self.cache.read(ip.dev, ip.addrs[NDIRECT])
            for addr in _INDIRECT.unpack_from(bp.data):
                if addr:
                    self._bfree(addr)
            self.cache.release(bp)
            self._bfree(ip.addrs[NDIRECT])
            ip.addrs[NDIRECT] = 0
        ip.size = 0
        self.iupdate(ip)

    def stati(self, ip: Inode) -> Stat:
        """Metadata of a locked inode."""
        return Stat(
            type=ip.type, dev=ip.dev, ino=ip.inum, nlink=ip.nlink, size=ip.size
        )

    def _device(self, ip: Inode) -> Device:
        if not 0 <= ip.major < NDEV:
            raise OSError(errno.ENODEV, f"no such device: {ip.major}")
        return self.devsw[ip.major]

    def readi(self, ip: Inode, off: int, n: int) -> bytes:
        """Read up to n bytes at off from a locked inode."""
        if ip.type == InodeType.DEV:
            read = self._device(ip).read
            if read is None:
                raise OSError(errno.ENODEV, f"device {ip.major} cannot read")
            return read(ip, n)
        if off < 0 or n < 0 or off > ip.size:
            raise ValueError(f"readi: bad range {off}+{n} for size {ip.size}")
        n = min(n, ip.size - off)
        out = bytearray()
        while len(out) < n:
            bp = self.cache.read(ip.dev, self._bmap(ip, off // BSIZE))
            start = off % BSIZE
            m = min(n - len(out), BSIZE - start)
            out += bp.data[start : start + m]
            self.cache.release(bp)
            off += m
        return bytes(out)

    def writei(self, ip: Inode, data, off: int) -> int:
        """Write data at off into a locked inode; return the count written."""
        if ip.type == InodeType.DEV:
            write = self._device(ip).write
            if write is None:
                raise OSError(errno.ENODEV, f"device {ip.major} cannot write")
            return write(ip, bytes(data))
        data = bytes(data)
        n = len(data)
        if off < 0 or off > ip.size:
            raise ValueError(f"writei: offset {off} beyond size {ip.size}")
        if off + n > MAXFILE * BSIZE:
            raise ValueError("writei: file too large")
        tot = 0
        while tot < n:
            bp = self.cache.read(ip.dev, self._bmap(ip, off // BSIZE))
            start = off % BSIZE
            m = min(n - tot, BSIZE - start)
            bp.data[start : start + m] = data[tot : tot + m]
            self.log.log_write(bp)
            self.cache.release(bp)
            tot += m
            off += m
        if n > 0 and off > ip.size:
            ip.size = off
            self.iupdate(ip)
        return n

    # Directories.

    def _entry(self, dp: Inode, off: int, what: str) -> Dirent:
        raw = self.readi(dp, off, DIRENT_SIZE)
        if len(raw) != DIRENT_SIZE:
            raise Panic(what)
        return Dirent.unpack(raw)

    def dirlookup(self, dp: Inode, name: str) -> tuple[Inode, int] | None:
        """Find name in a locked directory: the entry's inode and byte offset."""
        if dp.type != InodeType.DIR:
            raise Panic("dirlookup not DIR")
        for off in range(0, dp.size, DIRENT_SIZE):
            de = self._entry(dp, off, "dirlookup read")
            if de.inum and namecmp(name, de.name) == 0:
                return self.iget(de.inum), off
        return None

    def dirlink(self, dp: Inode, name: str, inum: int) -> None:
        """Add the entry (name, inum) to a locked directory."""
        found = self.dirlookup(dp, name)
        if found is not None:
            self.iput(found[0])
            raise FileExistsError(errno.EEXIST, "directory entry exists", name)
        off = next(
            (
                o
                for o in range(0, dp.size, DIRENT_SIZE)
                if self._entry(dp, o, "dirlink read").inum == 0
            ),
            dp.size,
        )
        if self.writei(dp, Dirent(inum, name[:DIRSIZ]).pack(), off) != DIRENT_SIZE:
            raise Panic("dirlink")

    # Paths.

    def _namex(self, path: str, parent: bool, cwd: Inode | None):
        if path.startswith("/") or cwd is None:
            ip = self.iget(ROOTINO)
        else:
            ip = self.idup(cwd)
        rest = path
        while (step := skipelem(rest)) is not None:
            name, rest = step
            self.ilock(ip)
            if ip.type != InodeType.DIR:
                self.iunlockput(ip)
                raise NotADirectoryError(errno.ENOTDIR, "not a directory", path)
            if parent and rest == "":
                self.iunlock(ip)
                return ip, name
            found = self.dirlookup(ip, name)
            self.iunlockput(ip)
            if found is None:
                raise FileNotFoundError(errno.ENOENT, "no such file", path)
            ip = found[0]
        if parent:
            self.iput(ip)
            raise FileNotFoundError(errno.ENOENT, "path has no final element", path)
        return ip, ""

    def namei(self, path: str, cwd: Inode | None = None) -> Inode:
        """Look up a path; relative paths start at cwd, or the root without one.

        Must run inside a transaction.
        """
        return self._namex(path, False, cwd)[0]

    def nameiparent(self, path: str, cwd: Inode | None = None) -> tuple[Inode, str]:
        """Look up the directory holding a path's last element, and that element."""
        return self._namex(path, True, cwd)