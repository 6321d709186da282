"""Build a file-system image holding a flat root directory of files."""

from __future__ import annotations

import os
import struct
import sys
from collections.abc import Iterable, Mapping
from pathlib import Path

from .layout import (
    BPB,
    BSIZE,
    DINODE_SIZE,
    FSSIZE,
    IPB,
    LOGSIZE,
    MAXFILE,
    NDIRECT,
    NINDIRECT,
    ROOTINO,
    Dirent,
    DiskInode,
    InodeType,
    SuperBlock,
    iblock,
)

NINODES = 200
NBITMAP = FSSIZE // BPB + 1
NINODEBLOCKS = NINODES // IPB + 1
NLOG = LOGSIZE
# Boot block, superblock, log, inode blocks and bitmap.
NMETA = 2 + NLOG + NINODEBLOCKS + NBITMAP
NBLOCKS = FSSIZE - NMETA

_INDIRECT = struct.Struct(f"<{NINDIRECT}I")


class ImageBuilder:
    """Lays out a fresh image and appends files to its root directory."""

    def __init__(self):
        self._image = bytearray(FSSIZE * BSIZE)
        self.sb = SuperBlock(
            size=FSSIZE,
            nblocks=NBLOCKS,
            ninodes=NINODES,
            nlog=NLOG,
            logstart=2,
            inodestart=2 + NLOG,
            bmapstart=2 + NLOG + NINODEBLOCKS,
        )
        self._wsect(1, self.sb.pack())
        self.freeinode = 1
        self.freeblock = NMETA
        self._finished = False

        self.rootino = self.ialloc(InodeType.DIR)
        if self.rootino != ROOTINO:
            raise RuntimeError("root directory did not get the root inode")
        self.iappend(self.rootino, Dirent(self.rootino, ".").pack())
        self.iappend(self.rootino, Dirent(self.rootino, "..").pack())

    def _wsect(self, sec: int, data) -> None:
        if not 0 <= sec < FSSIZE:
            raise ValueError(f"sector {sec} outside the image")
        self._image[sec * BSIZE : (sec + 1) * BSIZE] = bytes(data).ljust(BSIZE, b"\0")

    def _rsect(self, sec: int) -> bytes:
        if not 0 <= sec < FSSIZE:
            raise ValueError(f"sector {sec} outside the image")
        return bytes(self._image[sec * BSIZE : (sec + 1) * BSIZE])

    def _inode_pos(self, inum: int) -> int:
        return iblock(inum, self.sb) * BSIZE + (inum % IPB) * DINODE_SIZE

    def _rinode(self, inum: int) -> DiskInode:
        pos = self._inode_pos(inum)
        return DiskInode.unpack(self._image[pos : pos + DINODE_SIZE])

    def _winode(self, inum: int, din: DiskInode) -> None:
        pos = self._inode_pos(inum)
        self._image[pos : pos + DINODE_SIZE] = din.pack()

    def _alloc_block(self) -> int:
        if self.freeblock >= FSSIZE:
            raise ValueError("image is out of blocks")
        block = self.freeblock
        self.freeblock += 1
        return block

    def ialloc(self, type) -> int:
        """Allocate the next inode with the given type and one link."""
        if self.freeinode >= NINODES:
            raise ValueError("image is out of inodes")
        inum = self.freeinode
        self.freeinode += 1
        self._winode(inum, DiskInode(type=int(type), nlink=1, size=0))
        return inum

    def iappend(self, inum: int, data) -> None:
        """Append data to the end of inode inum, allocating blocks as needed."""
        data = bytes(data)
        din = self._rinode(inum)
        off = din.size
        pos = 0
        while pos < len(data):
            fbn = off // BSIZE
            if fbn >= MAXFILE:
                raise ValueError("file too large")
            if fbn < NDIRECT:
                if din.addrs[fbn] == 0:
                    din.addrs[fbn] = self._alloc_block()
                block = din.addrs[fbn]
            else:
                if din.addrs[NDIRECT] == 0:
                    din.addrs[NDIRECT] = self._alloc_block()
                indirect = list(_INDIRECT.unpack(self._rsect(din.addrs[NDIRECT])))
                if indirect[fbn - NDIRECT] == 0:
                    indirect[fbn - NDIRECT] = self._alloc_block()
                    self._wsect(din.addrs[NDIRECT], _INDIRECT.pack(*indirect))
                block = indirect[fbn - NDIRECT]
            n1 = min(len(data) - pos, (fbn + 1) * BSIZE - off)
            start = block * BSIZE + off - fbn * BSIZE
            self._image[start : start + n1] = data[pos : pos + n1]
            pos += n1
            off += n1
        din.size = off
        self._winode(inum, din)

    def add_file(self, name: str, data) -> int:
        """Add a regular file to the root directory; a leading '_' is dropped."""
        if "/" in name:
            raise ValueError(f"file name may not contain '/': {name!r}")
        if name.startswith("_"):
            name = name[1:]
        inum = self.ialloc(InodeType.FILE)
        self.iappend(self.rootino, Dirent(inum, name).pack())
        self.iappend(inum, data)
        return inum

    def finish(self) -> bytes:
        """Round up the root directory, write the free bitmap, return the image."""
        if self._finished:
            raise RuntimeError("image already finished")
        self._finished = True
        din = self._rinode(self.rootino)
        din.size = (din.size // BSIZE + 1) * BSIZE
        self._winode(self.rootino, din)

        used = self.freeblock
        if used >= BPB:
            raise ValueError("too many blocks in use for one bitmap block")
        bitmap = bytearray(BSIZE)
        for block in range(used):
            bitmap[block // 8] |= 1 << (block % 8)
        self._wsect(self.sb.bmapstart, bitmap)
        return bytes(self._image)


def build_image(files: Mapping[str, bytes] | Iterable[tuple[str, bytes]]) -> bytes:
    """Build an image whose root directory holds the given (name, data) files."""
    items = files.items() if isinstance(files, Mapping) else files
    builder = ImageBuilder()
    for name, data in items:
        builder.add_file(name, data)
    return builder.finish()


def main(argv=None) -> int:
    """Write an image file holding the named files: mkfs fs.img files..."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print("Usage: mkfs fs.img files...", file=sys.stderr)
        return 1

    print(
        f"nmeta {NMETA} (boot, super, log blocks {NLOG} inode blocks "
        f"{NINODEBLOCKS}, bitmap blocks {NBITMAP}) blocks {NBLOCKS} total {FSSIZE}"
    )
    builder = ImageBuilder()
    for path in args[1:]:
        try:
            data = Path(path).read_bytes()
        except OSError as exc:
            print(f"{path}: {exc.strerror}", file=sys.stderr)
            return 1
        builder.add_file(os.path.basename(path), data)

    used = builder.freeblock
    image = builder.finish()
    print(f"balloc: first {used} blocks have been allocated")
    print(f"balloc: write bitmap block at sector {builder.sb.bmapstart}")
    try:
        Path(args[0]).write_bytes(image)
    except OSError as exc:
        print(f"{args[0]}: {exc.strerror}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())