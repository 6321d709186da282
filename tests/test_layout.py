import pytest

from xvfs.layout import (
    BSIZE,
    DIRSIZ,
    IPB,
    BPB,
    NDIRECT,
    Dirent,
    DiskInode,
    InodeType,
    Stat,
    SuperBlock,
    bblock,
    iblock,
)


def test_superblock_round_trip():
    sb = SuperBlock(1000, 941, 200, 30, 2, 32, 58)
    packed = sb.pack()
    assert len(packed) == 28
    assert SuperBlock.unpack(packed) == sb


def test_superblock_unpack_from_full_block():
    sb = SuperBlock(1000, 941, 200, 30, 2, 32, 58)
    block = sb.pack() + bytes(BSIZE - 28)
    assert SuperBlock.unpack(block) == sb


def test_superblock_little_endian():
    assert SuperBlock(size=1).pack()[:4] == b"\x01\x00\x00\x00"


def test_diskinode_round_trip_and_size():
    addrs = list(range(1, NDIRECT + 2))
    din = DiskInode(InodeType.FILE, 0, 0, 1, 700, addrs)
    packed = din.pack()
    assert len(packed) * IPB == BSIZE
    assert DiskInode.unpack(packed) == din


def test_diskinode_wrong_addr_count():
    with pytest.raises(ValueError):
        DiskInode(addrs=[0, 1]).pack()


def test_dirent_wire_bytes():
    assert Dirent(1, ".").pack() == b"\x01\x00." + bytes(DIRSIZ - 1)


def test_dirent_round_trip():
    de = Dirent(7, "README")
    assert Dirent.unpack(de.pack()) == de


def test_dirent_name_truncated():
    de = Dirent.unpack(Dirent(3, "a" * 20).pack())
    assert de.name == "a" * DIRSIZ
    assert de.inum == 3


def test_iblock_and_bblock():
    sb = SuperBlock(inodestart=32, bmapstart=58)
    assert iblock(0, sb) == sb.inodestart
    assert iblock(IPB - 1, sb) == sb.inodestart
    assert iblock(IPB, sb) == sb.inodestart + 1
    assert bblock(BPB - 1, sb) == sb.bmapstart
    assert bblock(BPB, sb) == sb.bmapstart + 1


def test_stat_defaults_compare():
    assert Stat(type=InodeType.DIR, ino=1) == Stat(1, 0, 1, 0, 0)