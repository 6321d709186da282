import struct

import pytest

from xvfs.bufcache import BufferCache
from xvfs.disk import MemDisk
from xvfs.layout import BSIZE, LOGSIZE, Panic, SuperBlock
from xvfs.log import Log

NBLOCKS = 64
LOGSTART = 2


def make_image():
    image = bytearray(BSIZE * NBLOCKS)
    sb = SuperBlock(
        size=NBLOCKS,
        nblocks=20,
        ninodes=8,
        nlog=LOGSIZE,
        logstart=LOGSTART,
        inodestart=LOGSTART + LOGSIZE,
        bmapstart=LOGSTART + LOGSIZE + 1,
    )
    packed = sb.pack()
    image[BSIZE : BSIZE + len(packed)] = packed
    return image


def block(image, n):
    return bytes(image[n * BSIZE : (n + 1) * BSIZE])


def header_count(image):
    return struct.unpack_from("<i", image, LOGSTART * BSIZE)[0]


def setup(image=None):
    disk = MemDisk(image if image is not None else make_image())
    cache = BufferCache(disk)
    return disk, cache, Log(cache, 1)


def put(cache, log, blockno, fill):
    buf = cache.read(1, blockno)
    buf.data[:] = fill * BSIZE
    log.log_write(buf)
    cache.release(buf)


def test_transaction_installs_blocks():
    disk, cache, log = setup()
    with log.transaction():
        put(cache, log, 40, b"x")
    image = disk.image()
    assert block(image, 40) == b"x" * BSIZE
    assert block(image, LOGSTART + 1) == b"x" * BSIZE
    assert header_count(image) == 0
    assert log.blocks == []


def test_nothing_reaches_home_before_commit():
    disk, cache, log = setup()
    log.begin_op()
    put(cache, log, 41, b"y")
    assert block(disk.image(), 41) == bytes(BSIZE)
    log.end_op()
    assert block(disk.image(), 41) == b"y" * BSIZE


def test_nested_operations_commit_once():
    disk, cache, log = setup()
    log.begin_op()
    log.begin_op()
    put(cache, log, 42, b"n")
    log.end_op()
    assert block(disk.image(), 42) == bytes(BSIZE)
    assert log.outstanding == 1
    log.end_op()
    assert block(disk.image(), 42) == b"n" * BSIZE


def test_absorption_of_repeated_block():
    disk, cache, log = setup()
    with log.transaction():
        put(cache, log, 43, b"a")
        put(cache, log, 43, b"b")
        assert log.blocks == [43]
    assert block(disk.image(), 43) == b"b" * BSIZE


def test_log_write_outside_transaction_panics():
    _, cache, log = setup()
    buf = cache.read(1, 44)
    with pytest.raises(Panic, match="outside of trans"):
        log.log_write(buf)


def test_too_big_transaction_panics():
    _, cache, log = setup()
    log.begin_op()
    limit = log.size - 1
    for n in range(limit):
        put(cache, log, 34 + n, b"t")
    buf = cache.read(1, 34 + limit)
    with pytest.raises(Panic, match="too big"):
        log.log_write(buf)


def test_recovery_replays_committed_log():
    image = make_image()
    struct.pack_into("<ii", image, LOGSTART * BSIZE, 1, 50)
    image[(LOGSTART + 1) * BSIZE : (LOGSTART + 2) * BSIZE] = b"r" * BSIZE
    disk, _, log = setup(image)
    result = disk.image()
    assert block(result, 50) == b"r" * BSIZE
    assert header_count(result) == 0
    assert log.start == LOGSTART
    assert log.size == LOGSIZE