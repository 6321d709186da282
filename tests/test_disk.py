from types import SimpleNamespace

import pytest

from xvfs.disk import MemDisk
from xvfs.layout import BSIZE, Panic


def make_buf(blockno, dev=1, locked=True, valid=False, dirty=False, data=None):
    return SimpleNamespace(
        dev=dev,
        blockno=blockno,
        data=bytearray(data if data is not None else bytes(BSIZE)),
        valid=valid,
        dirty=dirty,
        locked=locked,
    )


@pytest.fixture
def disk():
    image = b"".join(bytes([i]) * BSIZE for i in range(4))
    return MemDisk(image)


def test_read_fills_buffer(disk):
    buf = make_buf(2)
    disk.rw(buf)
    assert buf.data == bytes([2]) * BSIZE
    assert buf.valid is True


def test_write_dirty_buffer(disk):
    buf = make_buf(1, valid=True, dirty=True, data=b"z" * BSIZE)
    disk.rw(buf)
    assert disk.image()[BSIZE : 2 * BSIZE] == b"z" * BSIZE
    assert buf.dirty is False
    assert buf.valid is True


def test_image_size_preserved(disk):
    disk.rw(make_buf(3, valid=True, dirty=True))
    assert len(disk.image()) == 4 * BSIZE
    assert disk.nblocks == 4


def test_unlocked_buffer_panics(disk):
    with pytest.raises(Panic, match="not locked"):
        disk.rw(make_buf(0, locked=False))


def test_nothing_to_do_panics(disk):
    with pytest.raises(Panic, match="nothing to do"):
        disk.rw(make_buf(0, valid=True))


def test_wrong_device_panics(disk):
    with pytest.raises(Panic, match="not for disk"):
        disk.rw(make_buf(0, dev=2))


def test_block_out_of_range_panics(disk):
    with pytest.raises(Panic, match="out of range"):
        disk.rw(make_buf(4))