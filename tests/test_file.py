import pytest

from xvfs.bufcache import BufferCache
from xvfs.disk import MemDisk
from xvfs.file import FileKind, FileTable
from xvfs.fs import FileSystem
from xvfs.layout import InodeType, Panic
from xvfs.log import Log
from xvfs.mkfs import build_image

CONTENT = b"hello, world"


def mount(files):
    cache = BufferCache(MemDisk(build_image(files)))
    log = Log(cache)
    return FileSystem(cache, log), log


@pytest.fixture
def env():
    fs, log = mount({"hello.txt": CONTENT, "empty": b""})
    return fs, log, FileTable(fs)


def open_path(env, path, readable=True, writable=False):
    fs, log, table = env
    with log.transaction():
        ip = fs.namei(path)
    return table.open_inode(ip, readable, writable)


def test_read_advances_offset(env):
    table = env[2]
    f = open_path(env, "/hello.txt")
    assert table.read(f, 5) == CONTENT[:5]
    assert f.off == 5
    assert table.read(f, 100) == CONTENT[5:]
    assert table.read(f, 100) == b""


def test_stat_reports_inode(env):
    table = env[2]
    f = open_path(env, "/hello.txt")
    st = table.stat(f)
    assert st.size == len(CONTENT)
    assert st.type == InodeType.FILE


def test_write_then_read_back_many_blocks(env):
    table = env[2]
    data = bytes(i % 251 for i in range(4000))
    w = open_path(env, "/empty", readable=False, writable=True)
    assert table.write(w, data) == len(data)
    assert w.off == len(data)
    r = open_path(env, "/empty")
    assert table.read(r, 5000) == data
    assert table.stat(r).size == len(data)


def test_write_on_read_only_file_raises(env):
    table = env[2]
    f = open_path(env, "/hello.txt")
    with pytest.raises(OSError):
        table.write(f, b"x")


def test_read_on_write_only_file_raises(env):
    table = env[2]
    f = open_path(env, "/empty", readable=False, writable=True)
    with pytest.raises(OSError):
        table.read(f, 1)


def test_close_releases_inode_reference(env):
    table = env[2]
    f = open_path(env, "/hello.txt")
    ip = f.ip
    before = ip.ref
    table.close(f)
    assert ip.ref == before - 1
    assert f.kind is FileKind.NONE
    assert f.ref == 0


def test_dup_and_close(env):
    table = env[2]
    f = open_path(env, "/hello.txt")
    assert table.dup(f) is f
    assert f.ref == 2
    table.close(f)
    assert f.ref == 1
    assert f.kind is FileKind.INODE
    table.close(f)
    with pytest.raises(Panic):
        table.close(f)


def test_dup_of_free_file_panics(env):
    table = env[2]
    f = table.alloc()
    table.close(f)
    with pytest.raises(Panic):
        table.dup(f)


def test_pipe_files(env):
    table = env[2]
    rf, wf = table.pipe()
    assert (rf.readable, rf.writable, wf.readable, wf.writable) == (
        True,
        False,
        False,
        True,
    )
    assert table.write(wf, b"ping") == 4
    assert table.read(rf, 10) == b"ping"
    table.close(wf)
    assert table.read(rf, 10) == b""


def test_stat_on_pipe_raises(env):
    table = env[2]
    rf, _ = table.pipe()
    with pytest.raises(OSError):
        table.stat(rf)


def test_table_exhaustion():
    fs, _ = mount({})
    table = FileTable(fs, nfile=2)
    table.alloc()
    table.alloc()
    with pytest.raises(OSError):
        table.alloc()


def test_failed_pipe_frees_first_file():
    fs, _ = mount({})
    table = FileTable(fs, nfile=1)
    with pytest.raises(OSError):
        table.pipe()
    f = table.alloc()
    assert f.ref == 1