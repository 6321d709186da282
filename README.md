# xvfs

`xvfs` is a compact Unix-style file system written in plain Python. It
models the storage layer of a small teaching kernel, layer by layer:

- **On-disk layout** (`xvfs.layout`): `SuperBlock`, `DiskInode`, `Dirent`
  and `Stat`, packed little-endian with 512-byte blocks, plus the limits
  (`FSSIZE`, `NBUF`, `LOGSIZE`, ...) and the `Panic` exception.
- **Disk** (`xvfs.disk.MemDisk`): a block device held in memory;
  `image()` returns a copy of the whole image.
- **Buffer cache** (`xvfs.bufcache.BufferCache`): a fixed pool of `Buf`
  block buffers with `read`, `write` and `release`, recycled in
  least-recently-used order.
- **Log** (`xvfs.log.Log`): a redo log grouping the writes of operations
  into transactions (`begin_op`/`end_op`, or the `transaction()` context
  manager); committed transactions are replayed when a `Log` is created.
- **File system** (`xvfs.fs.FileSystem`): block allocation, the inode
  cache (`iget`, `ilock`, `iput`, ...), direct and indirect blocks,
  `readi`/`writei`, `dirlookup`/`dirlink`, and path lookup with `namei`
  and `nameiparent`.
- **Open files and pipes** (`xvfs.file.FileTable`, `xvfs.pipe.Pipe`):
  reference-counted open files over inodes or bounded, blocking pipes.
- **Image builder** (`xvfs.mkfs`): `ImageBuilder` and `build_image`
  create a fresh image with a root directory holding any number of files.
- **Console and keyboard** (`xvfs.console.Console`, `xvfs.kbd.Keyboard`):
  line-edited input with ^U, backspace and ^D, an 80x25 screen model with
  serial echo collected in `output`, and PC scancode decoding.
- **Utilities**: `xvfs.printf.format`/`fprintf` (`%d %x %p %s %c %lu`),
  `xvfs.grep.match` for patterns using `^ . * $`, `xvfs.ls.ls`,
  `xvfs.find.find`, `xvfs.cat.cat` and `xvfs.cat.echo`, and
  `xvfs.kalloc.PageAllocator` for 4096-byte pages.

No third-party libraries are needed.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Commands

Build an image holding some files in its root directory; a leading `_` in
a file name is dropped when the file is stored:

```
xvfs-mkfs fs.img README _cat _ls
```

List a path inside an image (the root's current directory, `.`, when no
path is given), printing name, type, inode number and size:

```
xvfs-ls fs.img /
```

Print every file under a path inside an image whose name is the target:

```
xvfs-find fs.img / README
```

Search host files for a pattern, reading standard input when no files are
given:

```
xvfs-grep 'ab*c$' notes.txt
```

Copy host files, or standard input, to standard output:

```
xvfs-cat notes.txt
```

## Using the library

The layers are plain objects stacked on one another: a `MemDisk` wraps an
image, a `BufferCache` sits on the disk, a `Log` on the cache, and a
`FileSystem` on both. Every change to the file system happens inside a log
transaction:

```python
from xvfs.bufcache import BufferCache
from xvfs.disk import MemDisk
from xvfs.fs import FileSystem
from xvfs.layout import InodeType
from xvfs.log import Log
from xvfs.mkfs import build_image

disk = MemDisk(build_image({"README": b"hi\n"}), 1)
cache = BufferCache(disk, 30)
log = Log(cache, 1)
fs = FileSystem(cache, log, 1)

with log.transaction():
    root = fs.namei("/", None)
    fs.ilock(root)
    ip = fs.ialloc(InodeType.FILE)
    fs.ilock(ip)
    ip.nlink = 1
    fs.iupdate(ip)
    fs.writei(ip, b"hello\n", 0)
    fs.dirlink(root, "hello", ip.inum)
    fs.iunlockput(ip)
    fs.iunlockput(root)

image = disk.image()
```

Lookups of missing paths raise `FileNotFoundError`, walking through a file
raises `NotADirectoryError`, and linking a name that exists raises
`FileExistsError`. Conditions the file system treats as fatal, such as
running out of buffers or freeing a free block, raise `xvfs.layout.Panic`.

## What it does not do

There is no system-call layer: no `open`, `mkdir`, `link` or `unlink`
operations built on top of `FileSystem`, no processes and no shell. Files
and directories are created by hand with `ialloc`, `writei` and `dirlink`
as shown above. `xvfs-mkfs` only builds a flat root directory, and
`xvfs-ls` and `xvfs-find` only read an image; nothing writes a changed
image back to disk except your own code using `MemDisk.image()`. The
console and keyboard are models driven by calls, not attached to a real
terminal.