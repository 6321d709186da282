"""Search a file-system image for entries with a given name."""

from __future__ import annotations

import sys
from pathlib import Path

from .bufcache import BufferCache
from .disk import MemDisk
from .file import FileTable
from .fs import FileSystem
from .layout import DIRENT_SIZE, DIRSIZ, Dirent, InodeType
from .log import Log

_PATHBUF = 512


def _mount(image_path) -> FileSystem:
    cache = BufferCache(MemDisk(Path(image_path).read_bytes()))
    return FileSystem(cache, Log(cache))


def _open(fs, files, path):
    with fs.log.transaction():
        ip = fs.namei(path)
    return files.open_inode(ip, True, False)


def _stat(fs, files, path):
    f = _open(fs, files, path)
    try:
        return files.stat(f)
    finally:
        files.close(f)


def _dirents(files, f):
    while len(raw := files.read(f, DIRENT_SIZE)) == DIRENT_SIZE:
        yield Dirent.unpack(raw)


def _cstr(s: str) -> str:
    return s.split("\0", 1)[0]


def fmtname(path: str) -> str:
    """The last path element, padded with NULs to DIRSIZ characters."""
    name = path.rsplit("/", 1)[-1]
    return name if len(name) >= DIRSIZ else name.ljust(DIRSIZ, "\0")


def _find(fs, files, path: str, target: str, out) -> None:
    try:
        f = _open(fs, files, path)
    except OSError:
        print(f"find: cannot open {path}", file=sys.stderr)
        return
    try:
        st = files.stat(f)
        if st.type != InodeType.DIR:
            if _cstr(fmtname(path)) == target:
                out.write(f"{path}\n")
            return
        if len(path) + 1 + DIRSIZ + 1 > _PATHBUF:
            out.write("find: path too long\n")
            return
        prefix = "/" if path == "/" else path + "/"
        for de in _dirents(files, f):
            if de.inum == 0 or de.name in (".", ".."):
                continue
            entry = prefix + de.name
            try:
                est = _stat(fs, files, entry)
            except OSError:
                out.write(f"find: cannot stat {entry}\n")
                continue
            if est.type == InodeType.DIR:
                _find(fs, files, entry, target, out)
            elif de.name == target:
                out.write(f"{entry}\n")
    finally:
        files.close(f)


def find(fs, path: str, target: str, out) -> None:
    """Write the path of every non-directory named target under path."""
    _find(fs, FileTable(fs), path, target, out)


def main(argv=None) -> int:
    """find image path target"""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) < 3:
        print("Usage: find image path target", file=sys.stderr)
        return 1
    try:
        fs = _mount(args[0])
    except OSError as exc:
        print(f"find: cannot read {args[0]}: {exc.strerror}", file=sys.stderr)
        return 1
    find(fs, args[1], args[2], sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())