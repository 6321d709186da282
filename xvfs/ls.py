"""List directories and files of a file-system image."""

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


def fmtname(path: str) -> str:
    """The last path element, padded with blanks to DIRSIZ characters."""
    name = path.rsplit("/", 1)[-1]
    return name if len(name) >= DIRSIZ else name.ljust(DIRSIZ)


def _line(path: str, st) -> str:
    return f"{fmtname(path)} {int(st.type)} {st.ino} {st.size}\n"


def ls(fs, path: str, out) -> None:
    """Write a listing line for a file, or one per entry of a directory."""
    files = FileTable(fs)
    try:
        f = _open(fs, files, path)
    except OSError:
        print(f"ls: cannot open {path}", file=sys.stderr)
        return
    try:
        st = files.stat(f)
        if st.type == InodeType.FILE:
            out.write(_line(path, st))
        elif st.type == InodeType.DIR:
            if len(path) + 1 + DIRSIZ + 1 > _PATHBUF:
                out.write("ls: path too long\n")
                return
            for de in _dirents(files, f):
                if de.inum == 0:
                    continue
                entry = f"{path}/{de.name}"
                try:
                    est = _stat(fs, files, entry)
                except OSError:
                    out.write(f"ls: cannot stat {entry}\n")
                    continue
                out.write(_line(entry, est))
    finally:
        files.close(f)


def main(argv=None) -> int:
    """ls image [path ...]"""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print("usage: ls image [path ...]", file=sys.stderr)
        return 1
    try:
        fs = _mount(args[0])
    except OSError as exc:
        print(f"ls: cannot read {args[0]}: {exc.strerror}", file=sys.stderr)
        return 1
    for path in args[1:] or ["."]:
        ls(fs, path, sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())