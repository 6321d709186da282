"""A small Unix-style file system with a redo log, buffer cache, image builder and tools."""

__version__ = "0.1.0"