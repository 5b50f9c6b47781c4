# -*- coding: utf-8 -*-
"""
Line positioning on seekable binary files.

seek_backward_lines() walks backwards from the end of the file in fixed size
windows, counting newlines, so locating the last N lines of a large log only
reads the tail of it. A trailing newline at the very end of the file does
not start a new line, and an unterminated last line counts as a line.
"""
from __future__ import annotations

import logging
import os
from typing import BinaryIO, Optional

from .schemas import FALLBACK_BUFSIZE

logger = logging.getLogger(__name__)


class _ShortRead(Exception):
    """The file shrank while a window was being read."""


def block_size_of(fh: BinaryIO, default: Optional[int] = None) -> int:
    """Preferred I/O block size of the filesystem holding ``fh``."""
    if default:
        return default
    try:
        blksize = getattr(os.fstat(fh.fileno()), "st_blksize", 0)
    except (OSError, AttributeError, ValueError):
        blksize = 0
    return blksize or FALLBACK_BUFSIZE


def _file_size(fh: BinaryIO) -> int:
    return os.fstat(fh.fileno()).st_size


def seek_forward_lines(fh: BinaryIO, n: int = 0) -> int:
    """Skip the first ``n`` lines of ``fh``; returns the new offset."""
    fh.seek(0, os.SEEK_SET)
    while n > 0:
        if not fh.readline():
            break
        n -= 1
    return fh.tell()


def seek_backward_lines(fh: BinaryIO, n: int = 0, bufsize: Optional[int] = None) -> int:
    """
    Position ``fh`` so that exactly the last ``n`` lines remain to be read,
    or all lines if the file has fewer. ``n <= 0`` seeks to the end of data.
    Returns the new offset.
    """
    if n <= 0:
        return fh.seek(0, os.SEEK_END)
    bufsize = block_size_of(fh, bufsize)
    size = _file_size(fh)
    try:
        offset = _rewind(fh, n, bufsize, size)
    except _ShortRead:
        # The file shrank under us; its current end is the new size.
        size = fh.seek(0, os.SEEK_END)
        logger.debug("file shrank during backward scan, retrying with size=%d", size)
        try:
            offset = _rewind(fh, n, bufsize, size)
        except _ShortRead:
            logger.debug("file still changing, falling back to offset 0")
            offset = 0
    fh.seek(offset, os.SEEK_SET)
    return offset


def _rewind(fh: BinaryIO, n: int, bufsize: int, size: int) -> int:
    if size == 0:
        return 0
    fh.seek(size - 1, os.SEEK_SET)
    last = fh.read(1)
    if not last:
        raise _ShortRead()
    end = size - 1 if last == b"\n" else size

    pos = end
    base = 0
    buffer = b""
    while n > 0 and pos > 0:
        base = max(0, pos - bufsize)
        fh.seek(base, os.SEEK_SET)
        buffer = fh.read(pos - base)
        if len(buffer) != pos - base:
            raise _ShortRead()
        n -= buffer.count(b"\n")
        pos = base
    if n > 0:
        return 0

    # The wanted line starts after the (1 - n)th newline of the last window.
    idx = -1
    while n <= 0:
        idx = buffer.index(b"\n", idx + 1)
        n += 1
    return base + idx + 1
