# -*- coding: utf-8 -*-
import errno
import logging
import os
import select
import shlex
import signal
import subprocess
from typing import BinaryIO, Iterator, List, Optional, Sequence, Union

from .errors import SourceLost, SourceUnavailable, UnsupportedOperationError
from .scanner import block_size_of, seek_backward_lines, seek_forward_lines
from .schemas import ReopenMode, SourceIdentity

logger = logging.getLogger(__name__)

# errnos meaning the handle no longer refers to the file at our path
LOST_ERRNOS = {errno.ENOENT, errno.ESTALE, errno.EBADF}


class LineSource:
    """
    Abstract line source the tail engine reads from.

    readline() returns the next complete line (bytes, newline included) or
    None when no new data is available right now. It raises SourceLost when
    the handle turned out to be dead. restat() is the health check run before
    every read: None means healthy, a ReopenMode asks the engine to reopen.
    """

    seekable = False

    def readline(self) -> Optional[bytes]:
        raise NotImplementedError()

    def restat(self) -> Optional[ReopenMode]:
        return None

    def reopen(self, mode: ReopenMode) -> None:
        raise NotImplementedError()

    def drain(self) -> Iterator[bytes]:
        """Lines still readable from the current handle before it is replaced."""
        return iter(())

    def flush_partial(self) -> Optional[bytes]:
        """Hand out an unterminated fragment held back by readline(), if any."""
        return None

    def close(self) -> None:
        raise NotImplementedError()

    def forward(self, n: int = 0) -> "LineSource":
        raise UnsupportedOperationError(f"{type(self).__name__} cannot seek")

    def backward(self, n: int = 0, bufsize: Optional[int] = None) -> "LineSource":
        raise UnsupportedOperationError(f"{type(self).__name__} cannot seek")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class FileLineSource(LineSource):
    """
    Seekable source: a regular file followed by path across rotation and
    truncation. Accepts a path or an already open binary file object.
    """

    seekable = True

    def __init__(self, file_or_path: Union[str, os.PathLike, BinaryIO], default_bufsize: Optional[int] = None):
        if isinstance(file_or_path, (str, os.PathLike)):
            self._path = os.fspath(file_or_path)
            self._fh: BinaryIO = open(self._path, "rb")
        else:
            self._fh = file_or_path
            self._path = os.fspath(file_or_path.name)
        self.default_bufsize = default_bufsize
        self._identity: Optional[SourceIdentity] = None
        self._partial = b""

    @property
    def path(self) -> str:
        return self._path

    @property
    def identity(self) -> Optional[SourceIdentity]:
        return self._identity

    def tell(self) -> int:
        return self._fh.tell()

    def forward(self, n: int = 0) -> "FileLineSource":
        """Skip the first ``n`` lines; forward(0) rewinds to the start."""
        self._partial = b""
        seek_forward_lines(self._fh, n)
        return self

    def backward(self, n: int = 0, bufsize: Optional[int] = None) -> "FileLineSource":
        """
        Leave exactly the last ``n`` lines to be read. The scan steps through
        the file in ``bufsize`` windows: the explicit argument, else
        default_bufsize, else the filesystem block size, else 8192 bytes.
        """
        self._partial = b""
        bufsize = bufsize or block_size_of(self._fh, self.default_bufsize)
        seek_backward_lines(self._fh, n, bufsize)
        return self

    def readline(self) -> Optional[bytes]:
        try:
            chunk = self._fh.readline()
        except OSError as exc:
            if exc.errno in LOST_ERRNOS:
                raise SourceLost(ReopenMode.TOP) from exc
            raise
        if not chunk:
            return None
        if not chunk.endswith(b"\n"):
            # writer is mid-line; keep it until the newline shows up
            self._partial += chunk
            return None
        line, self._partial = self._partial + chunk, b""
        return line

    def restat(self) -> Optional[ReopenMode]:
        try:
            current = SourceIdentity.from_stat(os.stat(self._path))
        except OSError as exc:
            if exc.errno in (errno.ENOENT, errno.ESTALE):
                self._identity = None
                return ReopenMode.TOP
            raise
        previous = self._identity
        if previous is None:
            self._identity = current
            return None
        if not previous.same_file(current):
            logger.debug("%s: inode/device changed, file was rotated", self._path)
            self._identity = None
            return ReopenMode.TOP
        if current.size < previous.size:
            logger.debug("%s: size %d < %d, file was truncated", self._path, current.size, previous.size)
            self._identity = None
            return ReopenMode.TOP
        self._identity = current
        return None

    def drain(self) -> Iterator[bytes]:
        while True:
            try:
                chunk = self._fh.readline()
            except OSError:
                break
            if not chunk:
                break
            line, self._partial = self._partial + chunk, b""
            yield line
        line = self.flush_partial()
        if line is not None:
            yield line

    def flush_partial(self) -> Optional[bytes]:
        if not self._partial:
            return None
        line, self._partial = self._partial, b""
        return line

    def _position(self):
        """(dev, ino, offset) of the current handle, or None if it is unusable."""
        try:
            st = os.fstat(self._fh.fileno())
            return st.st_dev, st.st_ino, self._fh.tell()
        except (OSError, ValueError):
            return None

    def reopen(self, mode: ReopenMode) -> None:
        """
        Open the path again. TOP starts at offset 0. BOTTOM resumes where the
        old handle stopped when the path still names the same file, so data
        appended between drain and reopen is kept; a different file is read
        from its end.
        """
        try:
            fh = open(self._path, "rb")
        except OSError as exc:
            if exc.errno in (errno.ENOENT, errno.ESTALE):
                raise SourceUnavailable(f"{self._path} does not exist") from exc
            raise
        previous = self._position() if mode is ReopenMode.BOTTOM else None
        old, self._fh = self._fh, fh
        try:
            old.close()
        except OSError:
            pass
        self._partial = b""
        self._identity = None
        if mode is not ReopenMode.BOTTOM:
            return
        st = os.fstat(fh.fileno())
        if previous is not None and previous[:2] == (st.st_dev, st.st_ino) and previous[2] <= st.st_size:
            fh.seek(previous[2])
        else:
            self.backward(0)

    def close(self) -> None:
        self._fh.close()


class ProcessLineSource(LineSource):
    """
    Stream source: the standard output of a long running command.

    Reads never block; a zero-timeout select() reports "no data yet" as None so the
    engine can poll. When the pipe reaches EOF the child is gone and the
    engine restarts it with the same command.
    """

    read_size = 65536

    def __init__(self, command: Union[str, Sequence[str]], start: bool = True, kill_timeout: float = 1.0):
        self.command = command
        self.kill_timeout = kill_timeout
        self._process: Optional[subprocess.Popen] = None
        self._buffer = b""
        self._lines_since_spawn = 0
        self._killed = False
        if start:
            self._spawn()

    @property
    def argv(self) -> List[str]:
        if isinstance(self.command, str):
            return shlex.split(self.command)
        return list(self.command)

    @property
    def process(self) -> Optional[subprocess.Popen]:
        return self._process

    def _spawn(self) -> None:
        self._process = subprocess.Popen(self.argv, stdin=subprocess.DEVNULL, stdout=subprocess.PIPE)
        self._buffer = b""
        self._lines_since_spawn = 0
        self._killed = False
        logger.debug("spawned %r as pid %d", self.command, self._process.pid)

    def _fill(self) -> bool:
        """Read whatever the pipe has; False if nothing was waiting."""
        stdout = self._process.stdout
        try:
            ready, _, _ = select.select([stdout], [], [], 0)
            if not ready:
                return False
            chunk = os.read(stdout.fileno(), self.read_size)
        except (OSError, ValueError) as exc:
            raise SourceLost(ReopenMode.RESTART) from exc
        if not chunk:
            raise SourceLost(ReopenMode.RESTART)
        self._buffer += chunk
        return True

    def readline(self) -> Optional[bytes]:
        if self._process is None:
            raise SourceLost(ReopenMode.RESTART)
        while b"\n" not in self._buffer:
            if not self._fill():
                return None
        line, sep, self._buffer = self._buffer.partition(b"\n")
        self._lines_since_spawn += 1
        return line + sep

    def reopen(self, mode: ReopenMode = ReopenMode.RESTART) -> None:
        previous, self._process = self._process, None
        if previous is not None:
            exited_on_its_own = not self._killed and self._wait_exit(previous)
            exited_silently = exited_on_its_own and self._lines_since_spawn == 0
            self._terminate(previous)
            self._release(previous)
            if exited_silently:
                raise SourceUnavailable(f"{self.command!r} exited with {previous.returncode} without output")
        try:
            self._spawn()
        except OSError as exc:
            raise SourceUnavailable(f"cannot start {self.command!r}: {exc}") from exc

    def kill_inner(self) -> None:
        """Terminate the child without releasing the pipe; the next read triggers a restart."""
        if self._process is None:
            return
        self._killed = True
        self._terminate(self._process)

    def _wait_exit(self, process: subprocess.Popen) -> bool:
        # a child that closed its stdout is normally already exiting
        try:
            process.wait(timeout=self.kill_timeout)
        except subprocess.TimeoutExpired:
            return False
        return True

    def _terminate(self, process: subprocess.Popen) -> None:
        if process.poll() is not None:
            return
        try:
            process.send_signal(signal.SIGINT)
            try:
                process.wait(timeout=self.kill_timeout)
            except subprocess.TimeoutExpired:
                process.kill()
                process.wait()
        except OSError:
            # already dead
            pass

    def _release(self, process: subprocess.Popen) -> None:
        if process.stdout is not None:
            try:
                process.stdout.close()
            except OSError:
                pass

    def close(self) -> None:
        if self._process is None:
            return
        self.kill_inner()
        self._release(self._process)
        self._process = None
