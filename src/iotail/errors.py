# -*- coding: utf-8 -*-
from typing import List, Optional

from .schemas import ReopenMode


class TailError(Exception):
    """Base class of every exception raised by iotail."""


class SourceDeletedError(TailError):
    """The tailed source vanished and reopen_deleted is disabled."""


class UnsupportedOperationError(TailError, NotImplementedError):
    """Positioning was requested on a source that cannot seek."""


class BreakAtEOF(TailError):
    """
    Raised by tail() when break_if_eof is set and no more data is available.
    In collecting mode ``lines`` holds everything read before the break.
    """

    def __init__(self, lines: Optional[List[bytes]] = None):
        super().__init__("end of data reached")
        self.lines = lines


class SourceLost(TailError):
    """A read showed the handle no longer refers to a live source."""

    def __init__(self, mode: ReopenMode = ReopenMode.TOP):
        super().__init__(f"source lost, reopen from {mode.value}")
        self.mode = mode


class SourceUnavailable(TailError):
    """A reopen could not reacquire the underlying handle."""
