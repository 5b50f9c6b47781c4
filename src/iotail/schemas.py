# -*- coding: utf-8 -*-
"""
Value types shared by the tail engine, its sources and the poller.

TailConfig is the only user-facing model; it is validated with pydantic so
that configuration loaded from JSON files or the environment is checked the
same way as configuration built in code. The remaining types are per-session
state and the tagged outcomes the engine loop dispatches on.

Lines are opaque ``bytes`` objects and keep their trailing ``b"\\n"``.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator

DEFAULT_MAX_INTERVAL = 10.0
DEFAULT_SUSPICIOUS_INTERVAL = 60.0
# Used by the backward scan when neither the caller nor the filesystem
# provides a block size.
FALLBACK_BUFSIZE = 8192


class TailConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    max_interval: float = DEFAULT_MAX_INTERVAL
    # Starting sleep interval; None means "start at max_interval".
    interval: Optional[float] = None
    reopen_deleted: bool = True
    reopen_suspicious: bool = True
    suspicious_interval: float = DEFAULT_SUSPICIOUS_INTERVAL
    break_if_eof: bool = False
    return_if_eof: bool = False
    default_bufsize: Optional[int] = None

    @field_validator("max_interval")
    @classmethod
    def _positive_max_interval(cls, v):
        if v <= 0:
            raise ValueError("max_interval must be > 0")
        return v

    @field_validator("interval")
    @classmethod
    def _positive_interval(cls, v):
        if v is not None and v <= 0:
            raise ValueError("interval must be > 0")
        return v

    @field_validator("suspicious_interval")
    @classmethod
    def _non_negative_suspicious(cls, v):
        if v < 0:
            raise ValueError("suspicious_interval must be >= 0")
        return v

    @field_validator("default_bufsize")
    @classmethod
    def _positive_bufsize(cls, v):
        if v is not None and v <= 0:
            raise ValueError("default_bufsize must be > 0")
        return v

    @property
    def start_interval(self) -> float:
        return self.interval if self.interval is not None else self.max_interval


@dataclass
class RunState:
    """Counters of one tail session. Never shared between engines."""
    lines_this_interval: int = 0
    seconds_since_last_read: float = 0.0
    pending_limit: Optional[int] = None
    lines_total: int = 0
    reopens: int = 0

    def record_line(self) -> None:
        self.lines_this_interval += 1
        self.lines_total += 1
        self.seconds_since_last_read = 0.0
        if self.pending_limit is not None:
            self.pending_limit -= 1

    @property
    def limit_reached(self) -> bool:
        return self.pending_limit is not None and self.pending_limit <= 0


@dataclass(frozen=True)
class SourceIdentity:
    """Device, inode and size of a file as seen at the last health check."""
    dev: int
    ino: int
    size: int

    @classmethod
    def from_stat(cls, st: os.stat_result) -> "SourceIdentity":
        return cls(dev=st.st_dev, ino=st.st_ino, size=st.st_size)

    def same_file(self, other: "SourceIdentity") -> bool:
        return self.dev == other.dev and self.ino == other.ino


class ReopenMode(str, Enum):
    TOP = "top"          # read the reacquired file from its first byte
    BOTTOM = "bottom"    # same file: resume at the old offset, else its end
    RESTART = "restart"  # respawn a stream source; no position applies


class StopReason(str, Enum):
    LIMIT = "limit"
    EOF = "eof"
    BREAK = "break"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Continue:
    pass


@dataclass(frozen=True)
class NeedsReopen:
    mode: ReopenMode


@dataclass(frozen=True)
class Done:
    reason: StopReason


Outcome = Union[Continue, NeedsReopen, Done]
