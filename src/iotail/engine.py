# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Callable, Iterator, List, Optional, Sequence, Union

from .errors import BreakAtEOF, SourceDeletedError, SourceLost, SourceUnavailable
from .poller import AdaptivePoller
from .schemas import (
    Continue,
    Done,
    NeedsReopen,
    Outcome,
    ReopenMode,
    RunState,
    StopReason,
    TailConfig,
)
from .sources import FileLineSource, LineSource, ProcessLineSource

LineCallback = Callable[[bytes], object]
ReopenHook = Callable[["TailEngine"], object]

_CONFIG_FIELDS = frozenset(TailConfig.model_fields)


class TailEngine:
    """
    Poll/read/sleep loop over one LineSource.

    Every iteration produces one tagged outcome: Continue, NeedsReopen(mode)
    or Done(reason). Reopens drain what the old handle still holds and then
    reacquire the source; while reopen_deleted is set, reacquiring a vanished
    source is retried every max_interval seconds without limit.

    Configuration attributes (max_interval, interval, reopen_deleted, ...)
    can be read and assigned directly on the engine; they live on
    ``self.config``.
    """

    def __init__(
        self,
        source: LineSource,
        config: Optional[TailConfig] = None,
        *,
        after_reopen: Optional[ReopenHook] = None,
        logger: Optional[logging.Logger] = None,
        verbose: bool = False,
        sleep: Optional[Callable[[float], object]] = None,
    ):
        object.__setattr__(self, "config", config.model_copy() if config is not None else TailConfig())
        self.source = source
        self.verbose = verbose
        self.logger = logger or logging.getLogger(__name__)
        self._after_reopen = after_reopen
        self._stop_event = threading.Event()
        # the stop event doubles as an interruptible sleep
        self._sleep = sleep or self._stop_event.wait
        self.state: Optional[RunState] = None
        self.poller: Optional[AdaptivePoller] = None

    def __getattr__(self, name):
        if name in _CONFIG_FIELDS:
            return getattr(self.config, name)
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def __setattr__(self, name, value) -> None:
        if name in _CONFIG_FIELDS:
            setattr(self.config, name, value)
        else:
            object.__setattr__(self, name, value)

    # positioning, delegated to the source

    def forward(self, n: int = 0) -> "TailEngine":
        self.source.forward(n)
        return self

    def backward(self, n: int = 0, bufsize: Optional[int] = None) -> "TailEngine":
        self.source.backward(n, bufsize or self.config.default_bufsize)
        return self

    def after_reopen(self, hook: ReopenHook) -> ReopenHook:
        """Register ``hook(engine)``, called after every successful reopen."""
        self._after_reopen = hook
        return hook

    def stop(self) -> None:
        """Ask a running tail() to return at its next iteration."""
        self._stop_event.set()

    def close(self) -> None:
        self.source.close()

    def __enter__(self) -> "TailEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # main loop

    def tail(self, n: Optional[int] = None, callback: Optional[LineCallback] = None) -> Optional[List[bytes]]:
        """
        Deliver new lines to ``callback``, or collect and return them when no
        callback is given. With ``n`` only the next n lines are read. Without
        n, return_if_eof, break_if_eof or stop() this never returns.
        """
        result: List[bytes] = []
        collecting = callback is None
        if collecting:
            callback = result.append
        self._prepare(n)
        while True:
            outcome = self._advance(callback)
            if isinstance(outcome, Done):
                if outcome.reason is StopReason.BREAK:
                    raise BreakAtEOF(result if collecting else None)
                return result if collecting else None

    def follow(self, n: Optional[int] = None) -> Iterator[bytes]:
        """Generator flavour of tail(): yields each line as it is read."""
        pending: deque = deque()
        self._prepare(n)
        while True:
            outcome = self._advance(pending.append)
            while pending:
                yield pending.popleft()
            if isinstance(outcome, Done):
                if outcome.reason is StopReason.BREAK:
                    raise BreakAtEOF()
                return

    def _prepare(self, n: Optional[int]) -> None:
        if self.state is None:
            self.state = RunState()
            self.poller = AdaptivePoller(self.config.max_interval, self.config.start_interval, sleep=self._sleep)
        self.state.pending_limit = n
        self._stop_event.clear()

    def _advance(self, callback: LineCallback) -> Union[Continue, Done]:
        outcome = self._step(callback)
        if isinstance(outcome, NeedsReopen):
            self._handle_reopen(outcome.mode, callback)
            return Continue()
        return outcome

    def _step(self, callback: LineCallback) -> Outcome:
        state = self.state
        if self._stop_event.is_set():
            return Done(StopReason.CANCELLED)
        if state.limit_reached:
            return Done(StopReason.LIMIT)
        mode = self.source.restat()
        if mode is not None:
            return NeedsReopen(mode)
        try:
            line = self.source.readline()
        except SourceLost as exc:
            return NeedsReopen(exc.mode)
        if line is None:
            return self._at_eof(callback)
        callback(line)
        state.record_line()
        self._debug()
        return Continue()

    def _at_eof(self, callback: LineCallback) -> Outcome:
        state, cfg = self.state, self.config
        if cfg.reopen_suspicious and state.seconds_since_last_read > cfg.suspicious_interval:
            self.logger.info("no data for %.1fs, reopening", state.seconds_since_last_read)
            return NeedsReopen(ReopenMode.BOTTOM if self.source.seekable else ReopenMode.RESTART)
        if cfg.break_if_eof or cfg.return_if_eof:
            # stopping here: an unterminated last line will not be completed by us
            line = self.source.flush_partial()
            if line is not None:
                callback(line)
                state.record_line()
            return Done(StopReason.BREAK if cfg.break_if_eof else StopReason.EOF)
        self.poller.wait(state)
        self._debug()
        return Continue()

    def _handle_reopen(self, mode: ReopenMode, callback: LineCallback) -> None:
        state = self.state
        for line in self.source.drain():
            if state.limit_reached:
                break
            callback(line)
            state.record_line()
        if not self._reopen(mode):
            return
        state.seconds_since_last_read = 0.0
        state.reopens += 1
        if self._after_reopen is not None:
            self._after_reopen(self)

    def _reopen(self, mode: ReopenMode) -> bool:
        """
        Reacquire the source. Retries forever while reopen_deleted holds;
        returns False only if stop() interrupted the wait.
        """
        attempts = 0
        while True:
            self.logger.info("reopening %s, mode=%s", self._describe(), mode.value)
            try:
                self.source.reopen(mode)
                return True
            except SourceUnavailable as exc:
                if not self.config.reopen_deleted:
                    raise SourceDeletedError(str(exc)) from exc
                attempts += 1
                self.logger.warning(
                    "%s unavailable (%s), retry %d in %.1fs", self._describe(), exc, attempts, self.config.max_interval
                )
            self._sleep(self.config.max_interval)
            if self._stop_event.is_set():
                return False

    def _describe(self) -> str:
        path = getattr(self.source, "path", None)
        if path is not None:
            return repr(path)
        return repr(getattr(self.source, "command", self.source))

    def _debug(self) -> None:
        if not self.verbose:
            return
        state = self.state
        self.logger.debug(
            "%s",
            {
                "lines": state.lines_this_interval,
                "interval": self.poller.interval,
                "no_read": state.seconds_since_last_read,
                "n": state.pending_limit,
            },
        )


def open_logfile(path, config: Optional[TailConfig] = None, **kwargs) -> TailEngine:
    """Engine over a file; use as ``with open_logfile(p) as log: log.backward(10).tail(...)``."""
    return TailEngine(FileLineSource(path), config, **kwargs)


def open_process(command: Union[str, Sequence[str]], config: Optional[TailConfig] = None, **kwargs) -> TailEngine:
    """Engine over the standard output of ``command``."""
    return TailEngine(ProcessLineSource(command), config, **kwargs)
