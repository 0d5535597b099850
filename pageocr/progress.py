"""
progress.py

Progress reporting for recognition.

A ``ProgressSink`` is the capability a caller injects to receive percentage
updates. ``ProgressMonitor`` is handed to the backend for one recognition
call, relays its updates to the sink and always finishes with ``100``, since
backends do not reliably report completion (or do not run at all when
results are already cached).
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional, Union

logger = logging.getLogger(__name__)


class ProgressSink(ABC):
    """Receives recognition progress as an integer percentage."""

    @abstractmethod
    def report(self, progress: int) -> None:
        raise NotImplementedError


class NullProgressSink(ProgressSink):
    """Sink used when the caller is not interested in progress."""

    def report(self, progress: int) -> None:
        pass


class CallbackProgressSink(ProgressSink):
    """Adapts a plain ``callback(progress)`` function."""

    def __init__(self, callback: Callable[[int], None]):
        self._callback = callback

    def report(self, progress: int) -> None:
        self._callback(progress)


NULL_PROGRESS_SINK = NullProgressSink()

ProgressListener = Union[ProgressSink, Callable[[int], None], None]


def as_progress_sink(listener: ProgressListener) -> ProgressSink:
    """Normalize ``None``, a callable or a sink into a ``ProgressSink``."""
    if listener is None:
        return NULL_PROGRESS_SINK
    if isinstance(listener, ProgressSink):
        return listener
    if callable(listener):
        return CallbackProgressSink(listener)
    raise TypeError(f"Not a progress sink: {listener!r}")


class ProgressMonitor:
    """
    Relays backend progress for a single recognition call.

    Use as a context manager; a clean exit emits the terminal ``100``.
    An exception leaves the sink without a completion notification.
    """

    def __init__(self, listener: ProgressListener = None):
        self._sink = as_progress_sink(listener)
        self._last: Optional[int] = None
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def update(self, progress: int) -> None:
        """Forward a backend progress value, clamped to 0-100."""
        if self._finished:
            raise RuntimeError("ProgressMonitor has already finished")
        progress = max(0, min(100, int(progress)))
        if progress == self._last:
            return
        self._last = progress
        self._sink.report(progress)

    def finish(self) -> None:
        """Emit the terminal ``100`` notification."""
        if self._finished:
            raise RuntimeError("ProgressMonitor has already finished")
        self._finished = True
        self._last = 100
        self._sink.report(100)

    def __enter__(self) -> "ProgressMonitor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.finish()
        else:
            logger.debug("Recognition failed; skipping final progress update")
