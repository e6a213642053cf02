"""
Frame scheduling for a single-threaded host loop.

``FrameScheduler`` stands in for a browser's animation-frame queue: a
callback requested while frame N is running fires during frame N+1, never
during N.  Everything in a session (simulation steps, camera transitions,
retry-until-ready polling) is driven from the host's per-frame call, so no
locks are needed.

``PollingTask`` wraps the retry-until-ready pattern: a check runs once per
frame until it reports success, is cancelled, or exhausts its attempt
budget.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)

FrameCallback = Callable[[float], None]


@dataclass
class FrameHandle:
    id: int
    callback: FrameCallback
    cancelled: bool = False


class FrameScheduler:
    """Queue of one-shot callbacks for the next frame."""

    def __init__(self):
        self._next_id = 1
        self._pending: list[FrameHandle] = []
        self.frame_count = 0

    def request_frame(self, callback: FrameCallback) -> FrameHandle:
        handle = FrameHandle(id=self._next_id, callback=callback)
        self._next_id += 1
        self._pending.append(handle)
        return handle

    def cancel(self, handle: Optional[FrameHandle]) -> None:
        if handle is not None:
            handle.cancelled = True

    def pending(self) -> int:
        return sum(1 for handle in self._pending if not handle.cancelled)

    def flush(self, now: float) -> int:
        """Run callbacks queued before this call.  Returns how many ran."""
        batch, self._pending = self._pending, []
        self.frame_count += 1
        ran = 0
        for handle in batch:
            if handle.cancelled:
                continue
            handle.callback(now)
            ran += 1
        return ran

    def clear(self) -> None:
        for handle in self._pending:
            handle.cancelled = True
        self._pending = []


class PollingTask:
    """Calls ``check(now)`` every frame until it returns True.

    Gives up after ``max_attempts`` frames (None means never) and calls
    ``on_exhausted`` if provided.
    """

    def __init__(
        self,
        scheduler: FrameScheduler,
        check: Callable[[float], bool],
        max_attempts: Optional[int] = None,
        on_exhausted: Optional[Callable[[], None]] = None,
        name: str = "poll",
    ):
        self.scheduler = scheduler
        self.check = check
        self.max_attempts = max_attempts
        self.on_exhausted = on_exhausted
        self.name = name
        self.attempts = 0
        self.done = False
        self.cancelled = False
        self.exhausted = False
        self._handle: Optional[FrameHandle] = None

    @property
    def active(self) -> bool:
        return not (self.done or self.cancelled or self.exhausted)

    def start(self) -> "PollingTask":
        if self.active and self._handle is None:
            self._handle = self.scheduler.request_frame(self._run)
        return self

    def cancel(self) -> None:
        self.cancelled = True
        self.scheduler.cancel(self._handle)
        self._handle = None

    def _run(self, now: float) -> None:
        self._handle = None
        if not self.active:
            return
        self.attempts += 1
        if self.check(now):
            self.done = True
            return
        if self.max_attempts is not None and self.attempts >= self.max_attempts:
            self.exhausted = True
            logger.warning("%s gave up after %d frames", self.name, self.attempts)
            if self.on_exhausted is not None:
                self.on_exhausted()
            return
        self._handle = self.scheduler.request_frame(self._run)
