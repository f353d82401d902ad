"""
Timer scheduling for order observers.

An observer arms one timer per order at the current status deadline and
cancels it whenever a newer record arrives. The Scheduler interface keeps
that independent of how timers are actually run:

- ThreadingScheduler: real timers on background threads (threading.Timer)
- ManualScheduler: nothing runs until run_due(now) is called; used by tests
  together with a fake clock
"""

import itertools
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class CancelToken:
    """Returned by schedule(); cancel() stops the callback if it has not run yet."""

    def __init__(self, on_cancel: Optional[Callable[[], None]] = None):
        self._cancelled = threading.Event()
        self._on_cancel = on_cancel

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        if self._cancelled.is_set():
            return
        self._cancelled.set()
        if self._on_cancel is not None:
            self._on_cancel()


class Scheduler(ABC):
    @abstractmethod
    def schedule(self, deadline: datetime, callback: Callable[[], None]) -> CancelToken:
        """Run callback once at (or after) deadline unless cancelled first."""


class ThreadingScheduler(Scheduler):
    """Runs callbacks on threading.Timer threads."""

    def __init__(self, clock: Callable[[], datetime]):
        self._clock = clock

    def schedule(self, deadline: datetime, callback: Callable[[], None]) -> CancelToken:
        delay = max(0.0, (deadline - self._clock()).total_seconds())
        token: CancelToken

        def fire():
            if not token.cancelled:
                callback()

        timer = threading.Timer(delay, fire)
        timer.daemon = True
        token = CancelToken(on_cancel=timer.cancel)
        timer.start()
        return token


class _Pending:
    def __init__(self, seq: int, deadline: datetime, callback: Callable[[], None], token: CancelToken):
        self.seq = seq
        self.deadline = deadline
        self.callback = callback
        self.token = token


class ManualScheduler(Scheduler):
    """Holds timers until run_due() is called with the current time."""

    def __init__(self):
        self._lock = threading.Lock()
        self._pending: List[_Pending] = []
        self._seq = itertools.count()

    def schedule(self, deadline: datetime, callback: Callable[[], None]) -> CancelToken:
        token = CancelToken()
        with self._lock:
            self._pending.append(_Pending(next(self._seq), deadline, callback, token))
        return token

    def pending_count(self) -> int:
        with self._lock:
            return sum(1 for p in self._pending if not p.token.cancelled)

    def next_deadline(self) -> Optional[datetime]:
        with self._lock:
            live = [p.deadline for p in self._pending if not p.token.cancelled]
        return min(live) if live else None

    def run_due(self, now: datetime) -> int:
        """
        Fire every live timer whose deadline is <= now, earliest first.

        Returns:
            Number of callbacks run
        """
        with self._lock:
            due = sorted(
                (p for p in self._pending if p.deadline <= now and not p.token.cancelled),
                key=lambda p: (p.deadline, p.seq),
            )
            self._pending = [p for p in self._pending if p not in due and not p.token.cancelled]

        ran = 0
        for pending in due:
            # An earlier callback in this batch may have cancelled it
            if pending.token.cancelled:
                continue
            pending.token.cancel()
            pending.callback()
            ran += 1
        return ran
