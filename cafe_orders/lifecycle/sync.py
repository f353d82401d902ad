"""
Out-of-sync tracking for lifecycle writes.

When a lifecycle write still fails after every retry, the engine records it
here. The staff order list shows the warning next to the order until a later
write for the same order succeeds.
"""

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional


@dataclass(frozen=True)
class SyncWarning:
    order_number: int
    action: str
    error: str
    failed_at: datetime


class SyncMonitor:
    """Thread-safe map of order number -> latest unresolved sync failure."""

    def __init__(self):
        self._lock = threading.Lock()
        self._warnings: Dict[int, SyncWarning] = {}

    def record_failure(self, order_number: int, action: str, error: str, failed_at: datetime) -> SyncWarning:
        warning = SyncWarning(order_number=order_number, action=action, error=error, failed_at=failed_at)
        with self._lock:
            self._warnings[order_number] = warning
        return warning

    def clear(self, order_number: int) -> None:
        with self._lock:
            self._warnings.pop(order_number, None)

    def warning_for(self, order_number: int) -> Optional[SyncWarning]:
        with self._lock:
            return self._warnings.get(order_number)
