"""
Order lifecycle states.

Placed --30s--> InPreparation --240s (or prep_time_minutes * 60)--> Completed

Completed is terminal. Status only ever moves forward; status_rank() gives
the ordering every comparison in the engine and observers relies on.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from .. import config


class OrderStatus(str, Enum):
    """Fulfillment status of an order."""
    PLACED = "placed"
    IN_PREPARATION = "in_preparation"
    COMPLETED = "completed"


STATUS_SEQUENCE = [
    OrderStatus.PLACED,
    OrderStatus.IN_PREPARATION,
    OrderStatus.COMPLETED,
]

STATUS_LABELS = {
    OrderStatus.PLACED: "Order Placed",
    OrderStatus.IN_PREPARATION: "In Preparation",
    OrderStatus.COMPLETED: "Completed",
}


def utcnow() -> datetime:
    """Default clock for the engine and observers."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Tag naive datetimes (as SQLite returns them) with UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def status_rank(status) -> int:
    return STATUS_SEQUENCE.index(OrderStatus(status))


def next_status(status) -> Optional[OrderStatus]:
    """The status an auto-advance moves to, or None from the terminal state."""
    idx = status_rank(status)
    if idx + 1 >= len(STATUS_SEQUENCE):
        return None
    return STATUS_SEQUENCE[idx + 1]


def is_terminal(status) -> bool:
    return OrderStatus(status) == OrderStatus.COMPLETED


def status_duration_seconds(status, prep_time_minutes: Optional[int] = None) -> Optional[float]:
    """
    How long an un-paused order stays in a status before auto-advancing.

    Returns None for the terminal status.
    """
    status = OrderStatus(status)
    if status == OrderStatus.PLACED:
        return float(config.PLACED_DURATION_SECONDS)
    if status == OrderStatus.IN_PREPARATION:
        if prep_time_minutes:
            return float(prep_time_minutes * 60)
        return float(config.PREPARATION_DURATION_SECONDS)
    return None


def format_countdown(seconds: Optional[float]) -> str:
    """Format a remaining duration as mm:ss ("--:--" when unknown)."""
    if seconds is None:
        return "--:--"
    total = max(0, int(seconds))
    return f"{total // 60:02d}:{total % 60:02d}"
