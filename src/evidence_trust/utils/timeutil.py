"""Timezone-safe date arithmetic."""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def age_in_days(value: datetime | None, now: datetime) -> float:
    """Fractional age in days, never negative. Missing dates are age zero."""
    if value is None:
        return 0.0
    delta = as_aware(now) - as_aware(value)
    return max(0.0, delta.total_seconds() / 86400.0)


def whole_days(value: datetime | None, now: datetime) -> int:
    return int(math.floor(age_in_days(value, now)))
