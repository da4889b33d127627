from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from statistics import mean, pstdev
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from backend.app.domain.records import TransactionRecord

SECONDS_PER_DAY = 86400.0


def normalize_dt(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_db_dt(value: datetime) -> datetime:
    """Naive UTC for the DateTime columns; aware values are converted first."""
    return normalize_dt(value).astimezone(timezone.utc).replace(tzinfo=None)


def days_between(start: datetime, end: datetime) -> float:
    """Fractional days from start to end (negative when end is earlier)."""
    return (normalize_dt(end) - normalize_dt(start)).total_seconds() / SECONDS_PER_DAY


def ceil_days_until(target: datetime, now: datetime) -> int:
    return math.ceil(days_between(now, target))


def month_start(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def is_weekend(value: datetime) -> bool:
    return value.weekday() >= 5


def safe_mean(values: Sequence[float]) -> float:
    return mean(values) if values else 0.0


def mean_and_pstdev(values: Sequence[float]) -> Tuple[float, float]:
    if not values:
        return 0.0, 0.0
    avg = mean(values)
    std = pstdev(values) if len(values) > 1 else 0.0
    return avg, std


def consecutive_intervals(moments: Sequence[datetime]) -> List[float]:
    """Absolute day gaps between neighbours in the given order."""
    return [abs(days_between(moments[i - 1], moments[i])) for i in range(1, len(moments))]


def sort_ascending(txns: Iterable[TransactionRecord]) -> List[TransactionRecord]:
    return sorted(txns, key=lambda txn: (normalize_dt(txn.created_at), txn.id))


def sort_descending(txns: Iterable[TransactionRecord]) -> List[TransactionRecord]:
    return sorted(txns, key=lambda txn: (normalize_dt(txn.created_at), txn.id), reverse=True)


def expenses(txns: Iterable[TransactionRecord]) -> List[TransactionRecord]:
    return [txn for txn in txns if txn.is_expense]


def since(txns: Iterable[TransactionRecord], start: datetime) -> List[TransactionRecord]:
    start = normalize_dt(start)
    return [txn for txn in txns if normalize_dt(txn.created_at) >= start]


def group_by_merchant(txns: Iterable[TransactionRecord]) -> Dict[str, List[TransactionRecord]]:
    groups: Dict[str, List[TransactionRecord]] = {}
    for txn in txns:
        groups.setdefault(txn.merchant, []).append(txn)
    return groups


def sum_by_category(txns: Iterable[TransactionRecord]) -> Dict[str, float]:
    totals: Dict[str, float] = {}
    for txn in txns:
        totals[txn.category] = totals.get(txn.category, 0.0) + float(txn.amount)
    return totals


def round_money(value: float) -> float:
    return round(float(value), 2)
