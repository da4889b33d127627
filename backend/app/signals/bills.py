from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, List

from backend.app.analytics.stats import (
    ceil_days_until,
    consecutive_intervals,
    expenses,
    group_by_merchant,
    normalize_dt,
    round_money,
    safe_mean,
    since,
    sort_descending,
)
from backend.app.domain.records import TransactionRecord
from backend.app.signals.schema import Alert, UpcomingBillDetail


def forecast_upcoming_bills(
    txns: Iterable[TransactionRecord],
    now: datetime,
    *,
    lookback_days: int = 90,
    min_occurrences: int = 3,
    horizon_days: int = 3,
) -> List[Alert]:
    """
    Project each frequent merchant's next charge from its average gap.

    Gaps do not have to be regular, so this can disagree with the
    recurring-payment detector about the same merchant.
    """
    now = normalize_dt(now)
    window = since(expenses(txns), now - timedelta(days=lookback_days))

    alerts: List[Alert] = []
    for merchant, group in sorted(group_by_merchant(window).items()):
        if len(group) < min_occurrences:
            continue
        ordered = sort_descending(group)
        intervals = consecutive_intervals([txn.created_at for txn in ordered])
        avg_interval = safe_mean(intervals)
        if avg_interval <= 0:
            continue

        last_paid = normalize_dt(ordered[0].created_at)
        next_due = last_paid + timedelta(days=avg_interval)
        days_until = ceil_days_until(next_due, now)
        if not (0 < days_until <= horizon_days):
            continue

        avg_amount = safe_mean([txn.amount for txn in ordered])
        day_word = "day" if days_until == 1 else "days"
        alerts.append(
            Alert(
                notification_type="info",
                title="Upcoming Bill",
                message=(
                    f"{merchant} (about {avg_amount:,.0f}) is likely due in {days_until} {day_word}, "
                    f"around {next_due.date().isoformat()}."
                ),
                detail=UpcomingBillDetail(
                    merchant=merchant,
                    avg_amount=round_money(avg_amount),
                    avg_interval_days=round(avg_interval, 1),
                    occurrences=len(ordered),
                    last_paid_at=last_paid.isoformat(),
                    next_due_at=next_due.isoformat(),
                    days_until_due=days_until,
                ),
            )
        )
    return alerts
