from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, List

from backend.app.analytics.stats import (
    expenses,
    mean_and_pstdev,
    normalize_dt,
    round_money,
    since,
    sort_ascending,
)
from backend.app.domain.records import TransactionRecord
from backend.app.signals.schema import Alert, UnusualSpendingDetail


def detect_unusual_spending(
    txns: Iterable[TransactionRecord],
    now: datetime,
    *,
    window_days: int = 30,
    recent_days: int = 3,
    min_samples: int = 5,
    sigma: float = 2.0,
    min_amount: float = 1000.0,
) -> List[Alert]:
    """
    Flag recent expenses that sit far above the trailing mean.

    The absolute floor keeps near-zero-variance histories from flagging
    small purchases.
    """
    now = normalize_dt(now)
    window = sort_ascending(since(expenses(txns), now - timedelta(days=window_days)))
    if len(window) < min_samples:
        return []

    avg, std = mean_and_pstdev([txn.amount for txn in window])
    threshold = avg + sigma * std
    recent_start = now - timedelta(days=recent_days)

    alerts: List[Alert] = []
    for txn in window:
        if normalize_dt(txn.created_at) < recent_start:
            continue
        if txn.amount <= threshold or txn.amount <= min_amount:
            continue
        ratio = txn.amount / avg if avg else 0.0
        alerts.append(
            Alert(
                notification_type="warning",
                title="Unusual Spending Detected",
                message=(
                    f"{txn.description or txn.category} cost {txn.amount:,.0f}, about {ratio:.1f}x "
                    f"your usual {avg:,.0f} per transaction. Was this expected?"
                ),
                detail=UnusualSpendingDetail(
                    transaction_id=txn.id,
                    amount=round_money(txn.amount),
                    category=txn.category,
                    description=txn.description,
                    occurred_at=normalize_dt(txn.created_at).isoformat(),
                    mean_30d=round_money(avg),
                    std_30d=round_money(std),
                    threshold=round_money(threshold),
                ),
            )
        )
    return alerts
