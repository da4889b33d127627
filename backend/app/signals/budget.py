from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Mapping

from backend.app.analytics.stats import (
    expenses,
    month_start,
    normalize_dt,
    round_money,
    since,
    sum_by_category,
)
from backend.app.domain.records import TransactionRecord
from backend.app.signals.schema import Alert, BudgetExceededDetail, BudgetWarningDetail


def _budget_key(category: str) -> str:
    return category.strip().lower()


def evaluate_budgets(
    txns: Iterable[TransactionRecord],
    budgets: Mapping[str, float],
    now: datetime,
    *,
    warning_band_pct: float = 20.0,
) -> List[Alert]:
    """
    Month-to-date spend per category against the injected budget table.

    Categories without a configured cap are skipped; there is no default cap.
    Spending exactly at the cap produces no alert.
    """
    caps = {_budget_key(category): float(cap) for category, cap in budgets.items()}
    now = normalize_dt(now)
    spent_by_category = sum_by_category(since(expenses(txns), month_start(now)))

    alerts: List[Alert] = []
    for category in sorted(spent_by_category):
        budget = caps.get(_budget_key(category))
        if budget is None or budget <= 0:
            continue
        spent = spent_by_category[category]
        percent_over = (spent - budget) / budget * 100
        percent_used = spent / budget * 100

        if percent_over > 0:
            alerts.append(
                Alert(
                    notification_type="error",
                    title="Budget Exceeded",
                    message=(
                        f"You've spent {spent:,.0f} on {category} this month, "
                        f"{percent_over:.0f}% over your {budget:,.0f} budget."
                    ),
                    detail=BudgetExceededDetail(
                        category=category,
                        spent=round_money(spent),
                        budget=round_money(budget),
                        percent_over=round(percent_over, 1),
                        percent_used=round(percent_used, 1),
                    ),
                )
            )
        elif -warning_band_pct < percent_over < 0:
            alerts.append(
                Alert(
                    notification_type="warning",
                    title="Budget Warning",
                    message=(
                        f"You've used {percent_used:.0f}% of your {category} budget "
                        f"({spent:,.0f} of {budget:,.0f})."
                    ),
                    detail=BudgetWarningDetail(
                        category=category,
                        spent=round_money(spent),
                        budget=round_money(budget),
                        percent_over=round(percent_over, 1),
                        percent_used=round(percent_used, 1),
                    ),
                )
            )
    return alerts
