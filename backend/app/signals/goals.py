from __future__ import annotations

from datetime import datetime
from typing import Iterable, List

from backend.app.analytics.stats import ceil_days_until, normalize_dt, round_money
from backend.app.domain.records import GoalRecord
from backend.app.signals.schema import Alert, GoalAchievedDetail, GoalAtRiskDetail


def evaluate_goals(
    goals: Iterable[GoalRecord],
    now: datetime,
    *,
    risk_horizon_days: int = 30,
    risk_progress_pct: float = 50.0,
) -> List[Alert]:
    now = normalize_dt(now)
    alerts: List[Alert] = []

    for goal in goals:
        if goal.is_completed or goal.target_amount <= 0:
            continue
        progress = goal.current_amount / goal.target_amount * 100

        if progress >= 100:
            alerts.append(
                Alert(
                    notification_type="success",
                    title="Goal Achieved",
                    message=f"You reached your goal \"{goal.title}\" ({goal.current_amount:,.0f} saved).",
                    detail=GoalAchievedDetail(
                        goal_id=goal.id,
                        title=goal.title,
                        target_amount=round_money(goal.target_amount),
                        current_amount=round_money(goal.current_amount),
                        progress_pct=round(progress, 1),
                    ),
                )
            )
            continue

        # on-track goals and goals without a deadline stay silent
        if goal.deadline is None:
            continue

        deadline = normalize_dt(goal.deadline)
        days_left = ceil_days_until(deadline, now)
        remaining = goal.target_amount - goal.current_amount
        if days_left > 0:
            required_monthly = remaining / (days_left / 30)
        else:
            required_monthly = remaining

        if days_left <= risk_horizon_days and progress < risk_progress_pct:
            when = f"in {days_left} days" if days_left > 0 else "now"
            alerts.append(
                Alert(
                    notification_type="error",
                    title="Goal At Risk",
                    message=(
                        f"\"{goal.title}\" is only {progress:.0f}% funded and due {when}. "
                        f"You need to save about {required_monthly:,.0f} per month to make it."
                    ),
                    detail=GoalAtRiskDetail(
                        goal_id=goal.id,
                        title=goal.title,
                        target_amount=round_money(goal.target_amount),
                        current_amount=round_money(goal.current_amount),
                        progress_pct=round(progress, 1),
                        deadline=deadline.isoformat(),
                        days_until_deadline=days_left,
                        required_monthly_rate=round_money(required_monthly),
                    ),
                )
            )
    return alerts
