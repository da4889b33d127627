"""
Per-user "last run" bookkeeping for throttled analysis paths.

The check and the update are separate steps and are not atomic. Two triggers
racing for the same user inside one window can both run; that double run is
accepted rather than guarded with a distributed lock.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from backend.app.analytics.stats import normalize_dt, to_db_dt
from backend.app.models import AnalysisThrottleState

NOTIFICATION_CHECKS = "notification_checks"


def read_throttle_state(db: Session, user_id: str, kind: str = NOTIFICATION_CHECKS) -> Optional[datetime]:
    state = db.get(AnalysisThrottleState, (user_id, kind))
    if not state:
        return None
    return normalize_dt(state.last_run_at)


def write_throttle_state(
    db: Session,
    user_id: str,
    when: datetime,
    kind: str = NOTIFICATION_CHECKS,
) -> AnalysisThrottleState:
    """Record a completed run. Flushes only; commit belongs to the caller."""
    when = to_db_dt(when)
    state = db.get(AnalysisThrottleState, (user_id, kind))
    if state is None:
        state = AnalysisThrottleState(user_id=user_id, kind=kind)
        db.add(state)
    state.last_run_at = when
    state.updated_at = when
    db.flush()
    return state


def should_run(last_run_at: Optional[datetime], now: datetime, window: timedelta) -> bool:
    if last_run_at is None:
        return True
    return (normalize_dt(now) - normalize_dt(last_run_at)) >= window
