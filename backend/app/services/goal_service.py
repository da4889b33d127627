from __future__ import annotations

from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.analytics.stats import normalize_dt
from backend.app.domain.records import GoalRecord
from backend.app.models import Goal


def fetch_goals(db: Session, user_id: str, include_completed: bool = False) -> List[GoalRecord]:
    stmt = select(Goal).where(Goal.user_id == user_id).order_by(Goal.created_at.asc(), Goal.id.asc())
    if not include_completed:
        stmt = stmt.where(Goal.is_completed.is_(False))

    return [
        GoalRecord(
            id=row.id,
            title=row.title,
            target_amount=float(row.target_amount or 0),
            current_amount=float(row.current_amount or 0),
            deadline=normalize_dt(row.deadline),
            is_completed=bool(row.is_completed),
        )
        for row in db.execute(stmt).scalars().all()
    ]
