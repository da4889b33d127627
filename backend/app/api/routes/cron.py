from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from backend.app.api.deps import require_cron_secret
from backend.app.db import get_db
from backend.app.services import notification_checks_service

router = APIRouter(prefix="/api/cron", tags=["cron"], dependencies=[Depends(require_cron_secret)])


class BatchStatsOut(BaseModel):
    total_users: int
    successful: int
    failed: int
    skipped: int = 0


class BatchRunOut(BaseModel):
    success: bool
    stats: BatchStatsOut


# 0 9 * * *
@router.get("/daily-notifications", response_model=BatchRunOut)
def daily_notifications(db: Session = Depends(get_db)):
    return notification_checks_service.run_daily_checks_for_all_users(db)


# 0 9 * * 1
@router.get("/weekly-summary", response_model=BatchRunOut)
def weekly_summary(db: Session = Depends(get_db)):
    return notification_checks_service.run_weekly_summaries_for_all_users(db)
