from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user
from backend.app.db import get_db
from backend.app.models import Profile
from backend.app.services import insights_service, notification_checks_service

router = APIRouter(prefix="/api", tags=["insights"])


class PatternOut(BaseModel):
    type: str
    insight: str
    recommendation: Optional[str] = None
    severity: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    confidence: float


class DetectorResultOut(BaseModel):
    detector_id: str
    pattern_type: str
    ran: bool
    fired: bool
    finding_count: int
    error: Optional[str] = None


class AnalyzePatternsOut(BaseModel):
    success: bool
    patterns: List[PatternOut]
    message: Optional[str] = None
    insufficient_data: bool = False
    detector_results: Optional[List[DetectorResultOut]] = None


class NotificationChecksOut(BaseModel):
    success: bool
    ran: bool
    last_run_at: Optional[str] = None
    notifications_created: int = 0
    failed_evaluators: List[str] = Field(default_factory=list)


class WeeklyStatsOut(BaseModel):
    income: float
    expenses: float
    net: float
    top_category: Optional[str] = None
    top_category_amount: Optional[float] = None
    transaction_count: int


class WeeklySummaryOut(BaseModel):
    success: bool
    notification_id: str
    stats: WeeklyStatsOut


class WeeklyStatsResponseOut(BaseModel):
    success: bool
    stats: WeeklyStatsOut


@router.post("/analyze-patterns", response_model=AnalyzePatternsOut, response_model_exclude_none=True)
def analyze_patterns(
    debug: bool = Query(False),
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return insights_service.analyze_patterns(db, user.id, include_detector_results=debug)


@router.post("/run-notification-checks", response_model=NotificationChecksOut)
def run_notification_checks(
    force: bool = Query(False),
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = notification_checks_service.run_notification_checks(db, user.id, force=force)
    if not result["success"]:
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to run notification checks", "details": result.get("error")},
        )
    return result


@router.post("/weekly-summary", response_model=WeeklyStatsResponseOut)
def weekly_summary(
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return notification_checks_service.weekly_stats(db, user.id)


@router.post("/generate-weekly-summary", response_model=WeeklySummaryOut)
def generate_weekly_summary(
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = notification_checks_service.generate_weekly_summary(db, user.id)
    if not result["success"]:
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to generate weekly summary", "details": result.get("error")},
        )
    return result
