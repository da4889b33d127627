from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user
from backend.app.db import get_db
from backend.app.models import Profile
from backend.app.services import notification_service

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


class NotificationOut(BaseModel):
    id: str
    user_id: str
    type: str
    title: str
    message: str
    read: bool
    data: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = None


class NotificationListOut(BaseModel):
    items: List[NotificationOut]
    unread_count: int


class MarkAllReadOut(BaseModel):
    updated: int


@router.get("", response_model=NotificationListOut)
def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return notification_service.list_notifications(db, user.id, unread_only=unread_only, limit=limit)


@router.post("/read-all", response_model=MarkAllReadOut)
def mark_all_read(
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return notification_service.mark_all_read(db, user.id)


@router.post("/{notification_id}/read", response_model=NotificationOut)
def mark_read(
    notification_id: str,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return notification_service.set_read_state(db, user.id, notification_id, read=True)


@router.post("/{notification_id}/unread", response_model=NotificationOut)
def mark_unread(
    notification_id: str,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return notification_service.set_read_state(db, user.id, notification_id, read=False)
