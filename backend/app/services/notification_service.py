from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from backend.app.analytics.stats import to_db_dt
from backend.app.models import Notification, utcnow


NOTIFICATION_TYPES = {"info", "warning", "success", "error"}


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_notification(row: Notification) -> Dict[str, Any]:
    return {
        "id": row.id,
        "user_id": row.user_id,
        "type": row.type,
        "title": row.title,
        "message": row.message,
        "read": bool(row.read),
        "data": row.data or {},
        "created_at": _iso(row.created_at),
    }


def write_notification(
    db: Session,
    user_id: str,
    type: str,
    title: str,
    message: str,
    data: Optional[Dict[str, Any]] = None,
    *,
    created_at: Optional[datetime] = None,
) -> Notification:
    """Append one notification. Flushes, never commits; the caller owns the transaction."""
    if type not in NOTIFICATION_TYPES:
        raise ValueError(f"unknown notification type: {type}")
    row = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        data=data,
        read=False,
        created_at=to_db_dt(created_at or utcnow()),
    )
    db.add(row)
    db.flush()
    return row


def list_notifications(
    db: Session,
    user_id: str,
    *,
    unread_only: bool = False,
    limit: int = 50,
) -> Dict[str, Any]:
    stmt = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        stmt = stmt.where(Notification.read.is_(False))
    stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
    rows = db.execute(stmt).scalars().all()

    unread_count = db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
    ).scalar_one()
    return {
        "items": [serialize_notification(row) for row in rows],
        "unread_count": unread_count,
    }


def _require_notification(db: Session, user_id: str, notification_id: str) -> Notification:
    row = db.get(Notification, notification_id)
    if not row or row.user_id != user_id:
        raise HTTPException(status_code=404, detail="notification not found")
    return row


def set_read_state(db: Session, user_id: str, notification_id: str, *, read: bool) -> Dict[str, Any]:
    row = _require_notification(db, user_id, notification_id)
    row.read = read
    db.commit()
    db.refresh(row)
    return serialize_notification(row)


def mark_all_read(db: Session, user_id: str) -> Dict[str, Any]:
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True)
    )
    db.commit()
    return {"updated": result.rowcount or 0}
