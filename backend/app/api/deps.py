# backend/app/api/deps.py
from __future__ import annotations

import hmac
from typing import Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from backend.app import config
from backend.app.db import get_db
from backend.app.models import Profile


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> Profile:
    """
    Caller identity from the X-User-Id header.

    NOTE:
    - The gateway in front of this service validates the session token and
      forwards the authenticated profile id; we only check it exists.
    - db must be injected via Depends(get_db) so FastAPI doesn't treat Session
      as a Pydantic field.
    """
    user_id = (request.headers.get("X-User-Id") or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")

    user = db.get(Profile, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Unknown X-User-Id")
    return user


def require_cron_secret(request: Request) -> None:
    expected: Optional[str] = config.cron_secret()
    if not expected:
        raise HTTPException(status_code=401, detail="Unauthorized")

    header = request.headers.get("Authorization") or ""
    if not hmac.compare_digest(header, f"Bearer {expected}"):
        raise HTTPException(status_code=401, detail="Unauthorized")
