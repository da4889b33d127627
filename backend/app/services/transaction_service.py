from __future__ import annotations

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.analytics.stats import normalize_dt, to_db_dt
from backend.app.domain.records import UNCATEGORIZED, TransactionRecord
from backend.app.models import Transaction


logger = logging.getLogger(__name__)

TRANSACTION_TYPES = {"income", "expense"}


def _to_record(row: Transaction) -> Optional[TransactionRecord]:
    if row.type not in TRANSACTION_TYPES:
        logger.warning("Skipping transaction %s with unknown type %r", row.id, row.type)
        return None
    amount = abs(float(row.amount or 0))
    return TransactionRecord(
        id=row.id,
        user_id=row.user_id,
        type=row.type,
        amount=amount,
        category=(row.category or "").strip() or UNCATEGORIZED,
        description=(row.description or "").strip(),
        created_at=normalize_dt(row.created_at),
    )


def fetch_transactions(
    db: Session,
    user_id: str,
    since: datetime,
    until: Optional[datetime] = None,
) -> List[TransactionRecord]:
    """
    Live (not soft-deleted) transactions for a user in [since, until].

    Returned oldest first, but detectors sort for themselves.
    """
    stmt = (
        select(Transaction)
        .where(
            Transaction.user_id == user_id,
            Transaction.deleted_at.is_(None),
            Transaction.created_at >= to_db_dt(since),
        )
        .order_by(Transaction.created_at.asc(), Transaction.id.asc())
    )
    if until is not None:
        stmt = stmt.where(Transaction.created_at <= to_db_dt(until))

    rows = db.execute(stmt).scalars().all()
    records: List[TransactionRecord] = []
    for row in rows:
        record = _to_record(row)
        if record is not None:
            records.append(record)
    return records
