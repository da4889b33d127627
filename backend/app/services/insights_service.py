from __future__ import annotations

from datetime import datetime, timedelta
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from backend.app.analytics.stats import normalize_dt, now_utc
from backend.app.services import transaction_service
from backend.app.signals.patterns import run_pattern_detectors_with_summary


logger = logging.getLogger(__name__)

LOOKBACK_DAYS = 90
MIN_TRANSACTIONS = 10
NOT_ENOUGH_DATA_MESSAGE = "Not enough data for pattern analysis"


def analyze_patterns(
    db: Session,
    user_id: str,
    now: Optional[datetime] = None,
    *,
    include_detector_results: bool = False,
) -> Dict[str, Any]:
    """
    On-demand behavioral insights for one user.

    Read-only and unthrottled. Too little history is a normal empty result,
    not an error.
    """
    now = normalize_dt(now) or now_utc()
    logger.info("Analyzing patterns for user %s", user_id)

    txns = transaction_service.fetch_transactions(db, user_id, now - timedelta(days=LOOKBACK_DAYS), now)
    if len(txns) < MIN_TRANSACTIONS:
        logger.info("Not enough data for user %s (%s transactions)", user_id, len(txns))
        response: Dict[str, Any] = {
            "success": True,
            "message": NOT_ENOUGH_DATA_MESSAGE,
            "insufficient_data": True,
            "patterns": [],
        }
        if include_detector_results:
            response["detector_results"] = []
        return response

    summary = run_pattern_detectors_with_summary(txns)
    logger.info("Found %s patterns for user %s", len(summary.patterns), user_id)

    response = {
        "success": True,
        "message": None,
        "insufficient_data": False,
        "patterns": [pattern.to_dict() for pattern in summary.patterns],
    }
    if include_detector_results:
        response["detector_results"] = [
            {
                "detector_id": row.detector_id,
                "pattern_type": row.pattern_type,
                "ran": row.ran,
                "fired": row.fired,
                "finding_count": row.finding_count,
                "error": row.error,
            }
            for row in summary.detectors
        ]
    return response
