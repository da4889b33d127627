from __future__ import annotations

import json
import logging
import os
from typing import Dict, Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


# Monthly caps in the user's base currency. Keys are matched case-insensitively.
DEFAULT_BUDGETS: Dict[str, float] = {
    "food": 10000.0,
    "transport": 3000.0,
    "shopping": 5000.0,
    "entertainment": 3000.0,
    "bills": 8000.0,
    "health": 4000.0,
}

DEFAULT_THROTTLE_HOURS = 24


def budget_table() -> Dict[str, float]:
    raw = os.getenv("SPENDING_BUDGETS_JSON")
    if not raw:
        return dict(DEFAULT_BUDGETS)
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.warning("SPENDING_BUDGETS_JSON is not valid JSON; using default budget table")
        return dict(DEFAULT_BUDGETS)
    if not isinstance(parsed, dict):
        logger.warning("SPENDING_BUDGETS_JSON must be an object; using default budget table")
        return dict(DEFAULT_BUDGETS)

    table: Dict[str, float] = {}
    for category, cap in parsed.items():
        try:
            table[str(category)] = float(cap)
        except (TypeError, ValueError):
            logger.warning("Ignoring budget for %s: cap %r is not a number", category, cap)
    return table


def throttle_hours() -> float:
    raw = os.getenv("NOTIFICATION_THROTTLE_HOURS")
    if not raw:
        return float(DEFAULT_THROTTLE_HOURS)
    try:
        return float(raw)
    except ValueError:
        logger.warning("NOTIFICATION_THROTTLE_HOURS=%r is not a number; using %s", raw, DEFAULT_THROTTLE_HOURS)
        return float(DEFAULT_THROTTLE_HOURS)


def cron_secret() -> Optional[str]:
    secret = os.getenv("CRON_SECRET")
    return secret.strip() if secret and secret.strip() else None
