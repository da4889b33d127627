"""Immutable records shared by services and detectors."""

from backend.app.domain.records import (  # noqa: F401
    UNCATEGORIZED,
    UNKNOWN_MERCHANT,
    GoalRecord,
    TransactionRecord,
)
