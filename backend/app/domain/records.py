"""
Immutable snapshots handed to the detectors.

Design notes:
- Detectors never see ORM rows; services convert rows into these records once
  per run so every detector works on the same frozen view of the data.
- Amounts are floats in the user's base currency (no conversion happens here).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

TransactionType = Literal["income", "expense"]

UNKNOWN_MERCHANT = "Unknown"
UNCATEGORIZED = "Uncategorized"


@dataclass(frozen=True)
class TransactionRecord:
    id: str
    user_id: str
    type: TransactionType
    amount: float
    category: str
    description: str
    created_at: datetime

    @property
    def is_expense(self) -> bool:
        return self.type == "expense"

    @property
    def is_income(self) -> bool:
        return self.type == "income"

    @property
    def merchant(self) -> str:
        return self.description.strip() or UNKNOWN_MERCHANT


@dataclass(frozen=True)
class GoalRecord:
    id: str
    title: str
    target_amount: float
    current_amount: float
    deadline: Optional[datetime] = None
    is_completed: bool = False
