from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, ClassVar, Dict, Literal, Optional, Union

PatternType = Literal["recurring_payment", "weekend_pattern", "unusual_activity", "overspending"]
PatternSeverity = Literal["low", "medium", "high"]
NotificationType = Literal["info", "warning", "success", "error"]


# -------------------------
# Finding details (one closed variant per finding kind)
# -------------------------

@dataclass(frozen=True)
class RecurringPaymentDetail:
    kind: ClassVar[str] = "recurring_payment"

    merchant: str
    occurrences: int
    avg_amount: float
    avg_interval_days: float
    annual_cost: float
    last_seen_at: str
    frequency: str = "monthly"


@dataclass(frozen=True)
class WeekendPatternDetail:
    kind: ClassVar[str] = "weekend_pattern"

    avg_weekend: float
    avg_weekday: float
    pct_increase: float
    weekend_count: int
    weekday_count: int


@dataclass(frozen=True)
class PaydaySplurgeDetail:
    kind: ClassVar[str] = "payday_splurge"

    income_id: str
    income_amount: float
    income_at: str
    spent_48h: float
    pct_of_income: float
    expense_count: int


@dataclass(frozen=True)
class CategoryConcentrationDetail:
    kind: ClassVar[str] = "category_concentration"

    category: str
    total_count: int
    total_amount: float
    avg_amount: float
    pct_of_total: float


@dataclass(frozen=True)
class UnusualSpendingDetail:
    kind: ClassVar[str] = "unusual_spending"

    transaction_id: str
    amount: float
    category: str
    description: str
    occurred_at: str
    mean_30d: float
    std_30d: float
    threshold: float


@dataclass(frozen=True)
class BudgetDetail:
    kind: ClassVar[str] = "budget"

    category: str
    spent: float
    budget: float
    percent_over: float
    percent_used: float


@dataclass(frozen=True)
class BudgetExceededDetail(BudgetDetail):
    kind: ClassVar[str] = "budget_exceeded"


@dataclass(frozen=True)
class BudgetWarningDetail(BudgetDetail):
    kind: ClassVar[str] = "budget_warning"


@dataclass(frozen=True)
class GoalAchievedDetail:
    kind: ClassVar[str] = "goal_achieved"

    goal_id: str
    title: str
    target_amount: float
    current_amount: float
    progress_pct: float


@dataclass(frozen=True)
class GoalAtRiskDetail:
    kind: ClassVar[str] = "goal_at_risk"

    goal_id: str
    title: str
    target_amount: float
    current_amount: float
    progress_pct: float
    deadline: str
    days_until_deadline: int
    required_monthly_rate: float


@dataclass(frozen=True)
class UpcomingBillDetail:
    kind: ClassVar[str] = "upcoming_bill"

    merchant: str
    avg_amount: float
    avg_interval_days: float
    occurrences: int
    last_paid_at: str
    next_due_at: str
    days_until_due: int


FindingDetail = Union[
    RecurringPaymentDetail,
    WeekendPatternDetail,
    PaydaySplurgeDetail,
    CategoryConcentrationDetail,
    UnusualSpendingDetail,
    BudgetExceededDetail,
    BudgetWarningDetail,
    GoalAchievedDetail,
    GoalAtRiskDetail,
    UpcomingBillDetail,
]


def detail_payload(detail: FindingDetail) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"kind": detail.kind}
    payload.update(asdict(detail))
    return payload


# -------------------------
# Findings
# -------------------------

@dataclass(frozen=True)
class Pattern:
    """Behavioral finding returned by the on-demand insights path."""

    type: PatternType
    insight: str
    detail: FindingDetail
    confidence: float
    recommendation: Optional[str] = None
    severity: Optional[PatternSeverity] = None

    @property
    def data(self) -> Dict[str, Any]:
        return detail_payload(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "insight": self.insight,
            "recommendation": self.recommendation,
            "severity": self.severity,
            "data": self.data,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class Alert:
    """Finding produced for the notification path; maps 1:1 to a Notification."""

    notification_type: NotificationType
    title: str
    message: str
    detail: FindingDetail

    @property
    def kind(self) -> str:
        return self.detail.kind

    @property
    def data(self) -> Dict[str, Any]:
        return detail_payload(self.detail)
