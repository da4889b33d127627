from .bills import forecast_upcoming_bills
from .budget import evaluate_budgets
from .goals import evaluate_goals
from .outliers import detect_unusual_spending
from .patterns import (
    detect_category_concentration,
    detect_payday_splurge,
    detect_recurring_payments,
    detect_weekend_spike,
    run_pattern_detectors,
    run_pattern_detectors_with_summary,
)
from .schema import Alert, Pattern

__all__ = [
    "Alert",
    "Pattern",
    "detect_category_concentration",
    "detect_payday_splurge",
    "detect_recurring_payments",
    "detect_unusual_spending",
    "detect_weekend_spike",
    "evaluate_budgets",
    "evaluate_goals",
    "forecast_upcoming_bills",
    "run_pattern_detectors",
    "run_pattern_detectors_with_summary",
]
