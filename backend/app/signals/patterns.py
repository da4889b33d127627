from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
import logging
from typing import Callable, Iterable, List, Optional

from backend.app.analytics.stats import (
    consecutive_intervals,
    expenses,
    group_by_merchant,
    is_weekend,
    normalize_dt,
    round_money,
    safe_mean,
    sort_ascending,
)
from backend.app.domain.records import TransactionRecord
from backend.app.signals.schema import (
    CategoryConcentrationDetail,
    PaydaySplurgeDetail,
    Pattern,
    RecurringPaymentDetail,
    WeekendPatternDetail,
)

logger = logging.getLogger(__name__)

EXCLUDED_CONCENTRATION_CATEGORIES = frozenset({"rent", "bills"})


@dataclass(frozen=True)
class DetectorRunResult:
    detector_id: str
    pattern_type: str
    ran: bool
    fired: bool
    finding_count: int
    error: Optional[str] = None


@dataclass(frozen=True)
class DetectorRunSummary:
    patterns: List[Pattern]
    detectors: List[DetectorRunResult]


@dataclass(frozen=True)
class DetectorDefinition:
    detector_id: str
    pattern_type: str
    runner: Callable[[List[TransactionRecord]], List[Pattern]]


def detect_recurring_payments(
    txns: Iterable[TransactionRecord],
    *,
    min_interval_days: float = 25.0,
    max_interval_days: float = 35.0,
    min_occurrences: int = 2,
) -> List[Pattern]:
    """
    Merchants whose every consecutive charge lands roughly a month apart.

    A single interval outside the band disqualifies the whole merchant. Two
    charges with one good interval are enough to qualify.
    """
    patterns: List[Pattern] = []
    for merchant, group in group_by_merchant(expenses(txns)).items():
        if len(group) < min_occurrences:
            continue
        ordered = sort_ascending(group)
        intervals = consecutive_intervals([txn.created_at for txn in ordered])
        if not intervals:
            continue
        if not all(min_interval_days <= days <= max_interval_days for days in intervals):
            continue

        avg_amount = safe_mean([txn.amount for txn in ordered])
        avg_interval = safe_mean(intervals)
        annual_cost = avg_amount * 12
        patterns.append(
            Pattern(
                type="recurring_payment",
                insight=(
                    f"{merchant} looks like a monthly payment of about {avg_amount:,.0f} "
                    f"({annual_cost:,.0f} per year)."
                ),
                recommendation="Check that you still use this subscription or bill before the next charge.",
                severity="low",
                confidence=0.9,
                detail=RecurringPaymentDetail(
                    merchant=merchant,
                    occurrences=len(ordered),
                    avg_amount=round_money(avg_amount),
                    avg_interval_days=round(avg_interval, 1),
                    annual_cost=round_money(annual_cost),
                    last_seen_at=normalize_dt(ordered[-1].created_at).isoformat(),
                ),
            )
        )
    return patterns


def detect_weekend_spike(
    txns: Iterable[TransactionRecord],
    *,
    ratio_threshold: float = 1.5,
    min_weekend_avg: float = 1000.0,
) -> List[Pattern]:
    weekend: List[float] = []
    weekday: List[float] = []
    for txn in expenses(txns):
        if is_weekend(txn.created_at):
            weekend.append(txn.amount)
        else:
            weekday.append(txn.amount)

    avg_weekend = safe_mean(weekend)
    avg_weekday = safe_mean(weekday)
    if avg_weekday <= 0:
        return []
    if not (avg_weekend > avg_weekday * ratio_threshold and avg_weekend > min_weekend_avg):
        return []

    pct_increase = (avg_weekend - avg_weekday) / avg_weekday * 100
    return [
        Pattern(
            type="weekend_pattern",
            insight=(
                f"You spend {pct_increase:.0f}% more per transaction on weekends "
                f"({avg_weekend:,.0f} vs {avg_weekday:,.0f} on weekdays)."
            ),
            recommendation="Set a weekend spending limit or plan weekend activities in advance.",
            severity="medium",
            confidence=0.85,
            detail=WeekendPatternDetail(
                avg_weekend=round_money(avg_weekend),
                avg_weekday=round_money(avg_weekday),
                pct_increase=round(pct_increase, 1),
                weekend_count=len(weekend),
                weekday_count=len(weekday),
            ),
        )
    ]


def detect_payday_splurge(
    txns: Iterable[TransactionRecord],
    *,
    min_income: float = 5000.0,
    window_hours: int = 48,
    spend_ratio: float = 0.3,
) -> List[Pattern]:
    """
    Heavy spending right after a large income.

    Only the first qualifying income is reported per call. Callers that want
    every payday must re-run with narrower windows.
    """
    ordered = sort_ascending(txns)
    outflows = [txn for txn in ordered if txn.is_expense]
    window = timedelta(hours=window_hours)

    for income in ordered:
        if not income.is_income or income.amount <= min_income:
            continue
        start = normalize_dt(income.created_at)
        end = start + window
        inside = [txn for txn in outflows if start < normalize_dt(txn.created_at) < end]
        spent = sum(txn.amount for txn in inside)
        if spent <= income.amount * spend_ratio:
            continue

        pct = spent / income.amount * 100
        return [
            Pattern(
                type="unusual_activity",
                insight=(
                    f"You spent {spent:,.0f} ({pct:.0f}% of a {income.amount:,.0f} income) "
                    f"within {window_hours} hours of getting paid."
                ),
                recommendation="Move a fixed share of each paycheck into savings before spending.",
                severity="medium",
                confidence=0.9,
                detail=PaydaySplurgeDetail(
                    income_id=income.id,
                    income_amount=round_money(income.amount),
                    income_at=start.isoformat(),
                    spent_48h=round_money(spent),
                    pct_of_income=round(pct, 1),
                    expense_count=len(inside),
                ),
            )
        ]
    return []


def detect_category_concentration(
    txns: Iterable[TransactionRecord],
    *,
    share_threshold: float = 0.2,
    high_share_threshold: float = 0.3,
    max_count: int = 60,
    excluded: Iterable[str] = EXCLUDED_CONCENTRATION_CATEGORIES,
) -> List[Pattern]:
    excluded_keys = {name.strip().lower() for name in excluded}
    counts: dict[str, int] = {}
    sums: dict[str, float] = {}
    total = 0.0
    for txn in expenses(txns):
        counts[txn.category] = counts.get(txn.category, 0) + 1
        sums[txn.category] = sums.get(txn.category, 0.0) + txn.amount
        total += txn.amount

    patterns: List[Pattern] = []
    for category, count in counts.items():
        amount = sums[category]
        share = amount / total if total > 0 else 0.0
        over_share = share > share_threshold and category.strip().lower() not in excluded_keys
        if not (over_share or count > max_count):
            continue

        severity = "high" if share > high_share_threshold else "medium"
        patterns.append(
            Pattern(
                type="overspending",
                insight=(
                    f"{category} accounts for {share * 100:.0f}% of your spending "
                    f"across {count} transactions ({amount:,.0f} total)."
                ),
                recommendation=f"Try a monthly cap for {category} and track it weekly.",
                severity=severity,
                confidence=0.85,
                detail=CategoryConcentrationDetail(
                    category=category,
                    total_count=count,
                    total_amount=round_money(amount),
                    avg_amount=round_money(amount / count),
                    pct_of_total=round(share, 4),
                ),
            )
        )
    return patterns


DETECTOR_DEFINITIONS: List[DetectorDefinition] = [
    DetectorDefinition("detect_recurring_payments", "recurring_payment", detect_recurring_payments),
    DetectorDefinition("detect_weekend_spike", "weekend_pattern", detect_weekend_spike),
    DetectorDefinition("detect_payday_splurge", "unusual_activity", detect_payday_splurge),
    DetectorDefinition("detect_category_concentration", "overspending", detect_category_concentration),
]


def run_pattern_detectors_with_summary(
    txns: List[TransactionRecord],
    *,
    detectors: Optional[List[DetectorDefinition]] = None,
) -> DetectorRunSummary:
    all_patterns: List[Pattern] = []
    results: List[DetectorRunResult] = []

    for detector in detectors if detectors is not None else DETECTOR_DEFINITIONS:
        try:
            found = detector.runner(txns)
        except Exception as exc:
            logger.exception("Pattern detector %s failed", detector.detector_id)
            results.append(
                DetectorRunResult(
                    detector_id=detector.detector_id,
                    pattern_type=detector.pattern_type,
                    ran=False,
                    fired=False,
                    finding_count=0,
                    error=str(exc),
                )
            )
            continue

        results.append(
            DetectorRunResult(
                detector_id=detector.detector_id,
                pattern_type=detector.pattern_type,
                ran=True,
                fired=bool(found),
                finding_count=len(found),
            )
        )
        all_patterns.extend(found)

    return DetectorRunSummary(patterns=all_patterns, detectors=results)


def run_pattern_detectors(txns: List[TransactionRecord]) -> List[Pattern]:
    return run_pattern_detectors_with_summary(txns).patterns
