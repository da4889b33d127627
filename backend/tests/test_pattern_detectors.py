from datetime import datetime, timedelta, timezone

import pytest

from backend.app.domain.records import TransactionRecord
from backend.app.signals.patterns import (
    DetectorDefinition,
    detect_category_concentration,
    detect_payday_splurge,
    detect_recurring_payments,
    detect_weekend_spike,
    run_pattern_detectors,
    run_pattern_detectors_with_summary,
)
from backend.app.signals.schema import RecurringPaymentDetail

# Monday
BASE = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def _txn(
    txn_id: str,
    created_at: datetime,
    amount: float,
    *,
    type: str = "expense",
    category: str = "Food",
    description: str = "Corner Shop",
):
    return TransactionRecord(
        id=txn_id,
        user_id="user-1",
        type=type,
        amount=amount,
        category=category,
        description=description,
        created_at=created_at,
    )


# -------------------------
# Recurring payments
# -------------------------

def test_recurring_payment_fires_when_every_gap_is_monthly():
    txns = [
        _txn("n1", BASE, 500.0, description="Netflix", category="Entertainment"),
        _txn("n2", BASE + timedelta(days=30), 500.0, description="Netflix", category="Entertainment"),
        _txn("n3", BASE + timedelta(days=61), 500.0, description="Netflix", category="Entertainment"),
        _txn("x1", BASE + timedelta(days=3), 120.0, description="Bakery"),
    ]

    patterns = detect_recurring_payments(txns)

    assert len(patterns) == 1
    pattern = patterns[0]
    assert pattern.type == "recurring_payment"
    assert pattern.confidence == 0.9
    assert isinstance(pattern.detail, RecurringPaymentDetail)
    assert pattern.detail.merchant == "Netflix"
    assert pattern.detail.occurrences == 3
    assert pattern.detail.avg_amount == 500.0
    assert pattern.detail.avg_interval_days == pytest.approx(30.5)
    assert pattern.detail.annual_cost == 6000.0
    assert pattern.data["kind"] == "recurring_payment"


def test_recurring_payment_rejects_group_with_one_bad_gap():
    txns = [
        _txn("g1", BASE, 900.0, description="Gym"),
        _txn("g2", BASE + timedelta(days=30), 900.0, description="Gym"),
        _txn("g3", BASE + timedelta(days=70), 900.0, description="Gym"),
    ]

    assert detect_recurring_payments(txns) == []


def test_recurring_payment_accepts_two_occurrences():
    txns = [
        _txn("s1", BASE, 300.0, description="Spotify"),
        _txn("s2", BASE + timedelta(days=28), 320.0, description="Spotify"),
    ]

    patterns = detect_recurring_payments(txns)

    assert len(patterns) == 1
    assert patterns[0].detail.avg_amount == 310.0


def test_recurring_payment_sorts_input_and_ignores_income():
    txns = [
        _txn("i3", BASE + timedelta(days=60), 40000.0, type="income", description="Salary"),
        _txn("i2", BASE + timedelta(days=30), 40000.0, type="income", description="Salary"),
        _txn("i1", BASE, 40000.0, type="income", description="Salary"),
        _txn("w3", BASE + timedelta(days=62), 700.0, description="Water Bill"),
        _txn("w1", BASE, 700.0, description="Water Bill"),
        _txn("w2", BASE + timedelta(days=31), 700.0, description="Water Bill"),
    ]

    patterns = detect_recurring_payments(txns)

    assert [p.detail.merchant for p in patterns] == ["Water Bill"]


# -------------------------
# Weekend spike
# -------------------------

def test_weekend_spike_fires_with_percentage_increase():
    txns = [
        _txn("wd1", BASE, 900.0),  # Monday
        _txn("wd2", BASE + timedelta(days=1), 900.0),  # Tuesday
        _txn("we1", BASE + timedelta(days=5), 1500.0),  # Saturday
        _txn("we2", BASE + timedelta(days=6), 1500.0),  # Sunday
    ]

    patterns = detect_weekend_spike(txns)

    assert len(patterns) == 1
    detail = patterns[0].detail
    assert patterns[0].type == "weekend_pattern"
    assert detail.avg_weekend == 1500.0
    assert detail.avg_weekday == 900.0
    assert detail.pct_increase == pytest.approx(66.7, abs=0.05)


def test_weekend_spike_suppressed_without_weekday_spend():
    txns = [
        _txn("we1", BASE + timedelta(days=5), 1500.0),
        _txn("we2", BASE + timedelta(days=6), 1500.0),
    ]

    assert detect_weekend_spike(txns) == []


def test_weekend_spike_requires_absolute_floor():
    txns = [
        _txn("wd1", BASE, 300.0),
        _txn("we1", BASE + timedelta(days=5), 900.0),
    ]

    assert detect_weekend_spike(txns) == []


# -------------------------
# Payday splurge
# -------------------------

def test_payday_splurge_reports_only_first_qualifying_income():
    txns = [
        _txn("inc1", BASE, 10000.0, type="income", description="Salary"),
        _txn("e1", BASE + timedelta(hours=10), 2000.0),
        _txn("e2", BASE + timedelta(hours=40), 1500.0),
        _txn("inc2", BASE + timedelta(days=14), 10000.0, type="income", description="Bonus"),
        _txn("e3", BASE + timedelta(days=14, hours=5), 5000.0),
    ]

    patterns = detect_payday_splurge(txns)

    assert len(patterns) == 1
    detail = patterns[0].detail
    assert patterns[0].type == "unusual_activity"
    assert detail.income_id == "inc1"
    assert detail.spent_48h == 3500.0
    assert detail.pct_of_income == pytest.approx(35.0)
    assert detail.expense_count == 2


def test_payday_splurge_window_is_exclusive():
    txns = [
        _txn("inc1", BASE, 10000.0, type="income"),
        _txn("same", BASE, 2000.0),
        _txn("edge", BASE + timedelta(hours=48), 3500.0),
    ]

    assert detect_payday_splurge(txns) == []


def test_payday_splurge_ignores_small_income():
    txns = [
        _txn("inc1", BASE, 5000.0, type="income"),
        _txn("e1", BASE + timedelta(hours=2), 4000.0),
    ]

    assert detect_payday_splurge(txns) == []


# -------------------------
# Category concentration
# -------------------------

def test_category_concentration_fires_just_above_twenty_percent():
    txns = [_txn("c0", BASE, 20.0001, category="Coffee")]
    for i, category in enumerate(["Food", "Transport", "Books", "Gifts"]):
        txns.append(_txn(f"o{i}", BASE + timedelta(hours=i + 1), 19.999975, category=category))

    patterns = detect_category_concentration(txns)

    assert len(patterns) == 1
    assert patterns[0].type == "overspending"
    assert patterns[0].severity == "medium"
    assert patterns[0].detail.category == "Coffee"


def test_category_concentration_exactly_twenty_percent_does_not_fire():
    txns = [
        _txn(f"c{i}", BASE + timedelta(hours=i), 200.0, category=category)
        for i, category in enumerate(["Coffee", "Food", "Transport", "Books", "Gifts"])
    ]

    assert detect_category_concentration(txns) == []


def test_category_concentration_skips_rent_and_bills_share():
    txns = [
        _txn("r1", BASE, 5000.0, category="Rent"),
        _txn("b1", BASE, 3000.0, category="bills"),
        _txn("f1", BASE, 500.0, category="Food"),
        _txn("t1", BASE, 500.0, category="Transport"),
        _txn("g1", BASE, 500.0, category="Gifts"),
        _txn("h1", BASE, 500.0, category="Health"),
    ]

    assert detect_category_concentration(txns) == []


def test_category_concentration_high_severity_and_count_rule():
    txns = [_txn("s1", BASE, 4000.0, category="Shopping")]
    txns.append(_txn("r1", BASE, 5000.0, category="Rent"))
    for i in range(61):
        txns.append(_txn(f"tea{i}", BASE + timedelta(hours=i), 10.0, category="Tea"))

    by_category = {p.detail.category: p for p in detect_category_concentration(txns)}

    assert set(by_category) == {"Shopping", "Tea"}
    assert by_category["Shopping"].severity == "high"
    assert by_category["Tea"].severity == "medium"
    assert by_category["Tea"].detail.total_count == 61


# -------------------------
# Runner
# -------------------------

def test_runner_concatenates_without_dedup():
    txns = [
        _txn("wd1", BASE, 900.0, category="Fun", description="Arcade"),
        _txn("we1", BASE + timedelta(days=5), 3000.0, category="Fun", description="Arcade"),
    ]

    types = [p.type for p in run_pattern_detectors(txns)]

    assert "weekend_pattern" in types
    assert "overspending" in types


def test_runner_isolates_failing_detector():
    def _boom(txns):
        raise RuntimeError("bad record")

    txns = [
        _txn("s1", BASE, 300.0, description="Spotify"),
        _txn("s2", BASE + timedelta(days=30), 300.0, description="Spotify"),
    ]
    detectors = [
        DetectorDefinition("detect_broken", "overspending", _boom),
        DetectorDefinition("detect_recurring_payments", "recurring_payment", detect_recurring_payments),
    ]

    summary = run_pattern_detectors_with_summary(txns, detectors=detectors)

    assert [p.type for p in summary.patterns] == ["recurring_payment"]
    broken = summary.detectors[0]
    assert broken.ran is False
    assert broken.error == "bad record"
    assert summary.detectors[1].fired is True


def test_category_concentration_count_rule_fires_without_any_spend():
    txns = [_txn(f"free{i}", BASE + timedelta(hours=i), 0.0, category="Freebies") for i in range(61)]

    patterns = detect_category_concentration(txns)

    assert len(patterns) == 1
    assert patterns[0].severity == "medium"
    assert patterns[0].detail.total_count == 61
    assert patterns[0].detail.pct_of_total == 0.0


def test_excluded_category_still_fires_on_transaction_count():
    txns = [_txn(f"rent{i}", BASE + timedelta(hours=i), 10.0, category="Rent") for i in range(61)]
    txns.append(_txn("f1", BASE, 500.0, category="Food"))
    txns.append(_txn("t1", BASE, 500.0, category="Transport"))
    txns.append(_txn("g1", BASE, 500.0, category="Gifts"))
    txns.append(_txn("h1", BASE, 500.0, category="Health"))
    txns.append(_txn("b1", BASE, 500.0, category="Books"))

    by_category = {p.detail.category: p for p in detect_category_concentration(txns)}

    assert set(by_category) == {"Rent"}
    assert by_category["Rent"].detail.total_count == 61
