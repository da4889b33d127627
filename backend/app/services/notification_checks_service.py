from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app import config
from backend.app.analytics.stats import normalize_dt, now_utc, round_money, sum_by_category
from backend.app.domain.records import GoalRecord, TransactionRecord
from backend.app.models import Profile
from backend.app.services import goal_service, notification_service, throttle_service, transaction_service
from backend.app.signals.bills import forecast_upcoming_bills
from backend.app.signals.budget import evaluate_budgets
from backend.app.signals.goals import evaluate_goals
from backend.app.signals.outliers import detect_unusual_spending
from backend.app.signals.schema import Alert


logger = logging.getLogger(__name__)

SNAPSHOT_DAYS = 90
WEEKLY_SUMMARY_DAYS = 7

Evaluator = Callable[[], List[Alert]]


def _evaluators(
    txns: List[TransactionRecord],
    goals: List[GoalRecord],
    budgets: Mapping[str, float],
    now: datetime,
) -> Dict[str, Evaluator]:
    return {
        "budget": lambda: evaluate_budgets(txns, budgets, now),
        "goals": lambda: evaluate_goals(goals, now),
        "upcoming_bills": lambda: forecast_upcoming_bills(txns, now),
        "unusual_spending": lambda: detect_unusual_spending(txns, now),
    }


def _run_evaluators(user_id: str, evaluators: Dict[str, Evaluator]) -> Tuple[List[Alert], List[str]]:
    """Run every evaluator on the shared snapshot; one failure never blocks the rest."""
    alerts: List[Alert] = []
    failed: List[str] = []
    with ThreadPoolExecutor(max_workers=len(evaluators)) as pool:
        futures = {name: pool.submit(fn) for name, fn in evaluators.items()}
        for name, future in futures.items():
            try:
                alerts.extend(future.result())
            except Exception:
                logger.exception("Evaluator %s failed for user %s", name, user_id)
                failed.append(name)
    return alerts, failed


def run_notification_checks(
    db: Session,
    user_id: str,
    now: Optional[datetime] = None,
    *,
    force: bool = False,
    budgets: Optional[Mapping[str, float]] = None,
) -> Dict[str, Any]:
    """
    Throttled budget/goal/bill/outlier checks for one user.

    Every alert becomes one notification. The throttle timestamp only moves
    when the notifications are committed, so a failed run can be retried.
    """
    now = normalize_dt(now) or now_utc()
    window = timedelta(hours=config.throttle_hours())
    budget_table = dict(budgets) if budgets is not None else config.budget_table()

    try:
        last_run_at = throttle_service.read_throttle_state(db, user_id)
        if not force and not throttle_service.should_run(last_run_at, now, window):
            hours_since = (now - last_run_at).total_seconds() / 3600
            logger.info("Skipping notification checks for user %s (last run %.1fh ago)", user_id, hours_since)
            return {
                "success": True,
                "ran": False,
                "last_run_at": last_run_at.isoformat(),
                "notifications_created": 0,
                "failed_evaluators": [],
            }

        txns = transaction_service.fetch_transactions(db, user_id, now - timedelta(days=SNAPSHOT_DAYS), now)
        goals = goal_service.fetch_goals(db, user_id)
        alerts, failed = _run_evaluators(user_id, _evaluators(txns, goals, budget_table, now))

        for alert in alerts:
            notification_service.write_notification(
                db,
                user_id,
                alert.notification_type,
                alert.title,
                alert.message,
                alert.data,
                created_at=now,
            )
        throttle_service.write_throttle_state(db, user_id, now)
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.exception("Notification checks failed for user %s", user_id)
        return {"success": False, "ran": False, "error": str(exc)}

    logger.info(
        "Notification checks for user %s created %s notifications (%s evaluators failed)",
        user_id,
        len(alerts),
        len(failed),
    )
    return {
        "success": True,
        "ran": True,
        "last_run_at": now.isoformat(),
        "notifications_created": len(alerts),
        "failed_evaluators": failed,
    }


def _weekly_stats(txns: List[TransactionRecord]) -> Dict[str, Any]:
    income = sum(txn.amount for txn in txns if txn.is_income)
    spent = sum(txn.amount for txn in txns if txn.is_expense)
    by_category = sum_by_category(txn for txn in txns if txn.is_expense)

    top_category = None
    top_amount = 0.0
    if by_category:
        top_category, top_amount = sorted(by_category.items(), key=lambda item: (-item[1], item[0]))[0]

    return {
        "income": round_money(income),
        "expenses": round_money(spent),
        "net": round_money(income - spent),
        "top_category": top_category,
        "top_category_amount": round_money(top_amount) if top_category else None,
        "transaction_count": len(txns),
    }


def _weekly_message(stats: Dict[str, Any]) -> str:
    if stats["transaction_count"] == 0:
        return (
            "No transactions were logged this week. If you paid for anything in cash, "
            "add it now so your insights stay accurate."
        )
    net = stats["net"]
    direction = "saved" if net >= 0 else "overspent by"
    message = (
        f"This week you earned {stats['income']:,.0f} and spent {stats['expenses']:,.0f}, "
        f"so you {direction} {abs(net):,.0f}."
    )
    if stats["top_category"]:
        message += (
            f" Your top spending category was {stats['top_category']} "
            f"({stats['top_category_amount']:,.0f})."
        )
    return message


def weekly_stats(db: Session, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Trailing-week totals without writing a notification."""
    now = normalize_dt(now) or now_utc()
    txns = transaction_service.fetch_transactions(db, user_id, now - timedelta(days=WEEKLY_SUMMARY_DAYS), now)
    return {"success": True, "stats": _weekly_stats(txns)}


def generate_weekly_summary(db: Session, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Exactly one info notification per call, even for an empty week."""
    now = normalize_dt(now) or now_utc()
    try:
        txns = transaction_service.fetch_transactions(db, user_id, now - timedelta(days=WEEKLY_SUMMARY_DAYS), now)
        stats = _weekly_stats(txns)
        row = notification_service.write_notification(
            db,
            user_id,
            "info",
            "Your Weekly Summary",
            _weekly_message(stats),
            {"kind": "weekly_summary", **stats},
            created_at=now,
        )
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.exception("Weekly summary failed for user %s", user_id)
        return {"success": False, "error": str(exc)}

    return {"success": True, "notification_id": row.id, "stats": stats}


def _all_user_ids(db: Session) -> List[str]:
    return list(db.execute(select(Profile.id).order_by(Profile.created_at.asc(), Profile.id.asc())).scalars().all())


def run_daily_checks_for_all_users(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    user_ids = _all_user_ids(db)
    logger.info("Running daily checks for %s users", len(user_ids))

    successful = failed = skipped = 0
    for user_id in user_ids:
        result = run_notification_checks(db, user_id, now)
        if not result["success"]:
            failed += 1
        elif result["ran"]:
            successful += 1
        else:
            skipped += 1

    logger.info("Daily checks complete: %s successful, %s skipped, %s failed", successful, skipped, failed)
    return {
        "success": True,
        "stats": {
            "total_users": len(user_ids),
            "successful": successful,
            "skipped": skipped,
            "failed": failed,
        },
    }


def run_weekly_summaries_for_all_users(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    user_ids = _all_user_ids(db)
    logger.info("Generating weekly summaries for %s users", len(user_ids))

    successful = failed = 0
    for user_id in user_ids:
        result = generate_weekly_summary(db, user_id, now)
        if result["success"]:
            successful += 1
        else:
            failed += 1

    logger.info("Weekly summaries complete: %s successful, %s failed", successful, failed)
    return {
        "success": True,
        "stats": {
            "total_users": len(user_ids),
            "successful": successful,
            "failed": failed,
        },
    }
