"""
Statistics over an owner's expenses: daily and monthly totals, category
breakdowns and month-over-month insights.

Query parameters are passed through raw and validated by ``periods``; the
store is only queried once the window is known to be valid.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from expense_tracker.db import dynamo
from expense_tracker.models.expense import ExpensePublic
from expense_tracker.services import periods
from expense_tracker.utils.analyzer import SpendingAnalyzer

logger = logging.getLogger(__name__)

analyzer = SpendingAnalyzer()


def _records_in(user_id: str, window: periods.Window) -> List[Dict[str, Any]]:
    start, end = window.bounds()
    return dynamo.query_expenses(user_id, start=start, end=end)


def _public(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [ExpensePublic.from_item(item).model_dump(mode="json", by_alias=True) for item in items]


def daily_stats(user_id: str, day: Optional[str] = None, today: Optional[date] = None) -> Dict[str, Any]:
    tz = periods.local_zone()
    target = periods.parse_day(day, tz, today=today)
    expenses = _records_in(user_id, periods.day_window(target, tz))
    return {
        "expenses": _public(expenses),
        "total": analyzer.total(expenses),
        "date": target.isoformat(),
    }


def monthly_stats(
    user_id: str,
    month: Optional[str] = None,
    year: Optional[str] = None,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    tz = periods.local_zone()
    target_year, target_month = periods.parse_month_year(month, year, tz, today=today)
    expenses = _records_in(user_id, periods.month_window(target_year, target_month, tz))
    return {
        "expenses": _public(expenses),
        "total": analyzer.total(expenses),
        "byCategory": analyzer.category_totals(expenses),
        "month": target_month,
        "year": target_year,
    }


def category_breakdown(
    user_id: str,
    month: Optional[str] = None,
    year: Optional[str] = None,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    tz = periods.local_zone()
    target_year, target_month = periods.parse_month_year(month, year, tz, today=today)
    expenses = _records_in(user_id, periods.month_window(target_year, target_month, tz))
    return {
        "breakdown": [entry.to_dict() for entry in analyzer.category_breakdown(expenses)],
        "total": analyzer.total(expenses),
        "month": target_month,
        "year": target_year,
    }


def insights(user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    tz = periods.local_zone()
    now = now.astimezone(tz) if now and now.tzinfo else (now or periods.now_local(tz))
    current_year, current_month = now.year, now.month
    last_year, last_month = periods.previous_month(current_year, current_month)

    current = _records_in(user_id, periods.month_window(current_year, current_month, tz))
    last = _records_in(user_id, periods.month_window(last_year, last_month, tz))
    logger.info(
        f"Computing insights for user {user_id}: {len(current)} expenses in "
        f"{current_year}-{current_month:02d}, {len(last)} in {last_year}-{last_month:02d}"
    )
    return analyzer.compare_months(current, last)
