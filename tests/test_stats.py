from datetime import date, datetime, timezone

import pytest

from expense_tracker.core.errors import ValidationError
from expense_tracker.models.expense import ExpenseCreate
from expense_tracker.services import stats
from expense_tracker.services.expenses import create_expense


def add(user_id, amount, category, when, payment_method="Cash"):
    return create_expense(
        user_id,
        ExpenseCreate(amount=amount, category=category, payment_method=payment_method, occurred_at=when),
    )


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def march(tables):
    # Inside March 2025
    add("u1", 40, "Food", utc(2025, 3, 1, 0, 0))
    add("u1", 25.5, "Transport", utc(2025, 3, 14, 8, 30))
    add("u1", 14.5, "Food", utc(2025, 3, 14, 19, 0))
    add("u1", 120, "Bills", utc(2025, 3, 31, 23, 59, 59))
    # Outside March 2025 or another owner
    add("u1", 1000, "Shopping", utc(2025, 2, 28, 23, 59, 59))
    add("u1", 1000, "Shopping", utc(2025, 4, 1, 0, 0))
    add("u2", 77, "Food", utc(2025, 3, 10, 12, 0))


def test_daily_stats(march):
    result = stats.daily_stats("u1", "2025-03-14")
    assert result["date"] == "2025-03-14"
    assert result["total"] == 40.0
    # Newest first
    assert [expense["category"] for expense in result["expenses"]] == ["Food", "Transport"]


def test_daily_stats_defaults_to_today(march):
    result = stats.daily_stats("u1", today=date(2025, 3, 1))
    assert result["total"] == 40


def test_monthly_total_is_sum_within_month(march):
    result = stats.monthly_stats("u1", "3", "2025")
    assert result["month"] == 3
    assert result["year"] == 2025
    assert len(result["expenses"]) == 4
    assert result["total"] == 200.0
    assert result["byCategory"] == {"Food": 54.5, "Transport": 25.5, "Bills": 120.0}


def test_monthly_stats_default_month(march):
    result = stats.monthly_stats("u1", today=date(2025, 3, 20))
    assert (result["month"], result["year"]) == (3, 2025)
    assert result["total"] == 200.0


def test_category_breakdown_sums_to_monthly_total(march):
    result = stats.category_breakdown("u1", "3", "2025")
    assert [entry["category"] for entry in result["breakdown"]] == ["Bills", "Food", "Transport"]
    assert result["breakdown"][1] == {"category": "Food", "total": 54.5, "count": 2}
    assert sum(entry["total"] for entry in result["breakdown"]) == result["total"] == 200.0


def test_invalid_month_is_rejected_before_querying(tables):
    with pytest.raises(ValidationError):
        stats.monthly_stats("u1", "March", "2025")
    with pytest.raises(ValidationError):
        stats.category_breakdown("u1", "13", None)


def test_insights_compare_with_previous_month(tables):
    add("u1", 100, "Food", utc(2024, 12, 5, 12, 0))
    add("u1", 100, "Transport", utc(2024, 12, 6, 12, 0))
    add("u1", 110, "Food", utc(2025, 1, 5, 12, 0))
    add("u1", 109, "Transport", utc(2025, 1, 6, 12, 0))
    add("u1", 60, "Health", utc(2025, 1, 7, 12, 0))

    result = stats.insights("u1", now=utc(2025, 1, 20, 9, 0))

    assert result["insights"] == [
        {
            "category": "Food",
            "currentAmount": 110.0,
            "lastAmount": 100.0,
            "changePercent": 10,
            "message": "You spent 10% more on Food this month",
        }
    ]
    assert result["currentMonthTotal"] == 279
    assert result["lastMonthTotal"] == 200
    assert result["overallChange"] == 40  # 39.5 rounds up
