from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List


def percent_change(current: float, last: float) -> int:
    """
    Whole-number percentage change from ``last`` to ``current``.
    Halves round up (toward +infinity), like the mobile client does.
    """
    if last == 0:
        return 0
    return math.floor(100 * (current - last) / last + 0.5)


@dataclass
class CategoryTotal:
    """Sum and record count for one category within a period."""

    category: str
    total: float
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"category": self.category, "total": self.total, "count": self.count}


@dataclass
class CategoryInsight:
    """A material month-over-month change in one category."""

    category: str
    current_amount: float
    last_amount: float
    change_percent: int

    @property
    def message(self) -> str:
        direction = "more" if self.change_percent > 0 else "less"
        return f"You spent {abs(self.change_percent)}% {direction} on {self.category} this month"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "currentAmount": self.current_amount,
            "lastAmount": self.last_amount,
            "changePercent": self.change_percent,
            "message": self.message,
        }


class SpendingAnalyzer:
    """
    Pure aggregation over expense items as returned by the store (dicts with
    at least ``amount`` and ``category``). Nothing here touches DynamoDB, so
    routes and tests can feed it any list of records.
    """

    def __init__(self, change_threshold: int = 10) -> None:
        self._change_threshold = change_threshold

    def total(self, expenses: Iterable[Dict[str, Any]]) -> float:
        return round(sum(float(exp.get("amount", 0)) for exp in expenses), 2)

    def category_totals(self, expenses: Iterable[Dict[str, Any]]) -> Dict[str, float]:
        totals: Dict[str, float] = defaultdict(float)
        for exp in expenses:
            totals[exp["category"]] += float(exp.get("amount", 0))
        return {cat: round(total, 2) for cat, total in totals.items()}

    def category_breakdown(self, expenses: Iterable[Dict[str, Any]]) -> List[CategoryTotal]:
        """Per-category totals, largest first."""
        totals: Dict[str, float] = defaultdict(float)
        counts: Dict[str, int] = defaultdict(int)
        for exp in expenses:
            totals[exp["category"]] += float(exp.get("amount", 0))
            counts[exp["category"]] += 1

        breakdown = [
            CategoryTotal(category=cat, total=round(total, 2), count=counts[cat])
            for cat, total in totals.items()
        ]
        breakdown.sort(key=lambda item: item.total, reverse=True)
        return breakdown

    def compare_months(
        self,
        current_expenses: List[Dict[str, Any]],
        last_expenses: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        """
        Month-over-month insights. Only categories that also had spending last
        month can produce an insight; a brand-new category is not flagged.
        """
        current_totals = self.category_totals(current_expenses)
        last_totals = self.category_totals(last_expenses)

        insights: List[CategoryInsight] = []
        for category, current_amount in current_totals.items():
            last_amount = last_totals.get(category, 0)
            if last_amount <= 0:
                continue
            change = percent_change(current_amount, last_amount)
            if abs(change) >= self._change_threshold:
                insights.append(
                    CategoryInsight(
                        category=category,
                        current_amount=current_amount,
                        last_amount=last_amount,
                        change_percent=change,
                    )
                )
        insights.sort(key=lambda item: (-abs(item.change_percent), item.category))

        current_total = self.total(current_expenses)
        last_total = self.total(last_expenses)
        return {
            "insights": [insight.to_dict() for insight in insights],
            "currentMonthTotal": current_total,
            "lastMonthTotal": last_total,
            "overallChange": percent_change(current_total, last_total),
        }
