import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query, status

from expense_tracker.core.security import get_current_user_id
from expense_tracker.models.expense import (
    ExpenseCreate,
    ExpenseList,
    ExpensePublic,
    ExpenseUpdate,
    SyncRequest,
)
from expense_tracker.services import expenses as expense_service
from expense_tracker.services import stats
from expense_tracker.services.sync import sync_expenses

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_model=ExpensePublic, status_code=status.HTTP_201_CREATED)
def create_expense(expense: ExpenseCreate, user_id: str = Depends(get_current_user_id)):
    return expense_service.create_expense(user_id, expense)


@router.get("", response_model=ExpenseList)
def list_expenses(
    category: Optional[str] = None,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    page: int = 1,
    limit: int = 20,
    user_id: str = Depends(get_current_user_id),
):
    return expense_service.list_expenses(
        user_id,
        category=category,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )


# Stats and sync routes are declared before /{expense_id} so they are not
# captured as ids.


@router.get("/stats/daily")
def daily_stats(date: Optional[str] = None, user_id: str = Depends(get_current_user_id)) -> Dict:
    """Expenses and total for one local day (default: today)."""
    return stats.daily_stats(user_id, date)


@router.get("/stats/monthly")
def monthly_stats(
    month: Optional[str] = None,
    year: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
) -> Dict:
    """
    Expenses, total and per-category totals for a month.
    ``month`` is 1-12; both default to the current month.
    """
    return stats.monthly_stats(user_id, month, year)


@router.get("/stats/categories")
def category_breakdown(
    month: Optional[str] = None,
    year: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
) -> Dict:
    return stats.category_breakdown(user_id, month, year)


@router.get("/stats/insights")
def insights(user_id: str = Depends(get_current_user_id)) -> Dict:
    """Month-over-month changes per category for the current month."""
    return stats.insights(user_id)


@router.post("/sync")
def sync(request: SyncRequest, user_id: str = Depends(get_current_user_id)) -> Dict:
    logger.info(f"Sync request from user {user_id} with {len(request.expenses or [])} expenses")
    return sync_expenses(user_id, request.expenses).to_dict()


@router.get("/{expense_id}", response_model=ExpensePublic)
def get_expense(expense_id: str, user_id: str = Depends(get_current_user_id)):
    return expense_service.get_expense(user_id, expense_id)


@router.put("/{expense_id}", response_model=ExpensePublic)
def update_expense(
    expense_id: str,
    expense_update: ExpenseUpdate,
    user_id: str = Depends(get_current_user_id),
):
    return expense_service.update_expense(user_id, expense_id, expense_update)


@router.delete("/{expense_id}")
def delete_expense(expense_id: str, user_id: str = Depends(get_current_user_id)) -> Dict:
    expense_service.delete_expense(user_id, expense_id)
    return {"message": "Expense deleted"}
