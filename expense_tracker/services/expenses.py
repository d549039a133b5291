"""
Owner-scoped expense CRUD on top of the record store.

Every function takes the owner's ``user_id`` explicitly; nothing here reads
request state.
"""
import logging
import math
from datetime import datetime, time, timezone
from enum import Enum
from typing import Any, Dict, Optional

import pydantic

from expense_tracker.core.errors import NotFoundError, ValidationError
from expense_tracker.db import dynamo
from expense_tracker.models.expense import (
    Category,
    ExpenseCreate,
    ExpenseList,
    ExpensePublic,
    ExpenseUpdate,
    Pagination,
    SyncStatus,
)
from expense_tracker.services.periods import local_zone, parse_day, to_storage

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


def utc_now() -> str:
    return to_storage(datetime.now(timezone.utc))


def describe_validation_error(exc: pydantic.ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "body"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


def record_fields(payload: ExpenseCreate, now: str) -> Dict[str, Any]:
    """Mutable fields of a stored expense, as written by create and sync."""
    occurred_at = to_storage(payload.occurred_at) if payload.occurred_at else now
    return {
        "amount": payload.amount,
        "category": payload.category.value,
        "payment_method": payload.payment_method.value,
        "description": payload.description,
        "occurred_at": occurred_at,
        "local_id": payload.local_id,
    }


def create_expense(user_id: str, payload: ExpenseCreate, now: Optional[str] = None) -> ExpensePublic:
    now = now or utc_now()
    item = {
        "user_id": user_id,
        "expense_id": dynamo.expense_id_for(user_id, payload.local_id),
        **record_fields(payload, now),
        "sync_status": SyncStatus.SYNCED.value,
        "created_at": now,
        "updated_at": now,
    }
    if not dynamo.put_expense(item):
        raise ValidationError(
            f"An expense with localId {payload.local_id!r} already exists; use sync to update it"
        )
    logger.info(f"Created expense {item['expense_id']} for user {user_id}")
    return ExpensePublic.from_item(item)


def _date_bound(raw: Optional[str], end_of_day: bool) -> Optional[str]:
    """
    Filter bound from a query value. A bare date covers the whole local day;
    a full timestamp is used as-is.
    """
    if raw is None or not str(raw).strip():
        return None
    raw = str(raw).strip()
    tz = local_zone()
    if len(raw) == 10:
        day = parse_day(raw, tz)
        parsed = datetime.combine(day, time.max if end_of_day else time.min)
    else:
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"Invalid date: {raw!r}")
    return to_storage(parsed, tz)


def list_expenses(
    user_id: str,
    category: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> ExpenseList:
    if page < 1:
        raise ValidationError("page must be at least 1")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    if category:
        try:
            category = Category(category).value
        except ValueError:
            raise ValidationError(f"Unknown category: {category!r}")

    start = _date_bound(start_date, end_of_day=False)
    end = _date_bound(end_date, end_of_day=True)
    if start and end and start > end:
        raise ValidationError("startDate must not be after endDate")

    items = dynamo.query_expenses(user_id, start=start, end=end, category=category)
    total = len(items)
    offset = (page - 1) * limit
    return ExpenseList(
        expenses=[ExpensePublic.from_item(item) for item in items[offset:offset + limit]],
        pagination=Pagination(current=page, pages=math.ceil(total / limit), total=total),
    )


def get_expense(user_id: str, expense_id: str) -> ExpensePublic:
    item = dynamo.get_expense(user_id, expense_id)
    if not item:
        raise NotFoundError("Expense not found")
    return ExpensePublic.from_item(item)


def update_expense(user_id: str, expense_id: str, payload: ExpenseUpdate) -> ExpensePublic:
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationError("No fields to update")

    updates: Dict[str, Any] = {}
    for name, value in changes.items():
        if name == "occurred_at":
            value = to_storage(value)
        elif isinstance(value, Enum):
            value = value.value
        updates[name] = value
    updates["updated_at"] = utc_now()

    updated = dynamo.update_expense(user_id, expense_id, updates)
    if not updated:
        raise NotFoundError("Expense not found")
    return ExpensePublic.from_item(updated)


def delete_expense(user_id: str, expense_id: str) -> None:
    if not dynamo.delete_expense(user_id, expense_id):
        raise NotFoundError("Expense not found")
    logger.info(f"Deleted expense {expense_id} for user {user_id}")
