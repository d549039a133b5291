"""
Offline sync reconciliation.

Candidates are processed strictly in order so that two entries sharing a
``localId`` in one batch land on the same record: the first creates it, the
second overwrites it. Matching relies on the deterministic expense id derived
from (user_id, localId), which makes each upsert one atomic DynamoDB write.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import pydantic

from expense_tracker.core.config import settings
from expense_tracker.core.errors import StoreError, ValidationError
from expense_tracker.db import dynamo
from expense_tracker.models.expense import ExpenseCreate, ExpensePublic, SyncStatus
from expense_tracker.services.expenses import describe_validation_error, record_fields, utc_now

logger = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"
FAILED = "failed"


@dataclass
class SyncItemResult:
    index: int
    local_id: Optional[str]
    status: str
    expense: Optional[ExpensePublic] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"index": self.index, "localId": self.local_id, "status": self.status}
        if self.expense is not None:
            data["expense"] = self.expense.model_dump(mode="json", by_alias=True)
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class SyncResult:
    results: List[SyncItemResult] = field(default_factory=list)

    @property
    def synced(self) -> List[ExpensePublic]:
        return [item.expense for item in self.results if item.expense is not None]

    @property
    def failed(self) -> int:
        return sum(1 for item in self.results if item.status == FAILED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": "Sync complete",
            "synced": [expense.model_dump(mode="json", by_alias=True) for expense in self.synced],
            "results": [item.to_dict() for item in self.results],
            "failed": self.failed,
        }


def _raw_local_id(candidate: Any) -> Optional[str]:
    if isinstance(candidate, dict):
        value = candidate.get("localId", candidate.get("local_id"))
        return str(value) if value is not None else None
    return None


def reconcile_one(user_id: str, index: int, candidate: ExpenseCreate, now: str) -> SyncItemResult:
    fields = record_fields(candidate, now)
    fields["sync_status"] = SyncStatus.SYNCED.value

    if candidate.local_id is not None:
        expense_id = dynamo.expense_id_for(user_id, candidate.local_id)
        item, created = dynamo.upsert_expense(user_id, expense_id, fields, now)
        status = CREATED if created else UPDATED
    else:
        item = {
            "user_id": user_id,
            "expense_id": dynamo.expense_id_for(user_id, None),
            **fields,
            "created_at": now,
            "updated_at": now,
        }
        if not dynamo.put_expense(item):
            raise StoreError(f"Generated expense id {item['expense_id']} already exists")
        status = CREATED

    return SyncItemResult(
        index=index,
        local_id=candidate.local_id,
        status=status,
        expense=ExpensePublic.from_item(item),
    )


def sync_expenses(user_id: str, candidates: Optional[Sequence[Any]]) -> SyncResult:
    """
    Upsert every candidate for ``user_id``. A candidate that fails validation
    is reported as failed without affecting the others; store failures abort
    the batch.
    """
    if not candidates:
        raise ValidationError("Expenses array is required")
    if len(candidates) > settings.SYNC_MAX_BATCH:
        raise ValidationError(f"At most {settings.SYNC_MAX_BATCH} expenses can be synced at once")

    result = SyncResult()
    for index, raw in enumerate(candidates):
        try:
            candidate = ExpenseCreate.model_validate(raw)
        except pydantic.ValidationError as exc:
            detail = describe_validation_error(exc)
            logger.warning(f"Sync item {index} for user {user_id} rejected: {detail}")
            result.results.append(
                SyncItemResult(index=index, local_id=_raw_local_id(raw), status=FAILED, error=detail)
            )
            continue

        result.results.append(reconcile_one(user_id, index, candidate, utc_now()))

    logger.info(
        f"Synced {len(result.synced)} of {len(candidates)} expenses for user {user_id} "
        f"({result.failed} failed)"
    )
    return result
