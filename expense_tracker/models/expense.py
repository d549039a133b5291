from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from expense_tracker.core import errors
from expense_tracker.services.periods import to_storage


class Category(str, Enum):
    FOOD = "Food"
    TRANSPORT = "Transport"
    SHOPPING = "Shopping"
    ENTERTAINMENT = "Entertainment"
    BILLS = "Bills"
    HEALTH = "Health"
    EDUCATION = "Education"
    OTHER = "Other"


class PaymentMethod(str, Enum):
    CASH = "Cash"
    CREDIT_CARD = "Credit Card"
    DEBIT_CARD = "Debit Card"
    UPI = "UPI"
    NET_BANKING = "Net Banking"
    OTHER = "Other"


class SyncStatus(str, Enum):
    SYNCED = "synced"
    PENDING = "pending"


class CamelModel(BaseModel):
    """Accepts camelCase or snake_case on input, emits camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# The mobile client sends the expense timestamp as "date".
_OCCURRED_AT = dict(
    validation_alias=AliasChoices("occurredAt", "occurred_at", "date"),
    serialization_alias="occurredAt",
)


def _storable(value: Optional[datetime]) -> Optional[datetime]:
    # Must convert to UTC without leaving the datetime range.
    if value is not None:
        try:
            to_storage(value)
        except errors.ValidationError as exc:
            raise ValueError(exc.detail)
    return value


class ExpenseCreate(CamelModel):
    amount: float = Field(gt=0, allow_inf_nan=False)
    category: Category
    payment_method: PaymentMethod
    description: str = ""
    occurred_at: Optional[datetime] = Field(default=None, **_OCCURRED_AT)
    local_id: Optional[str] = None

    @field_validator("description", mode="before")
    @classmethod
    def strip_description(cls, value):
        if value is None:
            return ""
        return value.strip() if isinstance(value, str) else value

    @field_validator("occurred_at")
    @classmethod
    def storable_occurred_at(cls, value):
        return _storable(value)

    @field_validator("local_id", mode="before")
    @classmethod
    def numeric_local_id_as_text(cls, value):
        # JS clients often send Date.now() as the local id.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("local_id")
    @classmethod
    def blank_local_id_is_none(cls, value):
        if value is not None and not value.strip():
            return None
        return value


class ExpenseUpdate(CamelModel):
    amount: Optional[float] = Field(default=None, gt=0, allow_inf_nan=False)
    category: Optional[Category] = None
    payment_method: Optional[PaymentMethod] = None
    description: Optional[str] = None
    occurred_at: Optional[datetime] = Field(default=None, **_OCCURRED_AT)

    @field_validator("description")
    @classmethod
    def strip_description(cls, value):
        return value.strip() if value is not None else value

    @field_validator("occurred_at")
    @classmethod
    def storable_occurred_at(cls, value):
        return _storable(value)


class ExpensePublic(CamelModel):
    id: str
    amount: float
    category: Category
    payment_method: PaymentMethod
    description: str = ""
    occurred_at: str = Field(**_OCCURRED_AT)
    sync_status: SyncStatus
    local_id: Optional[str] = None
    created_at: str
    updated_at: str

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "ExpensePublic":
        return cls(
            id=item["expense_id"],
            amount=item["amount"],
            category=item["category"],
            payment_method=item["payment_method"],
            description=item.get("description", ""),
            occurred_at=item["occurred_at"],
            sync_status=item.get("sync_status", SyncStatus.SYNCED.value),
            local_id=item.get("local_id"),
            created_at=item["created_at"],
            updated_at=item["updated_at"],
        )


class Pagination(BaseModel):
    current: int
    pages: int
    total: int


class ExpenseList(BaseModel):
    expenses: List[ExpensePublic]
    pagination: Pagination


class SyncRequest(BaseModel):
    # Items are validated one by one so a bad candidate can't sink the batch.
    expenses: Optional[List[Any]] = None
