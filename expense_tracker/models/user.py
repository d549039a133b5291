from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, EmailStr, Field, field_validator

from expense_tracker.models.expense import CamelModel


class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name must not be blank")
        return value

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.strip().lower()


class UserLogin(BaseModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.strip().lower()


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    currency: Optional[str] = Field(default=None, pattern=r"^[A-Za-z]{3}$")

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else value


class PasswordChange(CamelModel):
    current_password: str
    new_password: str = Field(min_length=6, max_length=72)


class UserInDB(BaseModel):
    user_id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    email: EmailStr
    password_hash: str
    currency: str = "USD"
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class UserPublic(BaseModel):
    id: str
    name: str
    email: EmailStr
    currency: str = "USD"
    created_at: str = ""

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "UserPublic":
        return cls(
            id=item["user_id"],
            name=item.get("name", ""),
            email=item["email"],
            currency=item.get("currency", "USD"),
            created_at=item.get("created_at", ""),
        )


class TokenResponse(BaseModel):
    message: str
    token: str
    token_type: str = "bearer"
    user: UserPublic
