import logging

from fastapi import APIRouter, Depends, status

from expense_tracker.core.errors import AuthError, NotFoundError, StoreError, ValidationError
from expense_tracker.core.security import (
    create_access_token,
    get_current_user_id,
    get_password_hash,
    verify_password,
)
from expense_tracker.db import dynamo
from expense_tracker.models.user import (
    PasswordChange,
    ProfileUpdate,
    TokenResponse,
    UserCreate,
    UserInDB,
    UserLogin,
    UserPublic,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def _load_user(user_id: str) -> dict:
    user = dynamo.get_user_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(user: UserCreate):
    # Check if user already exists
    if dynamo.get_user_by_email(user.email):
        raise ValidationError("Email already exists")

    user_db = UserInDB(
        name=user.name,
        email=user.email,
        password_hash=get_password_hash(user.password),
    )
    if not dynamo.put_user(user_db.model_dump()):
        raise StoreError("Error saving user")

    logger.info(f"Registered user {user_db.user_id}")
    return TokenResponse(
        message="User registered successfully",
        token=create_access_token(data={"sub": user_db.user_id}),
        user=UserPublic.from_item(user_db.model_dump()),
    )


@router.post("/login", response_model=TokenResponse)
def login(login_data: UserLogin):
    logger.info(f"Login attempt for email: {login_data.email}")
    user = dynamo.get_user_by_email(login_data.email)

    if not user or not verify_password(login_data.password, user["password_hash"]):
        logger.warning(f"Failed login for email: {login_data.email}")
        raise AuthError("Invalid credentials")

    logger.info(f"Login successful for user: {user['user_id']}")
    return TokenResponse(
        message="Login successful",
        token=create_access_token(data={"sub": user["user_id"]}),
        user=UserPublic.from_item(user),
    )


@router.get("/me", response_model=UserPublic)
def get_current_user(user_id: str = Depends(get_current_user_id)):
    """Get current user profile"""
    return UserPublic.from_item(_load_user(user_id))


@router.put("/profile", response_model=UserPublic)
def update_profile(update: ProfileUpdate, user_id: str = Depends(get_current_user_id)):
    changes = update.model_dump(exclude_none=True)
    if "name" in changes:
        changes["name"] = changes["name"].strip()
        if not changes["name"]:
            raise ValidationError("Name must not be blank")
    if not changes:
        return UserPublic.from_item(_load_user(user_id))

    updated = dynamo.update_user(user_id, changes)
    if not updated:
        raise NotFoundError("User not found")
    return UserPublic.from_item(updated)


@router.put("/change-password")
def change_password(change: PasswordChange, user_id: str = Depends(get_current_user_id)):
    user = _load_user(user_id)
    if not verify_password(change.current_password, user["password_hash"]):
        raise ValidationError("Current password is incorrect")

    dynamo.update_user(user_id, {"password_hash": get_password_hash(change.new_password)})
    logger.info(f"Password changed for user {user_id}")
    return {"message": "Password changed successfully"}
