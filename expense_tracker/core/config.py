from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App settings
    PROJECT_NAME: str = "ExpenseTracker"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")
    CORS_ORIGINS: List[str] = Field(default=["http://localhost:3000", "http://localhost:8081"])

    # DynamoDB
    DYNAMO_REGION: str = Field(default="eu-west-1")
    DYNAMO_ENDPOINT_URL: Optional[str] = Field(default=None)  # DynamoDB Local
    DYNAMO_TABLE_USERS: str = Field(default="expense-tracker-users")
    DYNAMO_TABLE_EXPENSES: str = Field(default="expense-tracker-expenses")

    # JWT Authentication
    JWT_SECRET: str = Field(default="change-me-in-production-3f9c1e7a0b5d4c2e8f6a9b1d7c3e5f0a")
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30  # 30 days

    # Statistics / sync
    TIMEZONE: str = Field(default="UTC")
    SYNC_MAX_BATCH: int = Field(default=500)


settings = Settings()
