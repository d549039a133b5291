"""
Error taxonomy shared by the services and the HTTP layer.

Services raise these; ``register_error_handlers`` turns them into JSON
responses so routers don't have to translate every failure by hand.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ExpenseTrackerError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_detail = "Internal server error"

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.public_detail)
        self.detail = detail or self.public_detail


class ValidationError(ExpenseTrackerError):
    """Missing or invalid input. The detail is safe to show to the caller."""

    status_code = status.HTTP_400_BAD_REQUEST
    public_detail = "Invalid request"


class NotFoundError(ExpenseTrackerError):
    status_code = status.HTTP_404_NOT_FOUND
    public_detail = "Not found"


class AuthError(ExpenseTrackerError):
    status_code = status.HTTP_401_UNAUTHORIZED
    public_detail = "Could not validate credentials"


class StoreError(ExpenseTrackerError):
    """The record store failed. The detail is logged, never returned."""


def _response_detail(exc: ExpenseTrackerError) -> str:
    if isinstance(exc, StoreError):
        return exc.public_detail
    return exc.detail


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ExpenseTrackerError)
    async def handle_expense_tracker_error(request: Request, exc: ExpenseTrackerError):
        if isinstance(exc, StoreError):
            logger.error(f"Store failure on {request.method} {request.url.path}: {exc.detail}")
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": _response_detail(exc)},
            headers=headers,
        )
