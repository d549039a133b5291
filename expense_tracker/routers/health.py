"""
Health Check Router
Liveness plus a DynamoDB connectivity check
"""
import logging
from datetime import datetime, timezone

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter

from expense_tracker.core.config import settings
from expense_tracker.db import dynamo

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
def health_check():
    """
    Health check endpoint.
    Returns API status.
    """
    return {
        "status": "ok",
        "service": settings.PROJECT_NAME,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/status")
def dynamo_status():
    """Check that both DynamoDB tables are reachable."""
    tables = {}
    for label, table in (("users", dynamo.users_table()), ("expenses", dynamo.expenses_table())):
        try:
            table.scan(Limit=1)
            tables[label] = {"name": table.name, "status": "accessible"}
        except (BotoCoreError, ClientError) as e:
            logger.error(f"DynamoDB check failed for {table.name}: {str(e)}")
            tables[label] = {"name": table.name, "status": "error"}

    connected = all(entry["status"] == "accessible" for entry in tables.values())
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "region": settings.DYNAMO_REGION,
        "tables": tables,
        "overall_status": "healthy" if connected else "degraded",
    }
