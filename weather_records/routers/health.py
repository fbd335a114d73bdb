import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from weather_records.core.db import get_db

router = APIRouter(tags=["Health"])

STARTED_AT = time.monotonic()


@router.get(
    "/health",
    summary="Service health check",
    description=(
        "Liveness probe. Returns immediately without authentication. "
        "This endpoint **does not** verify database connectivity."
    ),
    response_description="Service status",
)
def health():
    """
    Basic health check for the API.

    **Returns:**
    - `status`: Always `OK` if the service is running
    - `timestamp`: Current server time (UTC, ISO 8601)
    - `uptime`: Seconds since the process imported the application
    """
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - STARTED_AT, 3),
    }


@router.get(
    "/health/db",
    summary="Database health check",
    description=(
        "Checks whether the API can connect to PostgreSQL by executing a simple query (`SELECT 1`). "
        "If this endpoint fails, it usually indicates that the database is down or the "
        "`DATABASE_URL` configuration is incorrect."
    ),
    response_description="Database connection status",
)
async def health_db(db: AsyncSession = Depends(get_db)):
    await db.execute(text("SELECT 1"))
    return {"status": "OK", "db": "ok"}
