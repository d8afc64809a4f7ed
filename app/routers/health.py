# app/routers/health.py
"""
Liveness/readiness check. Open to unauthenticated callers.
Returns 200 with the database state; "degraded" when SELECT 1 fails.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database import get_db
from app.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db)):
    result = {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": "unknown",
    }

    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except SQLAlchemyError as e:
        logger.warning(f"[HEALTH] Database check failed: {e}")
        result["database"] = "error"
        result["status"] = "degraded"

    return result
