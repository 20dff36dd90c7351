import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from brokerapi.config import settings
from brokerapi.database.session import get_db
from brokerapi.schemas.health import HealthCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthCheckResponse)
def health_check(db: Session = Depends(get_db)) -> HealthCheckResponse:
    """Health check endpoint (DB 연결 포함)."""
    checked_at = datetime.now(timezone.utc)
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check database probe failed: {str(e)}")
        return HealthCheckResponse(
            status="degraded",
            database=False,
            environment=settings.ENVIRONMENT,
            checked_at=checked_at,
            error=e.__class__.__name__,
        )

    return HealthCheckResponse(
        environment=settings.ENVIRONMENT, checked_at=checked_at
    )
