"""
Simple health check endpoint.
"""
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, text

from hookwarden.core.config import settings
from hookwarden.core.database import get_session
from hookwarden.core.logging_config import log_error
from hookwarden.core.time_utils import utc_now

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=Dict[str, Any],
    responses={
        500: {"description": "Internal server error"},
    }
)
async def health_check(session: Annotated[Session, Depends(get_session)]):
    """
    Health check with database status.

    Returns degraded status if database is unreachable but service is running.
    """
    try:
        db_status = "connected"
        try:
            session.exec(text("SELECT 1")).first()
        except SQLAlchemyError as e:
            db_status = f"disconnected: {str(e)}"

        return {
            "status": "healthy" if db_status == "connected" else "degraded",
            "timestamp": utc_now().isoformat(),
            "service": settings.app_name,
            "version": settings.app_version,
            "database": db_status,
            "transport": "celery" if settings.use_celery_transport else "inapp",
        }
    except Exception as e:
        log_error(e, request_id=None)
        raise HTTPException(status_code=500, detail="Health check failed")
