# backend/therasoul/routes/monitoring.py
"""Health and Prometheus endpoints."""

import logging

from fastapi import APIRouter, Response
from sqlalchemy import text

from ..core.config import settings
from ..database import engine
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

router = APIRouter(tags=["monitoring"])


@router.get("/health")
def health():
    """Liveness plus a database round trip."""
    database_ok = True
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        database_ok = False
        logger.error(f"Health check database probe failed: {str(e)}")
    return {
        "status": "healthy" if database_ok else "degraded",
        "environment": settings.environment,
        "database": "ok" if database_ok else "unavailable",
    }


@router.get("/metrics")
def metrics():
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )
