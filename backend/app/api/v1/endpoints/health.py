"""
Health Check Endpoints

Endpoints:
- /health/live  - Basic liveness (app is running)
- /health/ready - Readiness check (database reachable, export table present)
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
from typing import Dict, Any
import time

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.logging_config import logger
from app.models.model_export import ModelExport


router = APIRouter(prefix="/health", tags=["Health Checks"])


async def check_database(db: AsyncSession) -> Dict[str, Any]:
    """Check database connectivity and that the export table is usable"""
    start = time.time()
    try:
        await db.execute(text("SELECT 1"))

        try:
            await db.execute(text(f"SELECT COUNT(*) FROM {ModelExport.__tablename__}"))
            tables_ok = True
        except Exception:
            tables_ok = False

        latency = (time.time() - start) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(latency, 2),
            "connection": "ok",
            "tables_ready": tables_ok,
            "message": "Database connection successful"
        }
    except Exception as e:
        latency = (time.time() - start) * 1000
        logger.error(f"[HealthCheck] Database check failed: {e}")
        return {
            "status": "unhealthy",
            "latency_ms": round(latency, 2),
            "connection": "failed",
            "tables_ready": False,
            "message": "Database connection failed"
        }


@router.get("/live")
async def liveness_check():
    """
    Liveness probe - indicates the application is running.
    """
    return {
        "status": "alive",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "app": settings.APP_NAME,
        "version": "1.0.0"
    }


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """
    Readiness probe - 200 only if the database and export table are usable,
    503 otherwise.
    """
    db_check = await check_database(db)
    is_ready = db_check.get("status") == "healthy" and db_check.get("tables_ready", False)

    response = {
        "status": "ready" if is_ready else "not_ready",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "database": db_check,
        }
    }

    if not is_ready:
        logger.warning(f"[HealthCheck] Readiness check failed: {response}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response
        )

    return response
