# insights/routes/health.py
"""
Health check endpoints with database pool and classifier status.
"""

import time

from fastapi import APIRouter

from insights.config import settings
from insights.db.pool import db_health_check
from insights.infrastructure.observability.logging import log_health_check
from insights.services.reason_classification_service import reason_classifier

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "helpdesk-insights"}


@router.get("/readyz")
async def readyz():
    """
    Readiness check. The database is required; reason classification is
    optional because reports degrade to ungrouped reasons without it.
    """
    checks = {}

    t0 = time.time()
    db_health = await db_health_check()
    is_healthy = bool(db_health.get("healthy", False))
    latency_ms = round((time.time() - t0) * 1000, 1)

    checks["database"] = {"ok": is_healthy, "latency_ms": latency_ms}
    if "pool_stats" in db_health:
        checks["database"].update(db_health["pool_stats"])
    if not is_healthy:
        checks["database"]["error"] = db_health.get("error", "Database unhealthy")
    log_health_check("database", is_healthy, latency_ms, db_health.get("error"))

    checks["reason_classification"] = {
        "ok": True,
        "backend": reason_classifier.name,
        "degraded": reason_classifier.name == "disabled",
    }

    checks["configuration"] = {"ok": True, "environment": settings.environment}

    return {"overall_ok": is_healthy, "checks": checks, "timestamp": time.time()}
