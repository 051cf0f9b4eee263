from fastapi import APIRouter

from marketplace.config import settings
from marketplace.core.observability import uptime_seconds
from marketplace.core.timeutil import utc_now_iso

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", summary="Healthcheck")
def healthcheck():
    """Liveness probe. Keep payload stable for monitoring systems."""
    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.environment,
        "time": utc_now_iso(),
        "uptime_seconds": round(uptime_seconds(), 2),
        "version": settings.build_version,
    }
