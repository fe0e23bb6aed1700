"""Health checks and monitoring endpoints"""
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.config.redis import get_redis
from app.config.settings import get_settings

health_router = APIRouter()


@health_router.get("/")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "showroom-scheduling"}


@health_router.get("/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """Detailed health check with dependencies"""
    checks = {
        "api": "healthy",
        "database": "unknown",
        "redis": "unknown",
        "overall": "unknown"
    }

    # Check database
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        checks["database"] = f"unhealthy: {str(e)}"

    # Redis backs the booking locks and schedule cache; skip when neither uses it
    settings = get_settings()
    if settings.BOOKING_LOCK_BACKEND == "redis" or settings.SCHEDULE_CACHE_ENABLED:
        try:
            redis_client = await get_redis()
            await redis_client.ping()
            checks["redis"] = "healthy"
        except Exception as e:
            checks["redis"] = f"unhealthy: {str(e)}"
    else:
        checks["redis"] = "not used"

    # Overall status
    if all(status == "healthy" for key, status in checks.items() if key != "overall" and status not in ("unknown", "not used")):
        checks["overall"] = "healthy"
    else:
        checks["overall"] = "degraded"

    return checks
