"""
API v1 router setup
Organized into: public, manage link (edit token), admin (admin key),
calendar feed (feed token) and cron (cron secret) routes
"""
from fastapi import APIRouter

from app.api.v1 import calendar, cron
from app.api.v1.public import appointments as public_appointments
from app.api.v1.admin import appointments as admin_appointments, schedule

api_v1_router = APIRouter()

# ============================================================================
# PUBLIC ROUTES (booking widget and manage link)
# ============================================================================
api_v1_router.include_router(public_appointments.router)

# ============================================================================
# ADMIN ROUTES (X-Admin-Key header required)
# ============================================================================
api_v1_router.include_router(admin_appointments.router)
api_v1_router.include_router(schedule.router)

# ============================================================================
# FEED AND CRON ROUTES (shared secrets)
# ============================================================================
api_v1_router.include_router(calendar.router)
api_v1_router.include_router(cron.router)


# ============================================================================
# ROOT ENDPOINT - API Info
# ============================================================================
@api_v1_router.get("/", tags=["Info"])
async def api_info():
    """API information and how each route group authenticates"""
    return {
        "version": "1.0",
        "authentication": {
            "public": "No authentication required",
            "manage": "Edit token from the confirmation email",
            "admin": "X-Admin-Key header",
            "calendar": "token query parameter (CALENDAR_TOKEN)",
            "cron": "Authorization: Bearer <CRON_SECRET>",
        }
    }
