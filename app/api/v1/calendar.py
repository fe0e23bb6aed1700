# app/api/v1/calendar.py
from datetime import timedelta

from fastapi import APIRouter, Depends, Query, Response

from app.api.dependencies import get_calendar_feed_service, get_clock, require_calendar_token
from app.config.settings import Settings, get_settings
from app.schemas.scheduling import AppointmentStatus
from app.services.calendar.ics_feed_service import CalendarFeedService
from app.utils.clock import BusinessClock

router = APIRouter(prefix="/calendar", tags=["calendar"])


@router.get("/appointments.ics", dependencies=[Depends(require_calendar_token)])
def appointments_feed(
        status: AppointmentStatus = Query(AppointmentStatus.CONFIRMED),
        feed: CalendarFeedService = Depends(get_calendar_feed_service),
        clock: BusinessClock = Depends(get_clock),
        settings: Settings = Depends(get_settings)
):
    """Subscribable iCalendar feed for the staff calendar app"""
    today = clock.today()
    content = feed.generate_feed(
        today - timedelta(days=settings.CALENDAR_FEED_DAYS_BACK),
        today + timedelta(days=settings.CALENDAR_FEED_DAYS_AHEAD),
        status=status.value,
    )
    return Response(
        content=content,
        media_type="text/calendar; charset=utf-8",
        headers={
            "Content-Disposition": 'inline; filename="appointments.ics"',
            "Cache-Control": "no-cache, no-store, must-revalidate",
        },
    )
