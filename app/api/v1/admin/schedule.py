# ============================================================================
# FILE: app/api/v1/admin/schedule.py
# Opening hours and date overrides
# ============================================================================
from typing import List

from fastapi import APIRouter, Depends, Path, Query, Response

from app.api.dependencies import get_schedule_service, require_admin_key
from app.schemas.scheduling import DateOverrideEntry, DateOverrideInput, WeeklyHoursEntry
from app.services.availability.schedule_service import ScheduleService

router = APIRouter(
    prefix="/admin/schedule",
    tags=["admin-schedule"],
    dependencies=[Depends(require_admin_key)],
)


@router.get("/weekly-hours", response_model=List[WeeklyHoursEntry])
def get_weekly_hours(schedule: ScheduleService = Depends(get_schedule_service)):
    return schedule.get_weekly_hours()


@router.put("/weekly-hours", response_model=List[WeeklyHoursEntry])
def update_weekly_hours(
        entries: List[WeeklyHoursEntry],
        schedule: ScheduleService = Depends(get_schedule_service)
):
    """Update opening hours for the listed days"""
    return schedule.update_weekly_hours(entries)


@router.get("/overrides", response_model=List[DateOverrideEntry])
def list_overrides(
        upcoming_only: bool = Query(False, description="Hide overrides that have already ended"),
        schedule: ScheduleService = Depends(get_schedule_service)
):
    return schedule.list_overrides(upcoming_only=upcoming_only)


@router.post("/overrides", response_model=DateOverrideEntry, status_code=201)
def create_override(
        data: DateOverrideInput,
        schedule: ScheduleService = Depends(get_schedule_service)
):
    return schedule.create_override(data)


@router.put("/overrides/{override_id}", response_model=DateOverrideEntry)
def update_override(
        data: DateOverrideInput,
        override_id: int = Path(...),
        schedule: ScheduleService = Depends(get_schedule_service)
):
    return schedule.update_override(override_id, data)


@router.delete("/overrides/{override_id}", status_code=204)
def delete_override(
        override_id: int = Path(...),
        schedule: ScheduleService = Depends(get_schedule_service)
):
    schedule.delete_override(override_id)
    return Response(status_code=204)
