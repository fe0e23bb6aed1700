"""Admin management of the weekly hours policy and date overrides"""
import logging
from typing import List, Optional

from app.config.redis import RedisKeys
from app.core.exceptions import OverrideNotFoundError, ValidationError
from app.repositories.override_repository import DateOverrideRepository
from app.repositories.weekly_hours_repository import WeeklyHoursRepository
from app.schemas.scheduling import DateOverrideEntry, DateOverrideInput, PublicClosure, WeeklyHoursEntry
from app.services.cache.schedule_cache import ScheduleCache
from app.utils.clock import BusinessClock

logger = logging.getLogger(__name__)

SCHEDULE_CACHE_KEYS = (
    RedisKeys.WEEKLY_HOURS,
    RedisKeys.DATE_OVERRIDES,
    RedisKeys.PUBLIC_CLOSURES,
)


class ScheduleService:

    def __init__(
            self,
            weekly_hours_repo: WeeklyHoursRepository,
            override_repo: DateOverrideRepository,
            clock: BusinessClock,
            cache: Optional[ScheduleCache] = None
    ):
        self.weekly_hours_repo = weekly_hours_repo
        self.override_repo = override_repo
        self.clock = clock
        self.cache = cache

    # Weekly hours

    def get_weekly_hours(self) -> List[WeeklyHoursEntry]:
        return self.weekly_hours_repo.list_all()

    def update_weekly_hours(self, entries: List[WeeklyHoursEntry]) -> List[WeeklyHoursEntry]:
        """Replace the given days' hours; days not listed keep their settings"""
        days = [entry.day_of_week for entry in entries]
        if len(days) != len(set(days)):
            raise ValidationError("Each day_of_week may appear only once")

        # All days land in one commit or none do
        try:
            for entry in entries:
                self.weekly_hours_repo.stage(entry)
            self.weekly_hours_repo.commit()
        except Exception:
            self.weekly_hours_repo.rollback()
            logger.error(f"Weekly hours update for days {sorted(days)} rolled back")
            raise
        finally:
            self._invalidate()

        logger.info(f"Weekly hours updated for days {sorted(days)}")
        return self.weekly_hours_repo.list_all()

    # Overrides

    def list_overrides(self, upcoming_only: bool = False) -> List[DateOverrideEntry]:
        overrides = self.override_repo.list_all()
        if not upcoming_only:
            return overrides
        today = self.clock.today()
        return [o for o in overrides if o.is_recurring or (o.end_date or o.date) >= today]

    def create_override(self, data: DateOverrideInput) -> DateOverrideEntry:
        override = self.override_repo.create(data)
        self._invalidate()
        logger.info(f"Override {override.id} created for {override.date} ({override.reason or 'no reason'})")
        return override

    def update_override(self, override_id: int, data: DateOverrideInput) -> DateOverrideEntry:
        override = self.override_repo.update(override_id, data)
        if override is None:
            raise OverrideNotFoundError(f"Override {override_id} not found")
        self._invalidate()
        return override

    def delete_override(self, override_id: int) -> None:
        if not self.override_repo.delete(override_id):
            raise OverrideNotFoundError(f"Override {override_id} not found")
        self._invalidate()
        logger.info(f"Override {override_id} deleted")

    def get_public_closures(self) -> List[PublicClosure]:
        """Upcoming website-visible overrides, recurring ones included"""
        def load():
            today = self.clock.today()
            return [
                PublicClosure.from_override(o).model_dump(mode="json")
                for o in self.override_repo.list_public()
                if o.is_recurring or (o.end_date or o.date) >= today
            ]

        items = self.cache.get_or_load(RedisKeys.PUBLIC_CLOSURES, load) if self.cache else load()
        return [PublicClosure.model_validate(item) for item in items]

    def _invalidate(self) -> None:
        if self.cache is not None:
            self.cache.invalidate(*SCHEDULE_CACHE_KEYS)
