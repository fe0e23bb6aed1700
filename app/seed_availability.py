# ===== seed_availability.py =====
"""Seed the default weekly opening hours (safe to run repeatedly)"""
import logging

from app.config.database import SessionLocal
from app.config.settings import get_settings
from app.repositories.weekly_hours_repository import WeeklyHoursRepository
from app.utils.my_logging import setup_logging

logger = logging.getLogger(__name__)


def seed_availability() -> int:
    settings = get_settings()
    db = SessionLocal()

    try:
        added = WeeklyHoursRepository(db).seed_defaults(settings.DEFAULT_SLOT_DURATION_MINUTES)
        if added:
            logger.info(f"✅ Seeded {added} weekly opening-hours rows")
        else:
            logger.info("Weekly opening hours already configured, nothing to seed")
        return added

    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error seeding availability: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    setup_logging()
    seed_availability()
