# app/config/celery_config.py
"""Celery configuration, task routing and the reminder beat schedule"""
from celery import Celery
from celery.schedules import crontab
from kombu import Queue

from app.config.settings import get_settings

settings = get_settings()


def create_celery_app() -> Celery:
    """Create and configure Celery application"""

    celery_app = Celery(
        "showroom_scheduling",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
    )

    celery_app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        accept_content=["json"],
        result_serializer="json",
        # Beat crontabs are read in the showroom's wall clock
        timezone=settings.BUSINESS_TIMEZONE,
        enable_utc=True,

        # Task routing
        task_routes={
            "app.tasks.email_tasks.*": {"queue": "emails"},
            "app.tasks.reminder_tasks.*": {"queue": "maintenance"},
        },

        # Queue definitions
        task_queues=(
            Queue("emails", routing_key="emails"),
            Queue("maintenance", routing_key="maintenance"),
        ),

        # Worker settings
        worker_max_tasks_per_child=1000,
        worker_prefetch_multiplier=1,
        task_acks_late=True,

        # Retry settings
        task_retry_max_retries=3,
        task_retry_delay=60,  # 1 minute

        broker_connection_retry_on_startup=True,

        beat_schedule={
            "send-appointment-reminders": {
                "task": "app.tasks.reminder_tasks.run_reminder_pass",
                "schedule": crontab(hour=settings.REMINDER_PASS_CRON_HOUR, minute=0),
            },
        },
    )

    celery_app.autodiscover_tasks([
        "app.tasks.email_tasks",
        "app.tasks.reminder_tasks",
    ])

    return celery_app


# Create the Celery app instance
celery_app = create_celery_app()
