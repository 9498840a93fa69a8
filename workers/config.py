# =============================================================================
# workers/config.py - Celery Worker Configuration
# =============================================================================
# Settings specific to Celery workers, including the beat schedule for the
# hourly promotion jobs.
# =============================================================================

from celery.schedules import crontab

from app.config import settings


class CeleryConfig:
    """
    Celery configuration settings.

    These are applied to the Celery app via app.config_from_object().
    """

    # -------------------------------------------------------------------------
    # Broker Settings (Redis)
    # -------------------------------------------------------------------------

    broker_url = settings.REDIS_URL
    result_backend = settings.REDIS_URL

    # -------------------------------------------------------------------------
    # Task Settings
    # -------------------------------------------------------------------------

    # Acknowledge tasks after they complete (not before)
    task_acks_late = True

    worker_prefetch_multiplier = 1

    # Task results expire after 1 hour
    result_expires = 3600

    # Default task timeout (5 minutes)
    task_time_limit = 300
    task_soft_time_limit = 240

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    task_serializer = "json"
    result_serializer = "json"
    accept_content = ["json"]

    # -------------------------------------------------------------------------
    # Task Routing
    # -------------------------------------------------------------------------

    task_queues = {
        "default": {
            "exchange": "default",
            "routing_key": "default",
        },
        "scheduled": {
            "exchange": "scheduled",
            "routing_key": "scheduled",
        },
    }

    # Periodic jobs get their own queue so they never wait behind ad-hoc work
    task_routes = {
        "workers.tasks.process_promotion_notifications": {"queue": "scheduled"},
        "workers.tasks.expire_promotions": {"queue": "scheduled"},
    }

    task_default_queue = "default"

    # -------------------------------------------------------------------------
    # Retry Settings
    # -------------------------------------------------------------------------

    task_annotations = {
        "*": {
            "max_retries": 3,
            "default_retry_delay": 60,
        }
    }

    # -------------------------------------------------------------------------
    # Beat Schedule
    # -------------------------------------------------------------------------

    beat_schedule = {
        "expire-promotions-hourly": {
            "task": "workers.tasks.expire_promotions",
            "schedule": crontab(minute=0),
        },
        "promotion-notifications-hourly": {
            "task": "workers.tasks.process_promotion_notifications",
            "schedule": crontab(minute=5),
        },
    }

    # -------------------------------------------------------------------------
    # Monitoring
    # -------------------------------------------------------------------------

    worker_send_task_events = True
    task_send_sent_event = True

    # -------------------------------------------------------------------------
    # Timezone
    # -------------------------------------------------------------------------

    timezone = "UTC"
    enable_utc = True
