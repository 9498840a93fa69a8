# =============================================================================
# workers/ - Celery Background Task Workers
# =============================================================================
# This package contains the Celery configuration and the scheduled promotion
# jobs (notifications and expiry).
#
# Components:
# - celery_app.py: Celery application configuration
# - tasks.py: Task definitions
# - config.py: Worker settings and beat schedule
#
# Usage:
#   # Start worker and scheduler
#   celery -A workers.celery_app worker --loglevel=info
#   celery -A workers.celery_app beat --loglevel=info
#
#   # Run a job now
#   from workers.tasks import process_promotion_notifications
#   result = process_promotion_notifications.delay()
# =============================================================================

from .celery_app import celery_app
from . import tasks

__all__ = [
    "celery_app",
    "tasks",
]
