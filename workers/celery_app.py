# =============================================================================
# workers/celery_app.py - Celery Application Configuration
# =============================================================================
# Creates the Celery app that runs the scheduled promotion jobs.
#
# Usage:
#   # Start worker (scheduled queue included)
#   celery -A workers.celery_app worker -Q default,scheduled --loglevel=info
#
#   # Start the scheduler (hourly promotion jobs)
#   celery -A workers.celery_app beat --loglevel=info
# =============================================================================

import logging
import os
import sys

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from celery import Celery
from celery.signals import task_failure, task_postrun, task_prerun, worker_ready
from dotenv import load_dotenv

# Load environment variables before app.config reads them
load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application.

    Returns:
        Configured Celery app instance
    """
    redis_url = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    app = Celery(
        "braidmarket_worker",
        broker=redis_url,
        backend=redis_url,
        include=["workers.tasks"],
    )
    app.config_from_object("workers.config:CeleryConfig")

    # Never log credentials embedded in the URL
    logger.info(f"Celery app created with broker: {redis_url.split('@')[-1]}")
    return app


celery_app = create_celery_app()


@celery_app.task(bind=True, name="workers.healthcheck")
def healthcheck(self):
    """
    Verify a worker is consuming.

    Usage:
        from workers.celery_app import healthcheck
        healthcheck.delay().get(timeout=5)  # "OK"
    """
    return "OK"


# =============================================================================
# Celery Signals (Lifecycle Hooks)
# =============================================================================

@worker_ready.connect
def worker_ready_handler(sender=None, **extra):
    jobs = ", ".join(sorted(celery_app.conf.beat_schedule or {}))
    logger.info(f"Worker ready. Scheduled jobs: {jobs or 'none'}")


@task_prerun.connect
def task_prerun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None, **extra):
    logger.info(f"Task started: {task.name} [{task_id}]")


@task_postrun.connect
def task_postrun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None, retval=None, state=None, **extra):
    logger.info(f"Task completed: {task.name} [{task_id}] - State: {state}")


@task_failure.connect
def task_failure_handler(sender=None, task_id=None, exception=None, traceback=None, **extra):
    logger.error(f"Task failed: {sender.name} [{task_id}] - Error: {exception}")


if __name__ == "__main__":
    celery_app.start()
