# =============================================================================
# workers/tasks.py - Celery Task Definitions
# =============================================================================
# Defines the scheduled promotion jobs.
#
# Tasks:
# - process_promotion_notifications: expiring / expired / low performance /
#   renewal reminders / weekly reports
# - expire_promotions: flip finished promotions to expired
# =============================================================================

import logging
from typing import Any
from celery import shared_task, current_task

logger = logging.getLogger(__name__)


# =============================================================================
# Task State Updates
# =============================================================================

def update_progress(current: int, total: int, message: str = "Processing..."):
    """
    Update task progress for polling.

    Args:
        current: Current step number
        total: Total steps
        message: Status message
    """
    if current_task:
        current_task.update_state(
            state="PROGRESS",
            meta={
                "current": current,
                "total": total,
                "percent": int((current / total) * 100),
                "message": message,
            }
        )


# =============================================================================
# Promotion Notifications
# =============================================================================

@shared_task(bind=True, name="workers.tasks.process_promotion_notifications")
def process_promotion_notifications(self) -> dict[str, Any]:
    """
    Run every promotion notification step once.

    Each step is idempotent for its window, so running this hourly sends
    each notice at most once.

    Returns:
        Dict with:
        - success: bool
        - results: counts per step
        - total: notifications sent
    """
    logger.info("Processing promotion notifications")

    try:
        update_progress(1, 2, "Processing notifications...")

        from core.services.notification_service import NotificationService

        results = NotificationService.process_all()

        update_progress(2, 2, "Done!")
        total = sum(results.values())
        logger.info(f"Promotion notifications sent: {total} {results}")

        return {
            "success": True,
            "results": results,
            "total": total,
        }

    except Exception as e:
        logger.exception(f"Notification processing failed: {e}")
        return {
            "success": False,
            "error": str(e),
        }


# =============================================================================
# Promotion Expiry
# =============================================================================

@shared_task(bind=True, name="workers.tasks.expire_promotions")
def expire_promotions(self) -> dict[str, Any]:
    """
    Mark active promotions whose end_date has passed as expired.

    Returns:
        Dict with success, expired ids and count
    """
    try:
        from core.services.promotion_service import PromotionService

        expired = PromotionService.expire_promotions()
        logger.info(f"Expired {len(expired)} promotions")

        return {
            "success": True,
            "expired": expired,
            "count": len(expired),
        }

    except Exception as e:
        logger.exception(f"Promotion expiry failed: {e}")
        return {"success": False, "error": str(e)}
