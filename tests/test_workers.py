# =============================================================================
# tests/test_workers.py - Scheduled Task Tests
# =============================================================================
# Tasks are called directly (no broker); progress updates are patched out.
# =============================================================================

from unittest.mock import patch

import pytest

from lib.supabase_client import SupabaseClientError
from workers.config import CeleryConfig
from workers.tasks import expire_promotions, process_promotion_notifications


@pytest.fixture(autouse=True)
def no_progress():
    with patch("workers.tasks.update_progress"):
        yield


class TestSchedule:
    def test_both_jobs_scheduled_on_their_queue(self):
        tasks = {entry["task"] for entry in CeleryConfig.beat_schedule.values()}

        assert tasks == {"workers.tasks.expire_promotions", "workers.tasks.process_promotion_notifications"}
        assert all(route["queue"] == "scheduled" for route in CeleryConfig.task_routes.values())


class TestTasks:
    def test_notifications_totals(self):
        with patch(
            "core.services.notification_service.NotificationService.process_all",
            return_value={"expiring": 2, "expired": 1},
        ):
            result = process_promotion_notifications()

        assert result == {"success": True, "results": {"expiring": 2, "expired": 1}, "total": 3}

    def test_notifications_failure_is_reported(self):
        with patch(
            "core.services.notification_service.NotificationService.process_all",
            side_effect=SupabaseClientError("down"),
        ):
            result = process_promotion_notifications()

        assert result["success"] is False

    def test_expire(self, db):
        db.seed("promotions", {"id": "p1", "status": "active", "end_date": "2020-01-01T00:00:00Z"})

        result = expire_promotions()

        assert result == {"success": True, "expired": ["p1"], "count": 1}
