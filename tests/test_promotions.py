# =============================================================================
# tests/test_promotions.py - Promotion Display & Notification Tests
# =============================================================================

import json
from datetime import datetime, timezone

import pytest

from app.exceptions import NotFoundError, ValidationFailedError
from core.models.promotion import PromotionExtendRequest
from core.services.notification_service import (
    DEFAULT_CONFIG,
    NotificationService,
    optimization_suggestions,
    performance_metrics,
)
from core.services.promotion_service import PromotionService

ANA = "22222222-2222-2222-2222-222222222222"
BIA = "55555555-5555-5555-5555-555555555555"


@pytest.fixture
def listing(db):
    db.seed(
        "braiders",
        {"id": "b-ana", "user_id": ANA, "name": "Ana", "status": "approved", "district": "Lisboa",
         "specialties": ["Box Braids"], "average_rating": 4.0},
        {"id": "b-bia", "user_id": BIA, "name": "Bia", "status": "approved", "district": "Porto",
         "specialties": ["Twists"], "average_rating": 4.8},
        {"id": "b-new", "name": "Nova", "status": "pending", "district": "Lisboa"},
    )
    db.seed(
        "promotions",
        {"id": "promo-ana", "user_id": ANA, "type": "profile_highlight", "status": "active",
         "start_date": "2025-03-01T00:00:00Z", "end_date": "2025-03-31T00:00:00Z",
         "views_count": 4, "created_at": "2025-03-01T00:00:00Z"},
        {"id": "promo-old", "user_id": BIA, "type": "profile_highlight", "status": "active",
         "start_date": "2025-01-01T00:00:00Z", "end_date": "2025-02-01T00:00:00Z",
         "created_at": "2025-01-01T00:00:00Z"},
    )
    return db


# =============================================================================
# Display
# =============================================================================

class TestBraidersWithPromotions:
    """Tests for promoted-first listings."""

    def test_promoted_first_and_view_counted(self, listing, now):
        result = PromotionService.get_braiders_with_promotions(now=now)

        assert [b["id"] for b in result["promoted"]] == ["b-ana"]
        assert [b["id"] for b in result["regular"]] == ["b-bia"]
        assert result["total"] == 2
        # No counter RPC in the database: falls back to a direct update
        assert listing.rows("promotions", id="promo-ana")[0]["views_count"] == 5

    def test_limit_leaves_no_room_for_regular(self, listing, now):
        result = PromotionService.get_braiders_with_promotions(limit=1, now=now)

        assert result["total"] == 1
        assert result["regular"] == []

    def test_location_filter(self, listing, now):
        result = PromotionService.get_braiders_with_promotions(location="porto", now=now)

        assert result["promoted"] == []
        assert [b["name"] for b in result["regular"]] == ["Bia"]

    def test_counter_rpc_preferred(self, listing, now):
        listing.rpc_handlers["increment_promotion_counter"] = lambda params: None

        PromotionService.get_braiders_with_promotions(now=now)

        assert ("increment_promotion_counter", {"promotion_id": "promo-ana", "field_name": "views_count"}) in listing.rpc_calls
        assert listing.rows("promotions", id="promo-ana")[0]["views_count"] == 4


class TestHeroBanner:
    def test_newest_running_banner(self, db, now):
        db.seed(
            "promotions",
            {"id": "old", "type": "hero_banner", "status": "active", "created_at": "2025-03-01T00:00:00Z",
             "start_date": "2025-03-01T00:00:00Z", "end_date": "2025-03-20T00:00:00Z"},
            {"id": "new", "type": "hero_banner", "status": "active", "created_at": "2025-03-05T00:00:00Z",
             "start_date": "2025-03-05T00:00:00Z", "end_date": "2025-03-20T00:00:00Z"},
            {"id": "future", "type": "hero_banner", "status": "active", "created_at": "2025-03-10T00:00:00Z",
             "start_date": "2025-04-01T00:00:00Z", "end_date": "2025-04-20T00:00:00Z"},
        )

        assert PromotionService.get_active_hero_banner(now=now)["id"] == "new"

    def test_none_running(self, db, now):
        assert PromotionService.get_active_hero_banner(now=now) is None


class TestTracking:
    def test_click_on_missing_promotion(self, db):
        with pytest.raises(NotFoundError):
            PromotionService.track_click("ghost")

    def test_view_never_raises(self, db):
        PromotionService.track_view("ghost")


# =============================================================================
# Management
# =============================================================================

class TestAdminReview:
    def test_approve_keeps_metadata(self, db, admin_id):
        db.seed("promotions", {"id": "p1", "status": "pending", "metadata": {"stripe_session_id": "cs_1"}})

        promotion = PromotionService.admin_review(admin_id, "p1", "active", notes="ok")

        assert promotion["status"] == "active"
        assert promotion["metadata"]["stripe_session_id"] == "cs_1"
        assert promotion["metadata"]["reviewed_by"] == admin_id

    def test_only_active_or_rejected(self, db, admin_id):
        db.seed("promotions", {"id": "p1", "status": "pending"})

        with pytest.raises(ValidationFailedError):
            PromotionService.admin_review(admin_id, "p1", "expired")

    def test_missing_promotion(self, db, admin_id):
        with pytest.raises(NotFoundError):
            PromotionService.admin_review(admin_id, "ghost", "rejected")


class TestExpirePromotions:
    def test_expires_only_ended(self, db, now):
        db.seed(
            "promotions",
            {"id": "ended", "status": "active", "end_date": "2025-03-11T23:59:59Z"},
            {"id": "running", "status": "active", "end_date": "2025-03-12T12:00:00Z"},
            {"id": "pending", "status": "pending", "end_date": "2025-01-01T00:00:00Z"},
        )

        expired = PromotionService.expire_promotions(now)

        assert expired == ["ended"]
        assert db.rows("promotions", id="ended")[0]["status"] == "expired"
        assert db.rows("promotions", id="running")[0]["status"] == "active"
        assert db.rows("promotions", id="pending")[0]["status"] == "pending"


class TestExtendPromotion:
    """Tests for PromotionService.extend_promotion."""

    @pytest.fixture
    def running(self, db):
        return db.seed("promotions", {
            "id": "p1",
            "user_id": ANA,
            "status": "active",
            "end_date": "2025-03-20T00:00:00Z",
            "metadata": {"stripe_session_id": "cs_1", "extension_days": 5},
        })[0]

    def test_extends_and_accumulates_days(self, running, now):
        promotion = PromotionService.extend_promotion(
            ANA, PromotionExtendRequest(promotion_id="p1", additional_days=10, package_id="pkg"), now=now
        )

        assert promotion["end_date"].startswith("2025-03-30T00:00:00")
        assert promotion["metadata"]["extension_days"] == 15
        assert promotion["metadata"]["extended"] is True
        assert promotion["metadata"]["extended_with_package"] == "pkg"
        assert promotion["metadata"]["stripe_session_id"] == "cs_1"

    def test_other_users_promotion(self, running, now):
        with pytest.raises(NotFoundError):
            PromotionService.extend_promotion(BIA, PromotionExtendRequest(promotion_id="p1", additional_days=3), now=now)

    def test_ended_promotion_rejected(self, running, now):
        running["end_date"] = "2025-03-11T00:00:00Z"

        with pytest.raises(ValidationFailedError):
            PromotionService.extend_promotion(ANA, PromotionExtendRequest(promotion_id="p1", additional_days=3), now=now)

    def test_pending_promotion_rejected(self, running, now):
        running["status"] = "pending"

        with pytest.raises(ValidationFailedError):
            PromotionService.extend_promotion(ANA, PromotionExtendRequest(promotion_id="p1", additional_days=3), now=now)


# =============================================================================
# Notifications
# =============================================================================

class TestPerformanceMetrics:
    def test_ctr_and_roi(self):
        ctr, roi = performance_metrics({
            "views_count": 200, "clicks_count": 10, "investment_amount": 50, "revenue_generated": 75,
        })
        assert ctr == 5.0
        assert roi == 50.0

    def test_no_views_no_investment(self):
        assert performance_metrics({}) == (0.0, 0.0)

    def test_suggestions(self):
        assert len(optimization_suggestions(1.0, 50.0, DEFAULT_CONFIG)) == 2
        assert optimization_suggestions(5.0, 50.0, DEFAULT_CONFIG) == ["Sua promoção está dentro dos parâmetros esperados"]


class TestNotificationSteps:
    """Tests for each notification step."""

    def test_expiring_sent_once_per_day(self, db, now, redis_mock):
        # Arrange
        db.rpc_handlers["get_expiring_promotions"] = lambda params: [
            {"id": "p1", "user_id": ANA, "title": "Destaque", "type": "profile_highlight", "days_left": 2},
        ]

        # Act
        first = NotificationService.process_expiring(DEFAULT_CONFIG, now)
        second = NotificationService.process_expiring(DEFAULT_CONFIG, now)

        # Assert
        assert (first, second) == (1, 0)
        notification = db.rows("notifications", user_id=ANA)[0]
        assert notification["type"] == "warning"
        assert notification["metadata"]["original_type"] == "expiring"
        assert notification["action_url"] == "/braider/promotions?highlight=p1"
        assert json.loads(redis_mock.publish.call_args.args[1])["room"] == f"user:{ANA}"

    def test_expired_is_important(self, db, now):
        db.seed("promotions", {"id": "p1", "user_id": ANA, "title": "Destaque", "status": "active",
                               "end_date": "2025-03-11T00:00:00Z", "views_count": 40})

        assert NotificationService.process_expired(DEFAULT_CONFIG, now) == 1

        notification = db.rows("notifications", user_id=ANA)[0]
        assert notification["is_important"] is True
        assert notification["metadata"]["final_stats"]["views"] == 40

    def test_low_performance(self, db, now):
        db.seed(
            "promotions",
            {"id": "weak", "user_id": ANA, "title": "Fraca", "status": "active", "views_count": 200,
             "clicks_count": 1, "created_at": "2025-03-10T00:00:00Z"},
            {"id": "few-views", "user_id": BIA, "status": "active", "views_count": 50,
             "clicks_count": 0, "created_at": "2025-03-10T00:00:00Z"},
        )

        assert NotificationService.process_low_performance(DEFAULT_CONFIG, now) == 1
        assert db.rows("notifications", user_id=ANA)[0]["metadata"]["current_ctr"] == 0.5

    def test_renewal_window(self, db, now):
        db.seed(
            "promotions",
            {"id": "recent", "user_id": ANA, "title": "A", "status": "expired", "end_date": "2025-03-10T12:00:00Z"},
            {"id": "yesterday", "user_id": BIA, "title": "B", "status": "expired", "end_date": "2025-03-11T20:00:00Z"},
        )

        assert NotificationService.process_renewal_reminders(DEFAULT_CONFIG, now) == 1
        assert db.rows("notifications", user_id=ANA)[0]["metadata"]["renewal_discount"] == 10

    def test_weekly_report_only_on_monday(self, db, now):
        db.seed("promotions", {"user_id": ANA, "status": "active", "views_count": 10,
                               "created_at": "2025-03-08T00:00:00Z"})
        monday = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)

        assert NotificationService.process_weekly_reports(DEFAULT_CONFIG, now) == 0
        assert NotificationService.process_weekly_reports(DEFAULT_CONFIG, monday) == 1
        summary = db.rows("notifications", user_id=ANA)[0]["metadata"]["summary"]
        assert summary["total_views"] == 10
        assert summary["active_promotions"] == 1


class TestProcessAll:
    def test_failing_step_does_not_stop_others(self, db, now):
        # get_expiring_promotions is not registered, so that step fails
        db.seed("promotions", {"id": "p1", "user_id": ANA, "title": "X", "status": "active",
                               "end_date": "2025-03-11T00:00:00Z"})

        results = NotificationService.process_all(now)

        assert results["expiring"] == 0
        assert results["expired"] == 1
        assert set(results) == {"expiring", "expired", "low_performance", "renewal_reminder", "weekly_report"}

    def test_expiry_job_then_notification_job(self, db, now):
        # The hourly expiry job runs first and flips the status
        db.seed("promotions", {"id": "p1", "user_id": ANA, "title": "Destaque", "status": "active",
                               "end_date": "2025-03-12T09:30:00Z"})
        PromotionService.expire_promotions(now)

        first = NotificationService.process_all(now)
        second = NotificationService.process_all(now)

        assert first["expired"] == 1
        assert second["expired"] == 0
        notifications = db.rows("notifications", user_id=ANA)
        assert [n["metadata"]["original_type"] for n in notifications] == ["expired"]

    def test_old_expiries_are_not_announced(self, db, now):
        db.seed("promotions", {"id": "p1", "user_id": ANA, "status": "expired", "end_date": "2025-02-01T00:00:00Z"})

        assert NotificationService.process_expired(DEFAULT_CONFIG, now) == 0

    def test_malformed_row_counts_as_zero(self, db, now):
        # No user_id: the low performance step raises KeyError
        db.seed(
            "promotions",
            {"id": "weak", "status": "active", "views_count": 500, "clicks_count": 0,
             "created_at": "2025-03-11T00:00:00Z"},
            {"id": "p1", "user_id": BIA, "title": "X", "status": "active", "end_date": "2025-03-12T08:00:00Z"},
        )

        results = NotificationService.process_all(now)

        assert results["low_performance"] == 0
        assert results["expired"] == 1

    def test_config_overrides(self, db):
        db.seed("notification_settings", {"type": "promotion_notifications", "config": {"expiration_days_before": 5}})

        config = NotificationService.get_config()

        assert config["expiration_days_before"] == 5
        assert config["performance_threshold_ctr"] == 2.0
