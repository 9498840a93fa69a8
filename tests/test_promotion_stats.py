# =============================================================================
# tests/test_promotion_stats.py - Promotion Analytics & Revenue Tests
# =============================================================================

import pytest

from core.services.promotion_stats_service import PromotionStatsService

ANA = "22222222-2222-2222-2222-222222222222"


@pytest.fixture
def promotions(db):
    return db.seed(
        "promotions",
        {"id": "hero", "user_id": ANA, "type": "hero_banner", "status": "active",
         "end_date": "2025-03-15T00:00:00Z", "views_count": 100, "clicks_count": 5, "contacts_count": 2,
         "created_at": "2025-03-01T00:00:00Z"},
        {"id": "highlight", "user_id": ANA, "type": "profile_highlight", "status": "expired",
         "end_date": "2025-02-01T00:00:00Z", "views_count": 20, "clicks_count": 1,
         "created_at": "2025-01-20T00:00:00Z"},
        {"id": "waiting", "user_id": "someone-else", "type": "profile_highlight", "status": "pending",
         "end_date": "2025-04-30T00:00:00Z", "created_at": "2025-03-11T00:00:00Z"},
    )


class TestAnalyticsSummary:
    def test_own_promotions(self, promotions):
        summary = PromotionStatsService.analytics_summary(ANA)

        assert summary == {
            "total_views": 120,
            "total_clicks": 6,
            "total_contacts": 2,
            "total_promotions": 2,
            "active_promotions": 1,
        }

    def test_admin_sees_everything(self, promotions, admin_id):
        assert PromotionStatsService.analytics_summary(admin_id, is_admin=True)["total_promotions"] == 3


class TestAdminStats:
    """Tests for the admin promotions dashboard."""

    def test_computed_when_function_missing(self, promotions, now):
        # Act: get_promotion_system_stats is not installed
        result = PromotionStatsService.admin_stats(now)

        # Assert
        stats = result["stats"]
        assert stats["total_promotions"] == 3
        assert stats["active_promotions"] == 1
        assert stats["ctr_percentage"] == 5.0
        assert [p["id"] for p in result["pending_promotions"]] == ["waiting"]
        assert [p["id"] for p in result["expiring_promotions"]] == ["hero"]
        assert [p["id"] for p in result["top_performers"]] == ["hero", "highlight"]
        assert result["stats_by_type"]["profile_highlight"] == {"expired": 1, "pending": 1}
        assert result["growth"] == {"recent_count": 2, "previous_count": 1, "growth_percentage": 100.0}

    def test_database_function_preferred(self, db, promotions, now):
        db.rpc_handlers["get_promotion_system_stats"] = lambda params: {"total_promotions": 42}

        result = PromotionStatsService.admin_stats(now)

        assert result["stats"] == {"total_promotions": 42}


class TestRevenueReport:
    """Tests for PromotionStatsService.revenue_report."""

    @pytest.fixture
    def transactions(self, db, promotions, customer_id):
        db.seed("users", {"id": customer_id, "name": "Maria"})
        return db.seed(
            "promotion_transactions",
            {"id": "t1", "promotion_id": "hero", "user_id": customer_id, "amount": 50, "status": "completed",
             "created_at": "2025-03-12T08:00:00Z"},
            {"id": "t2", "user_id": ANA, "amount": 30, "status": "completed",
             "metadata": {"combo_id": "combo-1"}, "created_at": "2025-03-01T00:00:00Z"},
            {"id": "t3", "promotion_id": "highlight", "user_id": ANA, "amount": "20.00", "status": "completed",
             "created_at": "2025-01-20T00:00:00Z"},
            {"id": "t4", "promotion_id": "waiting", "amount": 999, "status": "pending",
             "created_at": "2025-03-11T00:00:00Z"},
        )

    def test_periods_and_growth(self, transactions, now):
        report = PromotionStatsService.revenue_report(now)

        assert report["total_revenue"] == 100.0
        assert report["total_transactions"] == 3
        assert report["monthly_revenue"] == 80.0
        assert report["weekly_revenue"] == 50.0
        assert report["daily_revenue"] == 50.0
        assert report["active_promotions"] == 1
        assert report["revenue_growth"] == {"monthly_percentage": 300.0, "weekly_percentage": 66.7, "is_positive": True}

    def test_top_package_and_recent(self, transactions, customer_id, now):
        report = PromotionStatsService.revenue_report(now)

        assert report["top_package_type"] == {"type": "hero_banner", "revenue": 50.0, "count": 1}
        recent = report["recent_transactions"]
        assert [t["type"] for t in recent] == ["hero_banner", "combo", "profile_highlight"]
        assert recent[0]["user_name"] == "Maria"
        assert recent[1]["user_name"] == "Usuário"

    def test_no_revenue(self, db, now):
        report = PromotionStatsService.revenue_report(now)

        assert report["total_revenue"] == 0.0
        assert report["revenue_growth"]["monthly_percentage"] == 0.0
        assert report["top_package_type"]["type"] == "profile_highlight"
        assert report["recent_transactions"] == []
