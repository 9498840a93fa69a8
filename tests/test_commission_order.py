# =============================================================================
# tests/test_commission_order.py - Commission & Order Tests
# =============================================================================

import pytest

from app.exceptions import NotFoundError, OwnershipError, ValidationFailedError
from core.models.commerce import OrderCreate, ProductCreate, ProductUpdate
from core.services.commission_service import CommissionService
from core.services.order_service import OrderService

ANA_USER = "22222222-2222-2222-2222-222222222222"


@pytest.fixture
def ledger(db):
    db.seed(
        "braiders",
        {"id": "b1", "user_id": ANA_USER, "name": "Ana", "contact_email": "ana@example.com",
         "status": "approved", "created_at": "2024-11-02T08:00:00Z"},
        {"id": "b2", "name": "Bia", "contact_email": "bia@example.com", "status": "approved"},
        {"id": "b3", "name": "Carla", "status": "pending"},
    )
    db.seed(
        "platform_transactions",
        {"id": "t1", "braider_id": "b1", "service_amount": 100, "commission_amount": 10, "braider_payout": 90,
         "status": "completed", "processed_at": "2025-03-05T10:00:00Z", "created_at": "2025-03-03T10:00:00Z"},
        {"id": "t2", "braider_id": "b1", "service_amount": 50, "commission_amount": 5, "braider_payout": 45,
         "status": "pending", "created_at": "2025-02-20T10:00:00Z"},
        {"id": "t3", "braider_id": "b2", "service_amount": 80, "commission_amount": 8, "braider_payout": 72,
         "status": "pending", "created_at": "2025-03-10T10:00:00Z"},
    )
    db.seed("platform_settings", {"key": "monetization_enabled", "value": "true"})
    return db


# =============================================================================
# Commissions
# =============================================================================

class TestPlatformSettings:
    def test_defaults(self, db):
        platform = CommissionService.get_platform_settings()
        assert platform == {"commission_rate": 0.10, "monetization_enabled": False}

    def test_string_values(self, ledger):
        ledger.seed("platform_settings", {"key": "commission_rate", "value": "0.2"})

        platform = CommissionService.get_platform_settings()

        assert platform == {"commission_rate": 0.2, "monetization_enabled": True}


class TestCommissionReport:
    """Tests for the admin commissions dashboard."""

    def test_per_braider_totals(self, ledger, now):
        report = CommissionService.admin_commission_report(now)

        rows = {b["id"]: b for b in report["braiders"]}
        assert set(rows) == {"b1", "b2"}
        assert rows["b1"]["total_revenue"] == 150.0
        assert rows["b1"]["current_month_revenue"] == 100.0
        assert rows["b1"]["completed_bookings"] == 1
        assert rows["b1"]["last_payment"] == "2025-03-05"
        assert rows["b1"]["joined_at"] == "2024-11-02"
        assert rows["b2"]["last_payment"] is None

    def test_stats(self, ledger, now):
        stats = CommissionService.admin_commission_report(now)["stats"]

        assert stats["total_commissions"] == 23.0
        assert stats["monthly_commissions"] == 18.0
        assert stats["pending_payments"] == 1
        assert stats["average_commission"] == 11.5
        assert stats["monetization_enabled"] is True

    def test_no_braiders(self, db, now):
        stats = CommissionService.admin_commission_report(now)["stats"]
        assert stats["total_braiders"] == 0
        assert stats["average_commission"] == 0.0


class TestProcessPayments:
    def test_only_matching_pending_rows(self, ledger):
        processed = CommissionService.process_payments(["b1"], ["t1", "t2", "t3"])

        assert processed == 1
        assert ledger.rows("platform_transactions", id="t2")[0]["status"] == "completed"
        assert ledger.rows("platform_transactions", id="t3")[0]["status"] == "pending"

    def test_empty_selection(self, ledger):
        assert CommissionService.process_payments([], ["t2"]) == 0


class TestBraiderEarnings:
    """Tests for a braider's earnings dashboard."""

    def test_owner_view(self, ledger, now):
        earnings = CommissionService.braider_earnings(ANA_USER, "braider", "b1", now=now)

        assert earnings["total_earnings"] == 135.0
        assert earnings["monthly_earnings"] == 100.0
        assert earnings["net_earnings"] == 90.0
        assert earnings["pending_commissions"] == 45.0
        assert earnings["monthly_comparison"] == 100.0
        assert earnings["average_service_value"] == 100.0
        assert earnings["last_payment"]["amount"] == 90.0
        assert [t["id"] for t in earnings["transactions"]] == ["t1"]

    def test_owner_by_email(self, ledger, now):
        earnings = CommissionService.braider_earnings("other-user", "braider", "b2", user_email="bia@example.com", now=now)
        assert earnings["monthly_earnings"] == 80.0

    def test_admin_can_read_any(self, ledger, admin_id, now):
        earnings = CommissionService.braider_earnings(admin_id, "admin", "b2", now=now)
        assert earnings["services_completed"] == 0

    def test_other_braider_denied(self, ledger, now):
        with pytest.raises(OwnershipError):
            CommissionService.braider_earnings(ANA_USER, "braider", "b2", user_email="ana@example.com", now=now)

    def test_unknown_braider_is_empty(self, ledger, now):
        earnings = CommissionService.braider_earnings(ANA_USER, "braider", "ghost", now=now)

        assert earnings["total_earnings"] == 0.0
        assert earnings["transactions"] == []


# =============================================================================
# Products & Orders
# =============================================================================

@pytest.fixture
def shop(db):
    db.seed(
        "products",
        {"id": "p1", "name": "Kanekalon", "category": "hair", "price": 12.5, "is_active": True},
        {"id": "p2", "name": "Óleo", "category": "care", "price": 8.0, "is_active": False},
    )
    return db


class TestProducts:
    def test_list_active_only(self, shop):
        assert [p["id"] for p in OrderService.list_products()] == ["p1"]

    def test_create_and_update(self, shop):
        product = OrderService.create_product(ProductCreate(name="Pente", category="tools", price=3.0))

        updated = OrderService.update_product(product["id"], ProductUpdate(price=3.5))

        assert updated["price"] == 3.5
        assert updated["name"] == "Pente"

    def test_empty_update(self, shop):
        with pytest.raises(ValidationFailedError):
            OrderService.update_product("p1", ProductUpdate())


class TestOrders:
    """Tests for order placement and lifecycle."""

    def test_priced_from_catalogue(self, shop, customer_id):
        order = OrderService.create_order(
            customer_id,
            OrderCreate(items=[{"product_id": "p1", "quantity": 2}], customer_name="Maria"),
            email="maria@example.com",
        )

        assert order["total_amount"] == 25.0
        assert order["items"][0]["subtotal"] == 25.0
        assert order["status"] == "pending"
        assert len(order["order_number"]) == 8

    def test_inactive_product(self, shop, customer_id):
        with pytest.raises(NotFoundError):
            OrderService.create_order(customer_id, OrderCreate(items=[{"product_id": "p2"}]))

    def test_transitions(self, db, admin_id):
        db.seed("orders", {"id": "o1", "order_number": "ABCD1234", "status": "pending"})

        with pytest.raises(ValidationFailedError):
            OrderService.update_order_status(admin_id, "o1", "shipped")

        assert OrderService.update_order_status(admin_id, "o1", "processing")["status"] == "processing"

    def test_track_normalizes_number(self, db):
        db.seed("orders", {"id": "o1", "order_number": "ABCD1234", "status": "shipped"})

        assert OrderService.track_order("#abcd1234")["id"] == "o1"

    def test_track_malformed(self, db):
        with pytest.raises(ValidationFailedError):
            OrderService.track_order("#12")

    def test_track_unknown(self, db):
        with pytest.raises(NotFoundError):
            OrderService.track_order("ZZZZ9999")
