# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the BraidMarket API:
# - test_utils.py: Time, money, geo and order number helpers
# - test_models.py: Unit tests for Pydantic model validation
# - test_booking_service.py, test_braider_service.py: Marketplace services
# - test_chat.py: Chat service, rooms and realtime events
# - test_combo_billing.py: Coupons, combos, Stripe billing and webhooks
# - test_promotions.py: Promotion display and notifications
# - test_commission_order.py: Commissions, products and orders
# - test_api.py: HTTP-level tests through the TestClient
#
# Run tests with: pytest
# =============================================================================
