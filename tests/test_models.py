# =============================================================================
# tests/test_models.py - Pydantic Model Tests
# =============================================================================
# Unit tests for request models to ensure:
# - Valid data is accepted and parsed correctly
# - Invalid data raises ValidationError
# - Default values work as expected
#
# Run with: pytest tests/test_models.py -v
# =============================================================================

from datetime import date

import pytest
from pydantic import ValidationError

from core.models import (
    AvailabilityCreate,
    BookingCreate,
    BraiderRegister,
    ComboPurchaseRequest,
    CouponValidateRequest,
    MessageCreate,
    MessageType,
    PaymentMethod,
    PromotionCheckoutRequest,
    PromotionType,
    RatingCreate,
    ServiceLocation,
)
from core.models.commerce import ORDER_TRANSITIONS, OrderCreate, OrderStatus


# =============================================================================
# Booking Models
# =============================================================================

class TestBookingCreate:
    """Tests for BookingCreate model."""

    def _data(self, **overrides):
        data = {
            "braider_id": "b-1",
            "booking_date": "2025-03-14",
            "booking_time": "14:30",
            "client_name": "Maria",
            "client_email": "maria@example.com",
        }
        data.update(overrides)
        return data

    def test_valid_booking(self):
        # Act
        booking = BookingCreate(**self._data())

        # Assert: Parsed with defaults
        assert booking.booking_date == date(2025, 3, 14)
        assert booking.service_type == ServiceLocation.BRAIDER
        assert booking.service_id is None

    def test_home_service_requires_address(self):
        with pytest.raises(ValidationError):
            BookingCreate(**self._data(service_type="domicilio"))

    def test_home_service_with_address(self):
        booking = BookingCreate(**self._data(service_type="domicilio", client_address="Rua Augusta 10"))
        assert booking.service_type == ServiceLocation.HOME

    def test_rejects_bad_time(self):
        with pytest.raises(ValidationError):
            BookingCreate(**self._data(booking_time="25:00"))

    def test_time_padded_to_seconds(self):
        # Stored slot times are HH:MM:SS, so both forms must match
        assert BookingCreate(**self._data(booking_time="14:30")).booking_time == "14:30:00"
        assert BookingCreate(**self._data(booking_time="14:30:00")).booking_time == "14:30:00"

    def test_rejects_bad_email(self):
        with pytest.raises(ValidationError):
            BookingCreate(**self._data(client_email="not-an-email"))


class TestAvailabilityCreate:
    """Tests for AvailabilityCreate model."""

    def test_pads_seconds(self):
        slot = AvailabilityCreate(available_date="2025-03-14", start_time="09:00", end_time="10:30")
        assert slot.start_time == "09:00:00"
        assert slot.end_time == "10:30:00"

    def test_start_must_precede_end(self):
        with pytest.raises(ValidationError):
            AvailabilityCreate(available_date="2025-03-14", start_time="11:00", end_time="10:00")


# =============================================================================
# Braider & Rating Models
# =============================================================================

class TestBraiderRegister:
    """Tests for BraiderRegister model."""

    def test_price_range(self):
        with pytest.raises(ValidationError):
            BraiderRegister(
                name="Ana",
                contact_email="ana@example.com",
                district="Lisboa",
                concelho="Sintra",
                min_price=100,
                max_price=50,
            )

    def test_postal_code_format(self):
        with pytest.raises(ValidationError):
            BraiderRegister(
                name="Ana",
                contact_email="ana@example.com",
                district="Lisboa",
                concelho="Sintra",
                postal_code="2710",
            )


class TestRatingCreate:
    """Tests for RatingCreate model."""

    def test_overall_rating_bounds(self):
        with pytest.raises(ValidationError):
            RatingCreate(braider_id="b-1", overall_rating=6)
        with pytest.raises(ValidationError):
            RatingCreate(braider_id="b-1", overall_rating=0)

    def test_defaults(self):
        rating = RatingCreate(braider_id="b-1", overall_rating=4)
        assert rating.review_images == []
        assert rating.quality_rating is None


# =============================================================================
# Chat Models
# =============================================================================

class TestMessageCreate:
    def test_default_type_is_text(self):
        assert MessageCreate(content="Olá").message_type == MessageType.TEXT


# =============================================================================
# Promotion Models
# =============================================================================

class TestPromotionModels:
    """Tests for combo and promotion request models."""

    def test_purchase_defaults(self):
        request = ComboPurchaseRequest()
        assert request.payment_method == PaymentMethod.CARD
        assert request.billing_cycle.value == "monthly"

    def test_coupon_application_type(self):
        with pytest.raises(ValidationError):
            CouponValidateRequest(code="X", amount=10, application_type="gift")

    def test_checkout_window(self):
        with pytest.raises(ValidationError):
            PromotionCheckoutRequest(
                title="Destaque",
                type="profile_highlight",
                price=10,
                start_date="2025-03-10",
                end_date="2025-03-01",
            )

    def test_checkout_valid(self):
        request = PromotionCheckoutRequest(
            title="Destaque",
            type="hero_banner",
            price=29.9,
            start_date="2025-03-01",
            end_date="2025-03-31",
        )
        assert request.type == PromotionType.HERO_BANNER
        assert request.content_data == {}


# =============================================================================
# Commerce Models
# =============================================================================

class TestOrderModels:
    def test_order_needs_items(self):
        with pytest.raises(ValidationError):
            OrderCreate(items=[])

    def test_terminal_statuses(self):
        assert ORDER_TRANSITIONS[OrderStatus.DELIVERED] == set()
        assert ORDER_TRANSITIONS[OrderStatus.CANCELLED] == set()
        assert OrderStatus.SHIPPED in ORDER_TRANSITIONS[OrderStatus.PROCESSING]
