# =============================================================================
# tests/test_booking_service.py - Ownership & Booking Tests
# =============================================================================
# Tests for OwnershipService and BookingService against the in-memory
# Supabase from conftest.py.
# =============================================================================

from datetime import date

import pytest

from app.exceptions import ConflictError, OwnershipError, ValidationFailedError
from core.models.booking import AvailabilityCreate, BookingCreate, BookingStatus
from core.services.booking_service import BookingService
from core.services.ownership_service import OwnershipService


@pytest.fixture
def braider(db, braider_user_id):
    return db.seed("braiders", {
        "id": "braider-1",
        "user_id": braider_user_id,
        "name": "Ana Tranças",
        "contact_email": "ana@example.com",
        "status": "approved",
    })[0]


@pytest.fixture
def booking(db, braider):
    return db.seed("bookings", {
        "id": "booking-1",
        "braider_id": braider["id"],
        "client_email": "maria@example.com",
        "booking_date": "2025-03-14",
        "booking_time": "14:30",
        "status": "pending",
        "total_amount": 80.0,
    })[0]


def _booking_request(**overrides):
    data = {
        "service_id": "service-1",
        "braider_id": "braider-1",
        "booking_date": date(2025, 3, 20),
        "booking_time": "10:00",
        "client_name": "Maria",
        "client_email": "maria@example.com",
    }
    data.update(overrides)
    return BookingCreate(**data)


# =============================================================================
# Ownership
# =============================================================================

class TestOwnershipService:
    """Tests for ownership checks."""

    def test_booking_owned_by_braider_email(self, booking, braider_user_id):
        result = OwnershipService.validate_booking_ownership(braider_user_id, booking["id"], "ana@example.com")
        assert result.is_valid
        assert result.details["braider_id"] == "braider-1"

    def test_booking_email_loaded_from_users(self, db, booking, braider_user_id):
        db.seed("users", {"id": braider_user_id, "email": "ana@example.com"})

        result = OwnershipService.validate_booking_ownership(braider_user_id, booking["id"])

        assert result.is_valid

    def test_booking_mismatch_is_violation(self, booking, customer_id):
        result = OwnershipService.validate_booking_ownership(customer_id, booking["id"], "other@example.com")

        assert not result.is_valid
        assert result.details["violation"] == "ownership_mismatch"

    def test_missing_booking(self, db, braider_user_id):
        result = OwnershipService.validate_booking_ownership(braider_user_id, "nope", "ana@example.com")
        assert not result.is_valid
        assert result.error == "Booking not found"

    def test_database_failure_is_reported_not_raised(self, db, braider_user_id):
        db.failing_tables.add("bookings")

        result = OwnershipService.validate_booking_ownership(braider_user_id, "booking-1", "ana@example.com")

        assert not result.is_valid
        assert result.error == "Internal validation error"

    def test_braider_ownership(self, braider, braider_user_id, customer_id):
        assert OwnershipService.validate_braider_ownership(braider_user_id, "braider-1").is_valid
        denied = OwnershipService.validate_braider_ownership(customer_id, "braider-1")
        assert denied.details["violation"] == "braider_ownership_mismatch"

    def test_get_braider_by_email_fallback(self, db, customer_id):
        db.seed("braiders", {"id": "legacy", "user_id": None, "contact_email": "old@example.com", "status": "approved"})

        braider = OwnershipService.get_braider_by_user_id(customer_id, email="old@example.com")

        assert braider["id"] == "legacy"
        assert braider["user_id"] == customer_id

    def test_ensure_valid_raises(self, braider, customer_id):
        with pytest.raises(OwnershipError):
            OwnershipService.ensure_valid(OwnershipService.validate_braider_ownership(customer_id, "braider-1"))


# =============================================================================
# Bookings
# =============================================================================

class TestCreateBooking:
    """Tests for BookingService.create_booking."""

    def test_price_comes_from_service(self, db, braider, customer_id):
        # Arrange
        db.seed("services", {"id": "service-1", "price": 65.0})

        # Act
        booking = BookingService.create_booking(_booking_request(), client_id=customer_id)

        # Assert
        assert booking["total_amount"] == 65.0
        assert booking["status"] == "pending"
        assert booking["client_id"] == customer_id
        assert booking["booking_date"] == "2025-03-20"

    def test_guest_booking_without_service(self, db, braider):
        booking = BookingService.create_booking(_booking_request(service_id=None))

        assert booking["client_id"] is None
        assert booking["total_amount"] == 0.0

    def test_duplicate_slot_conflicts(self, db, braider):
        db.seed("bookings", {
            "braider_id": "braider-1",
            "client_email": "maria@example.com",
            "booking_date": "2025-03-20",
            "booking_time": "10:00:00",
            "status": "confirmed",
        })

        with pytest.raises(ConflictError):
            BookingService.create_booking(_booking_request())

    def test_cancelled_booking_does_not_block(self, db, braider):
        db.seed("bookings", {
            "braider_id": "braider-1",
            "client_email": "maria@example.com",
            "booking_date": "2025-03-20",
            "booking_time": "10:00:00",
            "status": "cancelled",
        })

        booking = BookingService.create_booking(_booking_request())

        assert booking["status"] == "pending"

    def test_marks_availability_booked(self, db, braider):
        db.seed("braider_availability", {"id": "slot-1", "braider_id": "braider-1", "is_booked": False})

        BookingService.create_booking(_booking_request(availability_id="slot-1"))

        assert db.rows("braider_availability", id="slot-1")[0]["is_booked"] is True


class TestUpdateBookingStatus:
    """Tests for the booking lifecycle."""

    def test_confirm(self, booking, braider_user_id):
        updated = BookingService.update_booking_status(
            braider_user_id, booking["id"], BookingStatus.CONFIRMED, user_email="ana@example.com"
        )
        assert updated["status"] == "confirmed"

    def test_invalid_transition(self, booking, braider_user_id):
        with pytest.raises(ValidationFailedError):
            BookingService.update_booking_status(
                braider_user_id, booking["id"], BookingStatus.COMPLETED, user_email="ana@example.com"
            )

    def test_other_braider_is_rejected(self, booking, customer_id):
        with pytest.raises(OwnershipError):
            BookingService.update_booking_status(
                customer_id, booking["id"], BookingStatus.CONFIRMED, user_email="maria@example.com"
            )

    def test_completion_records_commission(self, db, booking, braider_user_id):
        # Arrange: confirmed booking and a 15% platform rate
        booking["status"] = "confirmed"
        db.seed("platform_settings", {"key": "commission_rate", "value": "0.15"})

        # Act
        BookingService.update_booking_status(
            braider_user_id, booking["id"], BookingStatus.COMPLETED, user_email="ana@example.com"
        )

        # Assert
        transaction = db.rows("platform_transactions", booking_id="booking-1")[0]
        assert transaction["commission_amount"] == 12.0
        assert transaction["braider_payout"] == 68.0
        assert transaction["status"] == "pending"


class TestAvailability:
    """Tests for availability slots."""

    def test_overlap_conflicts(self, db, braider, braider_user_id):
        db.seed("braider_availability", {
            "id": "slot-1",
            "braider_id": "braider-1",
            "available_date": "2025-03-20",
            "start_time": "09:00:00",
            "end_time": "11:00:00",
            "is_booked": False,
        })
        payload = AvailabilityCreate(available_date="2025-03-20", start_time="10:00", end_time="12:00")

        with pytest.raises(ConflictError):
            BookingService.create_availability(braider_user_id, "braider-1", payload)

    def test_adjacent_slot_is_fine(self, db, braider, braider_user_id):
        db.seed("braider_availability", {
            "braider_id": "braider-1",
            "available_date": "2025-03-20",
            "start_time": "09:00:00",
            "end_time": "11:00:00",
            "is_booked": False,
        })
        payload = AvailabilityCreate(available_date="2025-03-20", start_time="11:00", end_time="12:00")

        slot = BookingService.create_availability(braider_user_id, "braider-1", payload)

        assert slot["start_time"] == "11:00:00"
        assert slot["is_booked"] is False

    def test_booked_slot_cannot_be_deleted(self, db, braider, braider_user_id):
        db.seed("braider_availability", {"id": "slot-1", "braider_id": "braider-1", "is_booked": True})

        with pytest.raises(ConflictError):
            BookingService.delete_availability(braider_user_id, "slot-1")

    def test_list_filters_from_date(self, db, braider):
        db.seed(
            "braider_availability",
            {"braider_id": "braider-1", "available_date": "2025-03-01", "start_time": "09:00:00", "is_booked": False},
            {"braider_id": "braider-1", "available_date": "2025-03-20", "start_time": "09:00:00", "is_booked": False},
            {"braider_id": "braider-1", "available_date": "2025-03-21", "start_time": "09:00:00", "is_booked": True},
        )

        slots = BookingService.list_availability("braider-1", date_from="2025-03-10")

        assert [s["available_date"] for s in slots] == ["2025-03-20"]
