# =============================================================================
# core/services/booking_service.py - Booking & Availability Logic
# =============================================================================
# Handles the booking lifecycle and braider availability slots:
# - Clients book a service (price is always read from services.price)
# - A client can't hold two active bookings in the same date/time
# - Braiders confirm, complete or cancel bookings they own
# - Completing a booking records a platform transaction for commissions
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import ConflictError, NotFoundError, ValidationFailedError
from core.models.booking import (
    ACTIVE_BOOKING_STATUSES,
    BOOKING_TRANSITIONS,
    AvailabilityCreate,
    BookingCreate,
    BookingStatus,
)
from core.services.commission_service import CommissionService
from core.services.ownership_service import OwnershipService
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import round_money, to_iso, utc_now

logger = logging.getLogger(__name__)


class BookingService:
    """
    Service for bookings and availability slots.
    """

    # -------------------------------------------------------------------------
    # Bookings
    # -------------------------------------------------------------------------

    @staticmethod
    def create_booking(payload: BookingCreate, client_id: UUID | str | None = None) -> dict[str, Any]:
        """
        Create a pending booking.

        Args:
            payload: Booking request
            client_id: Signed-in client (None for guest bookings)

        Raises:
            ConflictError: If the client already has an active booking
                at the same date and time
        """
        price = 0.0
        if payload.service_id:
            service = SupabaseClient.fetch_one("services", columns="id, price", id=payload.service_id)
            if service:
                price = float(service.get("price") or 0)

        booking_date = payload.booking_date.isoformat()
        existing = SupabaseClient.fetch_many(
            "bookings",
            columns="id, status, booking_date, booking_time",
            client_email=payload.client_email,
            booking_date=booking_date,
            booking_time=payload.booking_time,
            status=ACTIVE_BOOKING_STATUSES,
        )
        if existing:
            raise ConflictError(
                "You already have a booking at this date and time. Please choose another slot.",
                details={"booking_id": existing[0]["id"]},
            )

        booking = SupabaseClient.insert_one("bookings", {
            "service_id": payload.service_id,
            "client_id": str(client_id) if client_id else None,
            "braider_id": payload.braider_id,
            "booking_date": booking_date,
            "booking_time": payload.booking_time,
            "service_type": payload.service_type.value,
            "client_name": payload.client_name,
            "client_email": payload.client_email,
            "client_phone": payload.client_phone,
            "client_address": payload.client_address,
            "status": BookingStatus.PENDING.value,
            "total_amount": price,
            "notes": payload.notes or "",
        })
        logger.info(f"Created booking {booking['id']} for braider {payload.braider_id}")

        if payload.availability_id:
            try:
                SupabaseClient.update_where(
                    "braider_availability",
                    {"is_booked": True, "updated_at": to_iso(utc_now())},
                    id=payload.availability_id,
                )
            except SupabaseClientError as e:
                # The booking stands even if the slot flag can't be written
                logger.error(f"Failed to mark availability {payload.availability_id} as booked: {e}")

        return booking

    @staticmethod
    def list_braider_bookings(
        user_id: UUID | str,
        braider_id: str,
        status: BookingStatus | None = None,
    ) -> list[dict[str, Any]]:
        """List bookings for a braider the user owns, newest date first."""
        OwnershipService.ensure_valid(OwnershipService.validate_braider_ownership(user_id, braider_id))

        filters: dict[str, Any] = {"braider_id": braider_id}
        if status:
            filters["status"] = status.value
        return SupabaseClient.fetch_many("bookings", order_by="booking_date", descending=True, **filters)

    @staticmethod
    def list_client_bookings(user_id: UUID | str) -> list[dict[str, Any]]:
        return SupabaseClient.fetch_many(
            "bookings",
            order_by="booking_date",
            descending=True,
            client_id=str(user_id),
        )

    @staticmethod
    def update_booking_status(
        user_id: UUID | str,
        booking_id: str,
        status: BookingStatus,
        user_email: str | None = None,
    ) -> dict[str, Any]:
        """
        Move a booking to a new status.

        Raises:
            OwnershipError: If the booking isn't the braider's
            ValidationFailedError: If the transition isn't allowed
        """
        OwnershipService.ensure_valid(
            OwnershipService.validate_booking_ownership(user_id, booking_id, user_email)
        )

        booking = SupabaseClient.fetch_one("bookings", id=booking_id)
        if not booking:
            raise NotFoundError("booking", booking_id)

        current = BookingStatus(booking["status"])
        if status not in BOOKING_TRANSITIONS[current]:
            raise ValidationFailedError(
                f"Cannot change booking from {current.value} to {status.value}",
                field="status",
                details={"current": current.value, "requested": status.value},
            )

        rows = SupabaseClient.update_where(
            "bookings",
            {"status": status.value, "updated_at": to_iso(utc_now())},
            id=booking_id,
        )
        updated = rows[0] if rows else {**booking, "status": status.value}
        logger.info(f"Booking {booking_id}: {current.value} -> {status.value}")

        if status == BookingStatus.COMPLETED:
            BookingService._record_platform_transaction(updated)

        return updated

    @staticmethod
    def _record_platform_transaction(booking: dict[str, Any]) -> dict[str, Any]:
        """Record the commission owed on a completed booking."""
        rate = CommissionService.get_platform_settings()["commission_rate"]
        amount = float(booking.get("total_amount") or 0)
        commission = round_money(amount * rate)

        return SupabaseClient.insert_one("platform_transactions", {
            "braider_id": booking["braider_id"],
            "booking_id": booking["id"],
            "service_amount": amount,
            "commission_rate": rate,
            "commission_amount": commission,
            "braider_payout": round_money(amount - commission),
            "status": "pending",
        })

    # -------------------------------------------------------------------------
    # Availability
    # -------------------------------------------------------------------------

    @staticmethod
    def list_availability(
        braider_id: str,
        date_from: str | None = None,
        only_free: bool = True,
    ) -> list[dict[str, Any]]:
        filters: dict[str, Any] = {"braider_id": braider_id}
        if only_free:
            filters["is_booked"] = False

        slots = SupabaseClient.fetch_many("braider_availability", order_by="available_date", **filters)
        if date_from:
            slots = [s for s in slots if str(s["available_date"]) >= date_from]
        return sorted(slots, key=lambda s: (str(s["available_date"]), str(s["start_time"])))

    @staticmethod
    def create_availability(
        user_id: UUID | str,
        braider_id: str,
        payload: AvailabilityCreate,
    ) -> dict[str, Any]:
        """
        Publish a new slot.

        Raises:
            ConflictError: If it overlaps an existing slot on the same day
        """
        OwnershipService.ensure_valid(OwnershipService.validate_braider_ownership(user_id, braider_id))

        day = payload.available_date.isoformat()
        same_day = SupabaseClient.fetch_many(
            "braider_availability",
            columns="id, start_time, end_time",
            braider_id=braider_id,
            available_date=day,
        )
        for slot in same_day:
            if str(slot["start_time"]) < payload.end_time and str(slot["end_time"]) > payload.start_time:
                raise ConflictError(
                    "This time overlaps an existing availability slot",
                    details={"availability_id": slot["id"]},
                )

        return SupabaseClient.insert_one("braider_availability", {
            "braider_id": braider_id,
            "available_date": day,
            "start_time": payload.start_time,
            "end_time": payload.end_time,
            "is_booked": False,
        })

    @staticmethod
    def delete_availability(user_id: UUID | str, availability_id: str) -> None:
        """
        Remove a free slot.

        Raises:
            OwnershipError: If the slot isn't the braider's
            ConflictError: If the slot is already booked
        """
        OwnershipService.ensure_valid(
            OwnershipService.validate_availability_access(user_id, availability_id)
        )

        slot = SupabaseClient.fetch_one("braider_availability", columns="id, is_booked", id=availability_id)
        if slot and slot.get("is_booked"):
            raise ConflictError("Booked slots cannot be deleted", details={"availability_id": availability_id})

        SupabaseClient.delete_where("braider_availability", id=availability_id)
        logger.info(f"Deleted availability {availability_id}")
