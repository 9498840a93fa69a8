# =============================================================================
# app/routers/bookings.py - Booking Endpoints
# =============================================================================
# Clients book a braider's service; the braider confirms, completes or
# cancels it. Guests may book without an account.
# =============================================================================

from fastapi import APIRouter, status

from app.dependencies import CurrentUser, OptionalUser
from core.models.booking import BookingCreate, BookingStatusUpdate
from core.services.booking_service import BookingService

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_booking(payload: BookingCreate, user: OptionalUser):
    """
    Create a booking.

    Fails with 409 if the same client already has a pending or confirmed
    booking at that date and time.
    """
    booking = BookingService.create_booking(payload, client_id=user.id if user else None)
    return {"success": True, "booking": booking}


@router.get("/mine")
async def my_bookings(user: CurrentUser):
    """
    Bookings made by the current user.
    """
    return {"bookings": BookingService.list_client_bookings(user.id)}


@router.patch("/{booking_id}/status")
async def update_booking_status(booking_id: str, payload: BookingStatusUpdate, user: CurrentUser):
    """
    Change a booking's status. Only the braider who owns the booking may do so.

    Allowed: pending -> confirmed | cancelled, confirmed -> completed | cancelled.
    """
    booking = BookingService.update_booking_status(user.id, booking_id, payload.status, user_email=user.email)
    return {"success": True, "booking": booking}
