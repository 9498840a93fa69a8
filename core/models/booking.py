# =============================================================================
# core/models/booking.py - Booking & Availability Schemas
# =============================================================================
# A booking is a client's appointment with a braider for one service.
# Availability slots are published by braiders and flagged is_booked once
# a booking claims them.
# =============================================================================

from datetime import date
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$"


class BookingStatus(str, Enum):
    """
    Lifecycle of a booking.

    Flow: pending -> confirmed -> completed
          pending | confirmed -> cancelled
    """
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ServiceLocation(str, Enum):
    """Where the service happens."""
    HOME = "domicilio"
    BRAIDER = "trancista"


# Allowed status transitions; completed and cancelled are terminal
BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}

# Statuses that block another booking in the same slot
ACTIVE_BOOKING_STATUSES = [BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value]


def normalize_time(value: str) -> str:
    """Pad HH:MM to HH:MM:SS so slot times compare as strings."""
    return value if len(value) == 8 else f"{value}:00"


class BookingCreate(BaseModel):
    """
    Schema for creating a booking.

    Example:
        {
            "service_id": "…",
            "braider_id": "…",
            "booking_date": "2025-03-14",
            "booking_time": "14:30",
            "service_type": "domicilio",
            "client_name": "Maria",
            "client_email": "maria@example.com",
            "client_phone": "+351912345678",
            "client_address": "Rua Augusta 10, Lisboa"
        }
    """
    service_id: str | None = None
    braider_id: str
    availability_id: str | None = None
    booking_date: date
    booking_time: str = Field(..., pattern=TIME_PATTERN)
    service_type: ServiceLocation = ServiceLocation.BRAIDER
    client_name: str = Field(..., min_length=1, max_length=120)
    client_email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    client_phone: str | None = None
    client_address: str | None = None
    notes: str | None = Field(default=None, max_length=2000)

    @field_validator("booking_time")
    @classmethod
    def pad_seconds(cls, value: str) -> str:
        return normalize_time(value)

    @model_validator(mode="after")
    def check_address_for_home_service(self) -> "BookingCreate":
        if self.service_type == ServiceLocation.HOME and not self.client_address:
            raise ValueError("client_address is required for home service")
        return self


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class AvailabilityCreate(BaseModel):
    """A bookable time slot."""
    available_date: date
    start_time: str = Field(..., pattern=TIME_PATTERN)
    end_time: str = Field(..., pattern=TIME_PATTERN)

    @field_validator("start_time", "end_time")
    @classmethod
    def pad_seconds(cls, value: str) -> str:
        return normalize_time(value)

    @model_validator(mode="after")
    def check_time_order(self) -> "AvailabilityCreate":
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self
