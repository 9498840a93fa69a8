# =============================================================================
# core/services/ownership_service.py - Ownership Validation
# =============================================================================
# The API talks to Supabase with the service_role key, which bypasses Row
# Level Security. Every mutation on a braider-owned resource therefore goes
# through one of these checks first.
#
# Checks never raise: they return a ValidationResult so callers can log the
# violation details and pick the HTTP response. ensure_valid() converts a
# failed result into an OwnershipError (403 UNAUTHORIZED_ACCESS).
#
# Usage:
#   result = OwnershipService.validate_braider_ownership(user.id, braider_id)
#   OwnershipService.ensure_valid(result)
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import OwnershipError
from core.models.ownership import ValidationResult
from lib.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


class OwnershipService:
    """
    Service for verifying that a user owns the resource they act on.
    """

    @staticmethod
    def validate_session(user: Any) -> ValidationResult:
        """
        Check that an authenticated user carries both id and email.

        Email is needed because bookings link to braiders through
        braiders.contact_email.
        """
        if user is None or not getattr(user, "id", None):
            return ValidationResult(
                is_valid=False,
                error="Unauthorized: No valid session",
                details={"violation": "no_session_or_user_id"},
            )

        if not getattr(user, "email", None):
            return ValidationResult(
                is_valid=False,
                error="Unauthorized: No email in session",
                details={"violation": "no_email_in_session", "user_id": str(user.id)},
            )

        return ValidationResult(is_valid=True, details={"user_id": str(user.id), "email": user.email})

    @staticmethod
    def validate_booking_ownership(
        user_id: str | UUID,
        booking_id: str,
        user_email: str | None = None,
    ) -> ValidationResult:
        """
        Verify a booking belongs to the braider signed in as `user_id`.

        A booking belongs to a braider when the braider's contact_email
        equals the session email. If no email is given it is loaded from
        public.users.
        """
        user_id = str(user_id)
        try:
            email = user_email
            if not email:
                user_row = SupabaseClient.fetch_one("users", columns="id, email", id=user_id)
                email = (user_row or {}).get("email")

            if not email:
                return ValidationResult(
                    is_valid=False,
                    error="User email not found",
                    details={"user_id": user_id},
                )

            booking = SupabaseClient.fetch_one(
                "bookings",
                columns="id, braider_id, client_email, status",
                id=booking_id,
            )
            if not booking:
                return ValidationResult(
                    is_valid=False,
                    error="Booking not found",
                    details={"booking_id": booking_id},
                )

            braider = SupabaseClient.fetch_one(
                "braiders",
                columns="id, name, contact_email, user_id",
                id=booking["braider_id"],
            )
            if not braider:
                return ValidationResult(
                    is_valid=False,
                    error="Braider not found for booking",
                    details={"booking_id": booking_id, "braider_id": booking["braider_id"]},
                )

            if braider.get("contact_email") != email:
                logger.error(
                    f"SECURITY VIOLATION: booking ownership mismatch "
                    f"(user={user_id}, email={email}, booking={booking_id}, "
                    f"braider_email={braider.get('contact_email')})"
                )
                return ValidationResult(
                    is_valid=False,
                    error="Unauthorized: Booking does not belong to current braider",
                    details={
                        "violation": "ownership_mismatch",
                        "user_id": user_id,
                        "user_email": email,
                        "booking_id": booking_id,
                        "braider_id": braider["id"],
                        "braider_email": braider.get("contact_email"),
                    },
                )

            return ValidationResult(
                is_valid=True,
                details={"user_id": user_id, "booking_id": booking_id, "braider_id": braider["id"]},
            )

        except Exception as e:
            logger.error(f"Booking ownership validation error: {e}")
            return ValidationResult(
                is_valid=False,
                error="Internal validation error",
                details={"exception": str(e)},
            )

    @staticmethod
    def validate_braider_ownership(user_id: str | UUID, braider_id: str) -> ValidationResult:
        """Verify braiders.user_id matches the signed-in user."""
        user_id = str(user_id)
        try:
            braider = SupabaseClient.fetch_one("braiders", columns="id, user_id, contact_email", id=braider_id)
            if not braider:
                return ValidationResult(
                    is_valid=False,
                    error="Braider not found",
                    details={"braider_id": braider_id},
                )

            if str(braider.get("user_id")) != user_id:
                logger.error(
                    f"SECURITY VIOLATION: braider ownership mismatch "
                    f"(user={user_id}, braider={braider_id}, owner={braider.get('user_id')})"
                )
                return ValidationResult(
                    is_valid=False,
                    error="Unauthorized: Braider profile does not belong to current user",
                    details={
                        "violation": "braider_ownership_mismatch",
                        "user_id": user_id,
                        "braider_id": braider_id,
                        "braider_user_id": braider.get("user_id"),
                    },
                )

            return ValidationResult(is_valid=True, details={"user_id": user_id, "braider_id": braider_id})

        except Exception as e:
            logger.error(f"Braider ownership validation error: {e}")
            return ValidationResult(
                is_valid=False,
                error="Internal validation error",
                details={"exception": str(e)},
            )

    @staticmethod
    def validate_availability_access(user_id: str | UUID, availability_id: str) -> ValidationResult:
        """Verify an availability slot belongs to the signed-in braider."""
        user_id = str(user_id)
        try:
            slot = SupabaseClient.fetch_one(
                "braider_availability",
                columns="id, braider_id, is_booked",
                id=availability_id,
            )
            if not slot:
                return ValidationResult(
                    is_valid=False,
                    error="Availability not found",
                    details={"availability_id": availability_id},
                )

            braider = SupabaseClient.fetch_one("braiders", columns="id, user_id", id=slot["braider_id"])
            if not braider or str(braider.get("user_id")) != user_id:
                logger.error(
                    f"SECURITY VIOLATION: availability access denied "
                    f"(user={user_id}, availability={availability_id})"
                )
                return ValidationResult(
                    is_valid=False,
                    error="Unauthorized: Availability does not belong to current braider",
                    details={
                        "violation": "availability_access_denied",
                        "user_id": user_id,
                        "availability_id": availability_id,
                        "braider_id": slot["braider_id"],
                    },
                )

            return ValidationResult(
                is_valid=True,
                details={"user_id": user_id, "availability_id": availability_id, "braider_id": braider["id"]},
            )

        except Exception as e:
            logger.error(f"Availability access validation error: {e}")
            return ValidationResult(
                is_valid=False,
                error="Internal validation error",
                details={"exception": str(e)},
            )

    @staticmethod
    def get_braider_by_user_id(user_id: str | UUID, email: str | None = None) -> dict[str, Any] | None:
        """
        Find the braider profile for a user.

        Tries braiders.user_id first, then braiders.contact_email (older
        profiles were created before user_id was linked).
        """
        user_id = str(user_id)
        columns = "id, name, contact_email, status, user_id"

        braider = SupabaseClient.fetch_one("braiders", columns=columns, user_id=user_id)
        if not braider and email:
            braider = SupabaseClient.fetch_one("braiders", columns=columns, contact_email=email)

        if not braider:
            return None

        return {
            "id": braider["id"],
            "name": braider.get("name"),
            "contact_email": braider.get("contact_email"),
            "status": braider.get("status"),
            "user_id": braider.get("user_id") or user_id,
        }

    @staticmethod
    def ensure_valid(result: ValidationResult) -> None:
        """Raise OwnershipError if the check failed."""
        if not result.is_valid:
            raise OwnershipError(result.error or "Unauthorized access", details=result.details)
