# =============================================================================
# core/services/rating_service.py - Rating Business Logic
# =============================================================================
# Clients rate braiders. A rating that references a booking is "verified"
# and must come from the booking's client after the booking is completed.
# Aggregates live in braider_rating_stats and are refreshed by the
# update_braider_rating_stats RPC whenever a score or status changes.
#
# Ratings can be edited (client within 7 days, braider reply, admin
# moderation), soft-deleted, and reported by users. Three pending reports
# flag a rating automatically.
# =============================================================================

import logging
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from app.exceptions import ConflictError, NotFoundError, OwnershipError, ValidationFailedError
from app.websocket.broadcast import publish_to_user
from core.models.booking import BookingStatus
from core.models.rating import (
    BRAIDER_EDITABLE_FIELDS,
    CLIENT_EDITABLE_FIELDS,
    RatingAction,
    RatingCreate,
    RatingReportCreate,
    RatingReportReview,
    RatingStatus,
    RatingUpdate,
    ReportStatus,
)
from core.roles import UserRole
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import parse_datetime, to_iso, utc_now

logger = logging.getLogger(__name__)

CLIENT_EDIT_WINDOW = timedelta(days=7)

# Pending reports that flag a rating without an admin
AUTO_FLAG_REPORTS = 3

MODERATION_RESULTS = {
    RatingAction.HIDE: (RatingStatus.HIDDEN, "Ocultada por moderação"),
    RatingAction.DELETE: (RatingStatus.DELETED, "Removida por moderação"),
    RatingAction.FLAG: (RatingStatus.FLAGGED, "Flagged por moderação"),
}


def _refresh_stats(braider_id: str) -> None:
    """Recompute braider_rating_stats. The rating change itself is already saved."""
    try:
        SupabaseClient.rpc("update_braider_rating_stats", {"p_braider_id": braider_id})
    except SupabaseClientError as e:
        logger.warning(f"Could not refresh rating stats for braider {braider_id}: {e}")


class RatingService:
    """
    Service for braider ratings.
    """

    @staticmethod
    def create_rating(
        user_id: UUID | str,
        payload: RatingCreate,
        user_email: str | None = None,
    ) -> dict[str, Any]:
        """
        Create a rating for a braider.

        Booking checks (when booking_id is given), in order:
        exists (404), completed (400), owned by the client (403),
        not already rated (409).
        """
        user_id = str(user_id)

        braider = SupabaseClient.fetch_one("braiders", columns="id, name, user_id", id=payload.braider_id)
        if not braider:
            raise NotFoundError("braider", payload.braider_id)

        if payload.booking_id:
            booking = SupabaseClient.fetch_one(
                "bookings",
                columns="id, client_id, braider_id, status",
                id=payload.booking_id,
            )
            if not booking:
                raise NotFoundError("booking", payload.booking_id)

            if booking.get("status") != BookingStatus.COMPLETED.value:
                raise ValidationFailedError(
                    "Only completed bookings can be rated",
                    field="booking_id",
                    details={"status": booking.get("status")},
                )

            if str(booking.get("client_id")) != user_id:
                raise OwnershipError(
                    "You can only rate your own bookings",
                    details={"violation": "rating_booking_mismatch", "booking_id": payload.booking_id},
                )

            if SupabaseClient.fetch_one("ratings", columns="id", booking_id=payload.booking_id):
                raise ConflictError("This booking has already been rated", details={"booking_id": payload.booking_id})

        user_row = SupabaseClient.fetch_user(user_id) or {}

        rating = SupabaseClient.insert_one("ratings", {
            **payload.model_dump(exclude={"client_name"}),
            "client_id": user_id,
            "client_name": payload.client_name or user_row.get("name") or "Cliente Anônimo",
            "client_email": user_email or user_row.get("email"),
            "status": RatingStatus.ACTIVE.value,
            "is_verified": bool(payload.booking_id),
        })
        logger.info(f"Rating {rating['id']} created for braider {payload.braider_id}")

        _refresh_stats(payload.braider_id)

        if braider.get("user_id"):
            publish_to_user(braider["user_id"], "rating_created", {
                "rating_id": rating["id"],
                "braider_id": payload.braider_id,
                "rating": payload.overall_rating,
                "client_name": rating.get("client_name"),
            })

        return rating

    @staticmethod
    def list_ratings(
        braider_id: str | None = None,
        client_id: str | None = None,
        booking_id: str | None = None,
        limit: int = 20,
        offset: int = 0,
        include_stats: bool = False,
    ) -> dict[str, Any]:
        """
        List active ratings, newest first.

        Returns:
            {"ratings": [...], "pagination": {...}, "stats": {...} | None}
        """
        filters: dict[str, Any] = {"status": RatingStatus.ACTIVE.value}
        if braider_id:
            filters["braider_id"] = braider_id
        if client_id:
            filters["client_id"] = client_id
        if booking_id:
            filters["booking_id"] = booking_id

        total = SupabaseClient.count("ratings", **filters)
        ratings = SupabaseClient.fetch_many(
            "ratings",
            order_by="created_at",
            descending=True,
            limit=limit,
            offset=offset,
            **filters,
        )

        stats = None
        if include_stats and braider_id:
            stats = SupabaseClient.fetch_one("braider_rating_stats", braider_id=braider_id)

        return {
            "ratings": ratings,
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "has_more": total > offset + limit,
            },
            "stats": stats,
        }

    @staticmethod
    def get_rating(rating_id: str) -> dict[str, Any]:
        """
        Get an active rating.

        Raises:
            NotFoundError: If the rating doesn't exist or isn't active
        """
        rating = SupabaseClient.fetch_one("ratings", id=rating_id, status=RatingStatus.ACTIVE.value)
        if not rating:
            raise NotFoundError("rating", rating_id)
        return rating

    @staticmethod
    def update_rating(
        user_id: UUID | str,
        role: str,
        rating_id: str,
        changes: RatingUpdate,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """
        Update a rating according to who is asking.

        - The client who wrote it may change scores and text within 7 days.
        - The rated braider may set braider_response.
        - Admins may change any field, including status.

        Raises:
            NotFoundError: If the rating doesn't exist
            OwnershipError: If the user has no say over the rating, or the edit window closed
            ValidationFailedError: If nothing the user may change was sent
        """
        user_id = str(user_id)
        now = now or utc_now()

        rating = SupabaseClient.fetch_one("ratings", id=rating_id)
        if not rating:
            raise NotFoundError("rating", rating_id)

        braider = SupabaseClient.fetch_one("braiders", columns="id, user_id", id=rating["braider_id"]) or {}

        is_admin = role == UserRole.ADMIN.value
        is_owner = str(rating.get("client_id")) == user_id
        is_braider = str(braider.get("user_id")) == user_id

        if not (is_admin or is_owner or is_braider):
            raise OwnershipError(
                "You cannot update this rating",
                details={"violation": "rating_update_denied", "rating_id": rating_id},
            )

        if is_owner and not is_admin:
            created = parse_datetime(rating.get("created_at"))
            if created is not None and created < now - CLIENT_EDIT_WINDOW:
                raise OwnershipError(
                    "Ratings can only be edited within 7 days of creation",
                    details={"rating_id": rating_id, "created_at": rating.get("created_at")},
                )

        requested = changes.model_dump(exclude_unset=True, mode="json")
        if is_admin:
            allowed = set(requested)
        else:
            allowed = set()
            if is_owner:
                allowed |= CLIENT_EDITABLE_FIELDS
            if is_braider and not is_owner:
                allowed |= BRAIDER_EDITABLE_FIELDS

        data = {k: v for k, v in requested.items() if k in allowed}
        if not data:
            raise ValidationFailedError("No fields to update", details={"sent": sorted(requested)})

        if "braider_response" in data:
            data["braider_response_date"] = to_iso(now)
        data["updated_at"] = to_iso(now)

        rows = SupabaseClient.update_where("ratings", data, id=rating_id)
        updated = rows[0] if rows else {**rating, **data}
        logger.info(f"Rating {rating_id} updated by {user_id}: {sorted(data)}")

        if "overall_rating" in data or "status" in data:
            _refresh_stats(rating["braider_id"])

        if data.get("braider_response") and rating.get("client_id"):
            publish_to_user(rating["client_id"], "rating_response", {
                "rating_id": rating_id,
                "braider_id": rating["braider_id"],
                "response": data["braider_response"],
            })

        return updated

    @staticmethod
    def delete_rating(user_id: UUID | str, role: str, rating_id: str) -> None:
        """
        Soft-delete a rating. Only its author or an admin may do so.

        Raises:
            NotFoundError: If the rating doesn't exist
            OwnershipError: If the user is neither author nor admin
        """
        user_id = str(user_id)

        rating = SupabaseClient.fetch_one("ratings", columns="id, client_id, braider_id", id=rating_id)
        if not rating:
            raise NotFoundError("rating", rating_id)

        if str(rating.get("client_id")) != user_id and role != UserRole.ADMIN.value:
            raise OwnershipError(
                "You cannot delete this rating",
                details={"violation": "rating_delete_denied", "rating_id": rating_id},
            )

        SupabaseClient.update_where(
            "ratings",
            {"status": RatingStatus.DELETED.value, "updated_at": to_iso(utc_now())},
            id=rating_id,
        )
        logger.info(f"Rating {rating_id} deleted by {user_id}")
        _refresh_stats(rating["braider_id"])

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    @staticmethod
    def report_rating(user_id: UUID | str, payload: RatingReportCreate) -> dict[str, Any]:
        """
        Report a rating for moderation.

        Raises:
            NotFoundError: If the rating doesn't exist
            ConflictError: If the user already reported it
        """
        user_id = str(user_id)

        if not SupabaseClient.fetch_one("ratings", columns="id, status", id=payload.rating_id):
            raise NotFoundError("rating", payload.rating_id)

        if SupabaseClient.fetch_one("rating_reports", columns="id", rating_id=payload.rating_id, reporter_id=user_id):
            raise ConflictError("You already reported this rating", details={"rating_id": payload.rating_id})

        report = SupabaseClient.insert_one("rating_reports", {
            "rating_id": payload.rating_id,
            "reporter_id": user_id,
            "reason": payload.reason.value,
            "description": payload.description,
            "status": ReportStatus.PENDING.value,
        })
        logger.info(f"Rating {payload.rating_id} reported by {user_id} ({payload.reason.value})")

        pending = SupabaseClient.count(
            "rating_reports",
            rating_id=payload.rating_id,
            status=ReportStatus.PENDING.value,
        )
        if pending >= AUTO_FLAG_REPORTS:
            SupabaseClient.update_where(
                "ratings",
                {
                    "status": RatingStatus.FLAGGED.value,
                    "flagged_reason": "Múltiplos reports de usuários",
                    "updated_at": to_iso(utc_now()),
                },
                id=payload.rating_id,
            )
            logger.warning(f"Rating {payload.rating_id} auto-flagged after {pending} reports")

        return report

    @staticmethod
    def list_reports(status: ReportStatus | None = None, limit: int = 50, offset: int = 0) -> dict[str, Any]:
        filters: dict[str, Any] = {}
        if status:
            filters["status"] = status.value

        total = SupabaseClient.count("rating_reports", **filters)
        reports = SupabaseClient.fetch_many(
            "rating_reports",
            order_by="created_at",
            descending=True,
            limit=limit,
            offset=offset,
            **filters,
        )
        return {
            "reports": reports,
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "has_more": total > offset + limit,
            },
        }

    @staticmethod
    def review_report(admin_id: UUID | str, report_id: str, decision: RatingReportReview) -> dict[str, Any]:
        """
        Record an admin decision and apply its rating action.

        Hiding or deleting the rating refreshes the braider's stats.

        Raises:
            NotFoundError: If the report doesn't exist
        """
        report = SupabaseClient.fetch_one("rating_reports", id=report_id)
        if not report:
            raise NotFoundError("report", report_id)

        now = to_iso(utc_now())
        rows = SupabaseClient.update_where("rating_reports", {
            "status": decision.status.value,
            "admin_notes": decision.admin_notes,
            "reviewed_by": str(admin_id),
            "reviewed_at": now,
        }, id=report_id)

        if decision.status == ReportStatus.ACTION_TAKEN and decision.rating_action:
            new_status, reason = MODERATION_RESULTS[decision.rating_action]
            if decision.rating_action == RatingAction.FLAG:
                reason = f"{reason}: {decision.admin_notes or 'Sem detalhes'}"
            moderated = SupabaseClient.update_where(
                "ratings",
                {"status": new_status.value, "flagged_reason": reason, "updated_at": now},
                id=report["rating_id"],
            )
            logger.info(f"Rating {report['rating_id']} set to {new_status.value} by admin {admin_id}")

            braider_id = moderated[0].get("braider_id") if moderated else None
            if decision.rating_action in (RatingAction.HIDE, RatingAction.DELETE) and braider_id:
                _refresh_stats(braider_id)

        return rows[0] if rows else report

    @staticmethod
    def delete_report(report_id: str) -> None:
        if not SupabaseClient.delete_where("rating_reports", id=report_id):
            raise NotFoundError("report", report_id)
