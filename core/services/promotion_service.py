# =============================================================================
# core/services/promotion_service.py - Promotion Display & Tracking
# =============================================================================
# Read side of paid promotions:
# - braider listings with promoted profiles first
# - the homepage hero banner
# - view / click counters
# - admin review, extension and automatic expiry
# =============================================================================

import logging
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from app.exceptions import NotFoundError, ValidationFailedError
from core.models.braider import BraiderStatus
from core.models.promotion import PromotionExtendRequest, PromotionStatus, PromotionType
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import parse_datetime, to_iso, utc_now

logger = logging.getLogger(__name__)

LISTING_TYPES = [PromotionType.PROFILE_HIGHLIGHT.value, PromotionType.COMBO_PACKAGE.value]

REVIEW_STATUSES = (PromotionStatus.ACTIVE, PromotionStatus.REJECTED)


def _running(promotion: dict[str, Any], now: datetime) -> bool:
    start = parse_datetime(promotion.get("start_date"))
    end = parse_datetime(promotion.get("end_date"))
    return start is not None and end is not None and start <= now <= end


def _ended(promotion: dict[str, Any], now: datetime) -> bool:
    end = parse_datetime(promotion.get("end_date"))
    return end is not None and end < now


def _public_braider(braider: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": braider["id"],
        "name": braider.get("name"),
        "email": braider.get("contact_email"),
        "profile_image_url": braider.get("profile_image_url"),
        "location": braider.get("location"),
        "district": braider.get("district"),
        "concelho": braider.get("concelho"),
        "freguesia": braider.get("freguesia"),
        "specialties": braider.get("specialties") or [],
        "rating": braider.get("average_rating"),
        "review_count": braider.get("total_reviews"),
        "verified": bool(braider.get("is_verified")),
    }


def _location_text(braider: dict[str, Any]) -> str:
    parts = [braider.get("location"), braider.get("freguesia"), braider.get("concelho"), braider.get("district")]
    return " ".join(p for p in parts if p).lower()


class PromotionService:
    """
    Service for displaying and tracking promotions.
    """

    # -------------------------------------------------------------------------
    # Counters
    # -------------------------------------------------------------------------

    @staticmethod
    def _increment(promotion_id: str, column: str) -> None:
        """
        Bump a promotion counter.

        Uses the increment_promotion_counter RPC when the database has it,
        otherwise a read-then-write on the row.
        """
        try:
            SupabaseClient.rpc("increment_promotion_counter", {"promotion_id": promotion_id, "field_name": column})
            return
        except SupabaseClientError as e:
            logger.debug(f"increment_promotion_counter unavailable, updating directly: {e}")

        row = SupabaseClient.fetch_one("promotions", columns=f"id, {column}", id=promotion_id)
        if not row:
            raise NotFoundError("promotion", promotion_id)
        SupabaseClient.update_where(
            "promotions",
            {column: (row.get(column) or 0) + 1, "updated_at": to_iso(utc_now())},
            id=promotion_id,
        )

    @staticmethod
    def track_view(promotion_id: str) -> None:
        try:
            PromotionService._increment(promotion_id, "views_count")
        except (SupabaseClientError, NotFoundError) as e:
            # Listings must render even if the counter can't be updated
            logger.error(f"Failed to count view of promotion {promotion_id}: {e}")

    @staticmethod
    def track_click(promotion_id: str) -> None:
        """
        Count a click on a promotion.

        Raises:
            NotFoundError: If the promotion doesn't exist
        """
        PromotionService._increment(promotion_id, "clicks_count")

    # -------------------------------------------------------------------------
    # Display
    # -------------------------------------------------------------------------

    @staticmethod
    def get_braiders_with_promotions(
        limit: int = 20,
        location: str | None = None,
        specialty: str | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """
        Approved braiders, promoted ones first.

        Promoted braiders are capped at `limit`; regular braiders fill
        whatever room is left.

        Returns:
            {"promoted": [...], "regular": [...], "total": int}
        """
        now = now or utc_now()

        promotions = [
            p for p in SupabaseClient.fetch_many(
                "promotions",
                columns="id, user_id, type, start_date, end_date, views_count, clicks_count, content_data, metadata, created_at",
                order_by="created_at",
                descending=True,
                status=PromotionStatus.ACTIVE.value,
                type=LISTING_TYPES,
            )
            if _running(p, now)
        ]
        by_user: dict[str, dict[str, Any]] = {}
        for promotion in promotions:
            # newest first, so the first one seen wins
            by_user.setdefault(str(promotion["user_id"]), promotion)

        braiders = SupabaseClient.fetch_many(
            "braiders",
            order_by="average_rating",
            descending=True,
            status=BraiderStatus.APPROVED.value,
        )

        if location:
            needle = location.lower()
            braiders = [b for b in braiders if needle in _location_text(b)]
        if specialty:
            needle = specialty.lower()
            braiders = [
                b for b in braiders
                if any(needle in (s or "").lower() for s in b.get("specialties") or [])
            ]

        promoted, regular = [], []
        for braider in braiders:
            promotion = by_user.get(str(braider.get("user_id")))
            if promotion:
                promoted.append({
                    **_public_braider(braider),
                    "promotion": {
                        "id": promotion["id"],
                        "type": promotion["type"],
                        "start_date": promotion.get("start_date"),
                        "end_date": promotion.get("end_date"),
                        "views_count": promotion.get("views_count") or 0,
                        "clicks_count": promotion.get("clicks_count") or 0,
                        "content_data": promotion.get("content_data") or {},
                        "metadata": promotion.get("metadata") or {},
                    },
                })
            else:
                regular.append(_public_braider(braider))

        promoted = promoted[:limit]
        regular = regular[:max(0, limit - len(promoted))]

        for braider in promoted:
            PromotionService.track_view(braider["promotion"]["id"])

        return {"promoted": promoted, "regular": regular, "total": len(promoted) + len(regular)}

    @staticmethod
    def get_active_hero_banner(now: datetime | None = None) -> dict[str, Any] | None:
        """The newest running hero banner, or None."""
        now = now or utc_now()

        banners = [
            p for p in SupabaseClient.fetch_many(
                "promotions",
                columns="id, title, type, content_data, user_id, start_date, end_date, views_count, clicks_count, created_at",
                order_by="created_at",
                descending=True,
                status=PromotionStatus.ACTIVE.value,
                type=PromotionType.HERO_BANNER.value,
            )
            if _running(p, now)
        ]
        if not banners:
            return None

        banner = banners[0]
        PromotionService.track_view(banner["id"])
        return banner

    # -------------------------------------------------------------------------
    # Management
    # -------------------------------------------------------------------------

    @staticmethod
    def list_user_promotions(user_id: UUID | str, status: str | None = None) -> list[dict[str, Any]]:
        filters: dict[str, Any] = {"user_id": str(user_id)}
        if status:
            filters["status"] = status
        return SupabaseClient.fetch_many("promotions", order_by="created_at", descending=True, **filters)

    @staticmethod
    def admin_review(
        admin_id: UUID | str,
        promotion_id: str,
        status: PromotionStatus | str,
        notes: str | None = None,
    ) -> dict[str, Any]:
        """
        Approve (active) or reject a promotion.

        Raises:
            ValidationFailedError: For any other target status
            NotFoundError: If the promotion doesn't exist
        """
        status = PromotionStatus(status)
        if status not in REVIEW_STATUSES:
            raise ValidationFailedError(
                "Status must be active or rejected",
                field="status",
                details={"allowed": [s.value for s in REVIEW_STATUSES]},
            )

        promotion = SupabaseClient.fetch_one("promotions", columns="id, metadata", id=promotion_id)
        if not promotion:
            raise NotFoundError("promotion", promotion_id)

        now = to_iso(utc_now())
        rows = SupabaseClient.update_where(
            "promotions",
            {
                "status": status.value,
                "updated_at": now,
                "metadata": {
                    **(promotion.get("metadata") or {}),
                    "reviewed_by": str(admin_id),
                    "reviewed_at": now,
                    "review_notes": notes,
                },
            },
            id=promotion_id,
        )
        logger.info(f"Promotion {promotion_id} reviewed by {admin_id}: {status.value}")
        return rows[0] if rows else {"id": promotion_id, "status": status.value}

    @staticmethod
    def extend_promotion(
        user_id: UUID | str,
        request: PromotionExtendRequest,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """
        Add days to a running promotion of the user.

        Raises:
            NotFoundError: If the promotion doesn't exist or belongs to someone else
            ValidationFailedError: If the promotion isn't active or already ended
        """
        now = now or utc_now()

        promotion = SupabaseClient.fetch_one(
            "promotions",
            columns="id, status, end_date, metadata",
            id=request.promotion_id,
            user_id=str(user_id),
        )
        if not promotion:
            raise NotFoundError("promotion", request.promotion_id)

        end = parse_datetime(promotion.get("end_date"))
        if promotion.get("status") != PromotionStatus.ACTIVE.value or end is None or end <= now:
            raise ValidationFailedError(
                "Only active promotions can be extended",
                field="promotion_id",
                details={"status": promotion.get("status"), "end_date": promotion.get("end_date")},
            )

        metadata = promotion.get("metadata") or {}
        new_end = end + timedelta(days=request.additional_days)
        rows = SupabaseClient.update_where(
            "promotions",
            {
                "end_date": to_iso(new_end),
                "updated_at": to_iso(now),
                "metadata": {
                    **metadata,
                    "extended": True,
                    "extension_days": (metadata.get("extension_days") or 0) + request.additional_days,
                    "last_extended": to_iso(now),
                    "extended_with_package": request.package_id,
                },
            },
            id=request.promotion_id,
        )
        logger.info(f"Promotion {request.promotion_id} extended by {request.additional_days} days to {to_iso(new_end)}")
        return rows[0] if rows else {**promotion, "end_date": to_iso(new_end)}

    @staticmethod
    def expire_promotions(now: datetime | None = None) -> list[str]:
        """
        Mark active promotions whose end_date has passed as expired.

        Returns:
            Ids of the promotions expired by this call
        """
        now = now or utc_now()

        active = SupabaseClient.fetch_many(
            "promotions",
            columns="id, end_date",
            status=PromotionStatus.ACTIVE.value,
        )
        ended = [p["id"] for p in active if _ended(p, now)]
        if not ended:
            return []

        SupabaseClient.update_where(
            "promotions",
            {"status": PromotionStatus.EXPIRED.value, "updated_at": to_iso(now)},
            id=ended,
        )
        logger.info(f"Expired {len(ended)} promotions")
        return ended
