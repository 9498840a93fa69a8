# =============================================================================
# core/services/braider_service.py - Braider Business Logic
# =============================================================================
# Handles braider registration, public listings, owner profile edits, the
# admin approval workflow and the two search modes:
# - find_nearby: haversine radius search around a point in Portugal
# - find_by_location: district / concelho / freguesia search
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import ConflictError, NotFoundError, ValidationFailedError
from core.models.braider import BraiderProfileUpdate, BraiderRegister, BraiderStatus
from core.roles import UserRole
from core.services.ownership_service import OwnershipService
from lib.geo import haversine_km, is_within_portugal
from lib.supabase_client import SupabaseClient
from lib.utils import round_money, to_iso, utc_now

logger = logging.getLogger(__name__)

PUBLIC_COLUMNS = (
    "id, user_id, name, bio, profile_image_url, district, concelho, freguesia, "
    "latitude, longitude, specialties, serves_home, serves_studio, serves_salon, "
    "max_travel_distance, min_price, max_price, average_rating, total_reviews, status"
)
PUBLIC_FIELDS = [column.strip() for column in PUBLIC_COLUMNS.split(",")]

STATUS_MESSAGES = {
    BraiderStatus.APPROVED.value: "aprovada",
    BraiderStatus.REJECTED.value: "rejeitada",
    BraiderStatus.PENDING.value: "marcada como pendente",
}


class BraiderService:
    """
    Service for braider profiles.
    """

    @staticmethod
    def register_braider(
        user_id: UUID | str,
        payload: BraiderRegister,
    ) -> dict[str, Any]:
        """
        Create a braider profile in pending state.

        Raises:
            ConflictError: If a profile already uses this contact email
        """
        existing = SupabaseClient.fetch_one("braiders", columns="id, status", contact_email=payload.contact_email)
        if existing:
            raise ConflictError(
                "A braider profile with this email already exists",
                details={"braider_id": existing["id"], "status": existing.get("status")},
            )

        data = payload.model_dump()
        data.update({
            "user_id": str(user_id),
            "status": BraiderStatus.PENDING.value,
            "average_rating": 0,
            "total_reviews": 0,
        })

        braider = SupabaseClient.insert_one("braiders", data)
        logger.info(f"Registered braider {braider['id']} for user {user_id}")
        return braider

    @staticmethod
    def get_braider(
        braider_id: str,
        include_services: bool = True,
        viewer_id: UUID | str | None = None,
        viewer_role: str | None = None,
    ) -> dict[str, Any]:
        """
        Get a braider with its available services.

        Other users and anonymous callers only see the public columns of an
        approved profile. The owner and admins see the full row in any status.

        Raises:
            NotFoundError: If the braider doesn't exist or isn't visible to the viewer
        """
        braider = SupabaseClient.fetch_one("braiders", id=braider_id)
        if not braider:
            raise NotFoundError("braider", braider_id)

        privileged = viewer_role == UserRole.ADMIN.value or (
            viewer_id is not None and str(braider.get("user_id")) == str(viewer_id)
        )
        if not privileged:
            if braider.get("status") != BraiderStatus.APPROVED.value:
                raise NotFoundError("braider", braider_id)
            braider = {field: braider.get(field) for field in PUBLIC_FIELDS}

        if include_services:
            braider["services"] = SupabaseClient.fetch_many(
                "services",
                braider_id=braider_id,
                is_available=True,
                order_by="price",
            )
        return braider

    @staticmethod
    def list_braiders(
        status: str = BraiderStatus.APPROVED.value,
        district: str | None = None,
        specialty: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[dict[str, Any]], int]:
        """
        List braiders with optional filters.

        Returns:
            Tuple of (page of braiders, total matching)
        """
        filters: dict[str, Any] = {"status": status}
        if district:
            filters["district"] = district

        rows = SupabaseClient.fetch_many(
            "braiders",
            columns=PUBLIC_COLUMNS,
            order_by="average_rating",
            descending=True,
            **filters,
        )

        if specialty:
            needle = specialty.lower()
            rows = [
                r for r in rows
                if any(needle in (s or "").lower() for s in r.get("specialties") or [])
            ]

        total = len(rows)
        start = (page - 1) * page_size
        return rows[start:start + page_size], total

    @staticmethod
    def update_profile(
        user_id: UUID | str,
        braider_id: str,
        changes: BraiderProfileUpdate,
    ) -> dict[str, Any]:
        """
        Apply owner edits to a braider profile.

        Only fields explicitly sent are written; status is never part of
        a profile update.

        Raises:
            OwnershipError: If the user doesn't own the profile
        """
        OwnershipService.ensure_valid(OwnershipService.validate_braider_ownership(user_id, braider_id))

        data = changes.model_dump(exclude_unset=True)
        data.pop("status", None)

        current = SupabaseClient.fetch_one("braiders", columns="min_price, max_price", id=braider_id) or {}
        min_price = data.get("min_price", current.get("min_price"))
        max_price = data.get("max_price", current.get("max_price"))
        if min_price is not None and max_price is not None and min_price > max_price:
            raise ValidationFailedError("min_price must not exceed max_price", field="min_price")

        if not data:
            return BraiderService.get_braider(braider_id, include_services=False, viewer_id=user_id)

        data["updated_at"] = to_iso(utc_now())
        rows = SupabaseClient.update_where("braiders", data, id=braider_id)
        logger.info(f"Updated braider profile {braider_id}: {sorted(data)}")
        return rows[0] if rows else BraiderService.get_braider(braider_id, include_services=False, viewer_id=user_id)

    @staticmethod
    def set_status(
        admin_id: UUID | str,
        braider_id: str,
        status: str,
        reason: str | None = None,
    ) -> dict[str, Any]:
        """
        Admin approval workflow.

        Returns:
            Dict with the updated braider and a Portuguese status message

        Raises:
            ValidationFailedError: If status isn't pending/approved/rejected
            NotFoundError: If the braider doesn't exist
        """
        valid = [s.value for s in BraiderStatus]
        if status not in valid:
            raise ValidationFailedError(
                f"Invalid status: {status}",
                field="status",
                details={"allowed": valid},
            )

        rows = SupabaseClient.update_where(
            "braiders",
            {
                "status": status,
                "review_reason": reason,
                "reviewed_at": to_iso(utc_now()),
                "reviewed_by": str(admin_id),
                "updated_at": to_iso(utc_now()),
            },
            id=braider_id,
        )
        if not rows:
            raise NotFoundError("braider", braider_id)

        logger.info(f"Admin {admin_id} set braider {braider_id} to {status}")
        return {
            "braider": rows[0],
            "message": f"Trancista {STATUS_MESSAGES[status]} com sucesso",
        }

    @staticmethod
    def find_nearby(
        lat: float,
        lon: float,
        radius_km: float = 50.0,
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, Any]:
        """
        Find approved braiders within radius_km of a point.

        Raises:
            ValidationFailedError: If the point is outside Portugal
        """
        if not is_within_portugal(lat, lon):
            raise ValidationFailedError(
                "Coordinates must be within Portugal",
                details={"latitude": lat, "longitude": lon},
            )

        candidates = SupabaseClient.fetch_many(
            "braiders",
            columns=PUBLIC_COLUMNS,
            status=BraiderStatus.APPROVED.value,
        )

        within: list[dict[str, Any]] = []
        for braider in candidates:
            if braider.get("latitude") is None or braider.get("longitude") is None:
                continue
            distance = round_money(haversine_km(lat, lon, float(braider["latitude"]), float(braider["longitude"])))
            if distance <= radius_km:
                within.append({**braider, "distance_km": distance})

        within.sort(key=lambda b: b["distance_km"])

        start = (page - 1) * limit
        page_items = within[start:start + limit]

        return {
            "braiders": page_items,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": len(within),
                "has_next": len(page_items) == limit,
            },
            "search": {"latitude": lat, "longitude": lon, "radius": radius_km, "found": len(within)},
        }

    @staticmethod
    def find_by_location(
        district: str,
        concelho: str | None = None,
        freguesia: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, Any]:
        """
        Search approved braiders by administrative area, best rated first.
        """
        if not district:
            raise ValidationFailedError("district is required", field="district")

        filters: dict[str, Any] = {"status": BraiderStatus.APPROVED.value, "district": district}
        if concelho:
            filters["concelho"] = concelho
        if freguesia:
            filters["freguesia"] = freguesia

        rows = SupabaseClient.fetch_many("braiders", columns=PUBLIC_COLUMNS, **filters)
        rows.sort(
            key=lambda b: (float(b.get("average_rating") or 0), int(b.get("total_reviews") or 0)),
            reverse=True,
        )

        start = (page - 1) * limit
        page_items = rows[start:start + limit]

        return {
            "braiders": page_items,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": len(rows),
                "has_next": start + limit < len(rows),
            },
            "search": {"district": district, "concelho": concelho, "freguesia": freguesia},
        }
