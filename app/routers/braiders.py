# =============================================================================
# app/routers/braiders.py - Braider Endpoints
# =============================================================================
# Public discovery (list, search, profile) and braider self-service
# (registration, profile, service catalog, availability, bookings, earnings).
#
# Write endpoints require authentication and braider ownership, which the
# services enforce through OwnershipService.
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Path, Query, status

from app.auth import resolve_role
from app.config import settings
from app.dependencies import CurrentUser, OptionalUser
from app.exceptions import NotFoundError
from core.models.booking import AvailabilityCreate, BookingStatus
from core.models.braider import BraiderProfileUpdate, BraiderRegister, ServiceCreate, ServiceUpdate
from core.services.booking_service import BookingService
from core.services.braider_service import BraiderService
from core.services.catalog_service import CatalogService
from core.services.commission_service import CommissionService
from core.services.ownership_service import OwnershipService

router = APIRouter()


# =============================================================================
# Discovery
# =============================================================================

@router.get("")
async def list_braiders(
    district: Annotated[str | None, Query(description="Filter by district")] = None,
    specialty: Annotated[str | None, Query(description="Substring of a specialty")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
):
    """
    List approved braiders, best rated first.
    """
    braiders, total = BraiderService.list_braiders(
        district=district,
        specialty=specialty,
        page=page,
        page_size=page_size,
    )
    return {
        "braiders": braiders,
        "total": total,
        "page": page,
        "page_size": page_size,
        "has_more": page * page_size < total,
    }


@router.get("/nearby")
async def nearby_braiders(
    lat: Annotated[float, Query(description="Latitude")],
    lon: Annotated[float, Query(description="Longitude")],
    radius: Annotated[float | None, Query(gt=0, le=500, description="Radius in km")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
):
    """
    Approved braiders within `radius` km of a point in Portugal, nearest first.
    """
    return BraiderService.find_nearby(
        lat,
        lon,
        radius_km=radius or settings.NEARBY_DEFAULT_RADIUS_KM,
        page=page,
        limit=limit,
    )


@router.get("/search")
async def search_by_location(
    district: Annotated[str, Query(min_length=1)],
    concelho: Annotated[str | None, Query()] = None,
    freguesia: Annotated[str | None, Query()] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
):
    """
    Approved braiders in a district (optionally concelho / freguesia).
    """
    return BraiderService.find_by_location(district, concelho, freguesia, page=page, limit=limit)


# =============================================================================
# Self-service
# =============================================================================

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register_braider(payload: BraiderRegister, user: CurrentUser):
    """
    Register the current user as a braider. The profile starts pending review.
    """
    braider = BraiderService.register_braider(user.id, payload)
    return {
        "success": True,
        "braider_id": braider["id"],
        "status": braider["status"],
        "message": "Registration received and awaiting approval",
    }


@router.get("/me")
async def my_braider_profile(user: CurrentUser):
    """
    The braider profile linked to the current user (by user id or email).
    """
    braider = OwnershipService.get_braider_by_user_id(user.id, email=user.email)
    if not braider:
        raise NotFoundError("braider", str(user.id))
    return braider


@router.get("/{braider_id}")
async def get_braider(braider_id: Annotated[str, Path(description="Braider id")], user: OptionalUser):
    """
    Braider profile with available services.

    Public callers see approved profiles only. The owner and admins also see
    pending or rejected profiles with every column.
    """
    return BraiderService.get_braider(
        braider_id,
        viewer_id=user.id if user else None,
        viewer_role=resolve_role(user) if user else None,
    )


@router.put("/{braider_id}")
async def update_braider_profile(braider_id: str, changes: BraiderProfileUpdate, user: CurrentUser):
    """
    Update the braider's own profile. Status cannot be changed here.
    """
    return BraiderService.update_profile(user.id, braider_id, changes)


# =============================================================================
# Services
# =============================================================================

@router.get("/{braider_id}/services")
async def list_services(
    braider_id: str,
    available_only: Annotated[bool, Query()] = False,
):
    return {"services": CatalogService.list_services(braider_id, available_only=available_only)}


@router.post("/{braider_id}/services", status_code=status.HTTP_201_CREATED)
async def create_service(braider_id: str, payload: ServiceCreate, user: CurrentUser):
    return CatalogService.create_service(user.id, braider_id, payload)


@router.put("/services/{service_id}")
async def update_service(service_id: str, changes: ServiceUpdate, user: CurrentUser):
    return CatalogService.update_service(user.id, service_id, changes)


@router.delete("/services/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service(service_id: str, user: CurrentUser):
    CatalogService.delete_service(user.id, service_id)


# =============================================================================
# Availability
# =============================================================================

@router.get("/{braider_id}/availability")
async def list_availability(
    braider_id: str,
    date_from: Annotated[str | None, Query(description="YYYY-MM-DD")] = None,
    only_free: Annotated[bool, Query()] = True,
):
    """
    Availability slots of a braider, free ones only by default.
    """
    return {"availability": BookingService.list_availability(braider_id, date_from=date_from, only_free=only_free)}


@router.post("/{braider_id}/availability", status_code=status.HTTP_201_CREATED)
async def create_availability(braider_id: str, payload: AvailabilityCreate, user: CurrentUser):
    return BookingService.create_availability(user.id, braider_id, payload)


@router.delete("/availability/{availability_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_availability(availability_id: str, user: CurrentUser):
    BookingService.delete_availability(user.id, availability_id)


# =============================================================================
# Bookings & earnings
# =============================================================================

@router.get("/{braider_id}/bookings")
async def list_braider_bookings(
    braider_id: str,
    user: CurrentUser,
    booking_status: Annotated[BookingStatus | None, Query(alias="status")] = None,
):
    """
    Bookings received by the braider. Owner only.
    """
    return {"bookings": BookingService.list_braider_bookings(user.id, braider_id, status=booking_status)}


@router.get("/{braider_id}/earnings")
async def braider_earnings(braider_id: str, user: CurrentUser):
    """
    Earnings dashboard. Owner or admin.
    """
    return CommissionService.braider_earnings(
        user.id,
        resolve_role(user),
        braider_id,
        user_email=user.email,
    )
