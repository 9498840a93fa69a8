# =============================================================================
# app/routers/ratings.py - Rating Endpoints
# =============================================================================
# Ratings of braiders plus the moderation flow: users report ratings, admins
# review the reports and hide, flag or delete the rating.
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Query, status

from app.auth import resolve_role
from app.dependencies import AdminUser, CurrentUser
from core.models.rating import RatingCreate, RatingReportCreate, RatingReportReview, RatingUpdate, ReportStatus
from core.services.rating_service import RatingService

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_rating(payload: RatingCreate, user: CurrentUser):
    """
    Rate a braider. Ratings tied to a completed booking are marked verified.
    """
    rating = RatingService.create_rating(user.id, payload, user_email=user.email)
    return {"success": True, "rating": rating}


@router.get("")
async def list_ratings(
    braider_id: Annotated[str | None, Query()] = None,
    client_id: Annotated[str | None, Query()] = None,
    booking_id: Annotated[str | None, Query()] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
    include_stats: Annotated[bool, Query()] = False,
):
    """
    Active ratings, newest first.
    """
    return RatingService.list_ratings(
        braider_id=braider_id,
        client_id=client_id,
        booking_id=booking_id,
        limit=limit,
        offset=offset,
        include_stats=include_stats,
    )


# =============================================================================
# Reports
# =============================================================================

@router.post("/reports", status_code=status.HTTP_201_CREATED)
async def report_rating(payload: RatingReportCreate, user: CurrentUser):
    """
    Report a rating. Each user may report a rating once.
    """
    report = RatingService.report_rating(user.id, payload)
    return {"success": True, "report": report}


@router.get("/reports")
async def list_reports(
    user: AdminUser,
    report_status: Annotated[ReportStatus | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return RatingService.list_reports(status=report_status, limit=limit, offset=offset)


@router.patch("/reports/{report_id}")
async def review_report(report_id: str, decision: RatingReportReview, user: AdminUser):
    """
    Decide on a report. With status action_taken, rating_action is applied
    to the reported rating.
    """
    report = RatingService.review_report(user.id, report_id, decision)
    return {"success": True, "report": report}


@router.delete("/reports/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_report(report_id: str, user: AdminUser):
    RatingService.delete_report(report_id)


# =============================================================================
# Single rating
# =============================================================================

@router.get("/{rating_id}")
async def get_rating(rating_id: str):
    return {"rating": RatingService.get_rating(rating_id)}


@router.patch("/{rating_id}")
async def update_rating(rating_id: str, changes: RatingUpdate, user: CurrentUser):
    """
    Edit a rating.

    The author edits scores and text within 7 days, the braider replies
    through braider_response, admins moderate.
    """
    rating = RatingService.update_rating(user.id, resolve_role(user), rating_id, changes)
    return {"success": True, "rating": rating}


@router.delete("/{rating_id}")
async def delete_rating(rating_id: str, user: CurrentUser):
    """
    Soft-delete a rating. Author or admin only.
    """
    RatingService.delete_rating(user.id, resolve_role(user), rating_id)
    return {"success": True, "message": "Rating deleted"}
