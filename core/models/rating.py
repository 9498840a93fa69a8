# =============================================================================
# core/models/rating.py - Rating Schemas
# =============================================================================
# A rating is a client's review of a braider. Ratings tied to a completed
# booking are marked verified.
# =============================================================================

from enum import Enum

from pydantic import BaseModel, Field


class RatingCreate(BaseModel):
    """
    Schema for submitting a rating.

    Example:
        {
            "braider_id": "…",
            "booking_id": "…",
            "overall_rating": 5,
            "quality_rating": 5,
            "review_text": "Excelente trabalho!"
        }
    """
    braider_id: str
    booking_id: str | None = None
    service_id: str | None = None
    client_name: str | None = Field(default=None, max_length=120)
    overall_rating: int = Field(..., ge=1, le=5)
    quality_rating: int | None = Field(default=None, ge=1, le=5)
    punctuality_rating: int | None = Field(default=None, ge=1, le=5)
    communication_rating: int | None = Field(default=None, ge=1, le=5)
    professionalism_rating: int | None = Field(default=None, ge=1, le=5)
    review_title: str | None = Field(default=None, max_length=200)
    review_text: str | None = Field(default=None, max_length=5000)
    review_images: list[str] = Field(default_factory=list)


class RatingStatus(str, Enum):
    """Moderation state of a rating. Only active ratings are listed."""
    ACTIVE = "active"
    HIDDEN = "hidden"
    FLAGGED = "flagged"
    DELETED = "deleted"


# Fields each party may change on an existing rating
CLIENT_EDITABLE_FIELDS = {
    "overall_rating",
    "quality_rating",
    "punctuality_rating",
    "communication_rating",
    "professionalism_rating",
    "review_title",
    "review_text",
    "review_images",
}
BRAIDER_EDITABLE_FIELDS = {"braider_response"}


class RatingUpdate(BaseModel):
    """
    Partial update of a rating.

    The client edits scores and text, the braider answers with
    braider_response, and admins may also moderate status.
    """
    overall_rating: int | None = Field(default=None, ge=1, le=5)
    quality_rating: int | None = Field(default=None, ge=1, le=5)
    punctuality_rating: int | None = Field(default=None, ge=1, le=5)
    communication_rating: int | None = Field(default=None, ge=1, le=5)
    professionalism_rating: int | None = Field(default=None, ge=1, le=5)
    review_title: str | None = Field(default=None, max_length=200)
    review_text: str | None = Field(default=None, max_length=5000)
    review_images: list[str] | None = None
    braider_response: str | None = Field(default=None, max_length=2000)
    status: RatingStatus | None = None
    flagged_reason: str | None = Field(default=None, max_length=500)


# =============================================================================
# Reports
# =============================================================================

class ReportReason(str, Enum):
    INAPPROPRIATE_CONTENT = "inappropriate_content"
    FAKE_REVIEW = "fake_review"
    SPAM = "spam"
    HARASSMENT = "harassment"
    OFF_TOPIC = "off_topic"
    OTHER = "other"


class ReportStatus(str, Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    DISMISSED = "dismissed"
    ACTION_TAKEN = "action_taken"


class RatingAction(str, Enum):
    """What moderation does to the reported rating."""
    HIDE = "hide"
    DELETE = "delete"
    FLAG = "flag"


class RatingReportCreate(BaseModel):
    rating_id: str
    reason: ReportReason
    description: str | None = Field(default=None, max_length=2000)


class RatingReportReview(BaseModel):
    """
    Admin decision on a report.

    rating_action is applied only when status is action_taken.
    """
    status: ReportStatus
    admin_notes: str | None = Field(default=None, max_length=2000)
    rating_action: RatingAction | None = None
