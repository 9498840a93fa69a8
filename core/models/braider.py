# =============================================================================
# core/models/braider.py - Braider & Service Schemas
# =============================================================================
# These models define the API contract for braider operations:
# - BraiderRegister: Self-registration payload (starts as pending)
# - BraiderProfileUpdate: Owner edits (status is never editable here)
# - BraiderStatusUpdate: Admin approval workflow
# - LocationSearch: District/concelho/freguesia search
# - ServiceCreate / ServiceUpdate: A braider's service catalog
#
# A braider is a service provider profile linked to a user account.
# Only approved braiders appear in public listings.
# =============================================================================

from enum import Enum

from pydantic import BaseModel, Field, model_validator


class BraiderStatus(str, Enum):
    """
    Approval states for a braider profile.

    Flow: pending -> approved | rejected (admin can move back to pending)
    """
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class BraiderRegister(BaseModel):
    """
    Schema for registering as a braider.

    Example:
        {
            "name": "Ana Tranças",
            "contact_email": "ana@example.com",
            "district": "Lisboa",
            "concelho": "Sintra",
            "specialties": ["box braids", "twists"],
            "serves_home": true,
            "min_price": 40,
            "max_price": 120
        }
    """

    name: str = Field(..., min_length=2, max_length=120)
    bio: str | None = Field(default=None, max_length=2000)
    contact_email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    contact_phone: str | None = None
    whatsapp: str | None = None
    instagram: str | None = None

    # Structured Portuguese location
    district: str = Field(..., min_length=2)
    concelho: str = Field(..., min_length=2)
    freguesia: str | None = None
    address: str | None = None
    postal_code: str | None = Field(default=None, pattern=r"^\d{4}-\d{3}$")
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)

    # Where the braider works
    serves_home: bool = False
    serves_studio: bool = False
    serves_salon: bool = False
    max_travel_distance: int = Field(default=10, ge=0, le=500)
    salon_name: str | None = None
    salon_address: str | None = None

    specialties: list[str] = Field(default_factory=list)
    years_experience: int | None = Field(default=None, ge=0, le=80)
    min_price: float | None = Field(default=None, ge=0)
    max_price: float | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_price_range(self) -> "BraiderRegister":
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError("min_price must not exceed max_price")
        return self


class BraiderProfileUpdate(BaseModel):
    """Fields a braider may edit on their own profile."""

    name: str | None = Field(default=None, min_length=2, max_length=120)
    bio: str | None = Field(default=None, max_length=2000)
    contact_phone: str | None = None
    whatsapp: str | None = None
    instagram: str | None = None
    district: str | None = None
    concelho: str | None = None
    freguesia: str | None = None
    address: str | None = None
    postal_code: str | None = Field(default=None, pattern=r"^\d{4}-\d{3}$")
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    serves_home: bool | None = None
    serves_studio: bool | None = None
    serves_salon: bool | None = None
    max_travel_distance: int | None = Field(default=None, ge=0, le=500)
    specialties: list[str] | None = None
    years_experience: int | None = Field(default=None, ge=0, le=80)
    min_price: float | None = Field(default=None, ge=0)
    max_price: float | None = Field(default=None, ge=0)
    portfolio_images: list[str] | None = None


class BraiderStatusUpdate(BaseModel):
    """Admin decision on a braider registration."""
    status: str = Field(..., description="pending | approved | rejected")
    reason: str | None = Field(default=None, max_length=1000)


class LocationSearch(BaseModel):
    """Search approved braiders by administrative area."""
    district: str = Field(..., min_length=1)
    concelho: str | None = None
    freguesia: str | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)


class ServiceCreate(BaseModel):
    """A service offered by a braider."""
    name: str = Field(..., min_length=2, max_length=120)
    description: str | None = Field(default=None, max_length=2000)
    price: float = Field(..., ge=0)
    duration_minutes: int = Field(..., gt=0, le=24 * 60)
    image_url: str | None = None
    is_available: bool = True


class ServiceUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=120)
    description: str | None = Field(default=None, max_length=2000)
    price: float | None = Field(default=None, ge=0)
    duration_minutes: int | None = Field(default=None, gt=0, le=24 * 60)
    image_url: str | None = None
    is_available: bool | None = None
