# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for data validation:
# - braider.py: Braider registration/profile and service catalog schemas
# - booking.py: Booking and availability schemas
# - rating.py: Rating, edit and report schemas
# - chat.py: Conversation and message schemas
# - promotion.py: Promotions, combos, coupons, subscriptions
# - commerce.py: Products and orders
# - notification.py: Notification inbox and settings
# - ownership.py: Ownership validation result
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# Braider Models - Provider profiles and services
# -----------------------------------------------------------------------------
from .braider import (
    BraiderProfileUpdate,
    BraiderRegister,
    BraiderStatus,
    BraiderStatusUpdate,
    LocationSearch,
    ServiceCreate,
    ServiceUpdate,
)

# -----------------------------------------------------------------------------
# Booking Models - Appointments and availability
# -----------------------------------------------------------------------------
from .booking import (
    ACTIVE_BOOKING_STATUSES,
    BOOKING_TRANSITIONS,
    AvailabilityCreate,
    BookingCreate,
    BookingStatus,
    BookingStatusUpdate,
    ServiceLocation,
)

# -----------------------------------------------------------------------------
# Rating Models
# -----------------------------------------------------------------------------
from .rating import (
    RatingAction,
    RatingCreate,
    RatingReportCreate,
    RatingReportReview,
    RatingStatus,
    RatingUpdate,
    ReportReason,
    ReportStatus,
)

# -----------------------------------------------------------------------------
# Chat Models - Conversations between clients and braiders
# -----------------------------------------------------------------------------
from .chat import (
    ConversationCreate,
    MarkReadRequest,
    MessageCreate,
    MessageType,
)

# -----------------------------------------------------------------------------
# Promotion Models - Paid visibility
# -----------------------------------------------------------------------------
from .promotion import (
    BillingCycle,
    ComboCalculateRequest,
    ComboCalculation,
    ComboPromotionsResult,
    ComboPurchaseRequest,
    CouponResult,
    CouponValidateRequest,
    DiscountType,
    PaymentMethod,
    PromotionCheckoutRequest,
    PromotionExtendRequest,
    PromotionReview,
    PromotionStatus,
    PromotionToCreate,
    PromotionTrackRequest,
    PromotionType,
    SubscriptionStatus,
    TransactionStatus,
)

# -----------------------------------------------------------------------------
# Commerce Models - Products and orders
# -----------------------------------------------------------------------------
from .notification import (
    DEFAULT_INBOX_SETTINGS,
    NotificationCreate,
    NotificationReadUpdate,
    NotificationSettingsUpdate,
    NotificationType,
)

from .commerce import (
    ORDER_TRANSITIONS,
    OrderCreate,
    OrderItemRequest,
    OrderStatus,
    OrderStatusUpdate,
    ProductCreate,
    ProductUpdate,
)

# -----------------------------------------------------------------------------
# Ownership
# -----------------------------------------------------------------------------
from .ownership import ValidationResult

__all__ = [
    # Braider
    "BraiderProfileUpdate",
    "BraiderRegister",
    "BraiderStatus",
    "BraiderStatusUpdate",
    "LocationSearch",
    "ServiceCreate",
    "ServiceUpdate",
    # Booking
    "ACTIVE_BOOKING_STATUSES",
    "BOOKING_TRANSITIONS",
    "AvailabilityCreate",
    "BookingCreate",
    "BookingStatus",
    "BookingStatusUpdate",
    "ServiceLocation",
    # Rating
    "RatingAction",
    "RatingCreate",
    "RatingReportCreate",
    "RatingReportReview",
    "RatingStatus",
    "RatingUpdate",
    "ReportReason",
    "ReportStatus",
    # Chat
    "ConversationCreate",
    "MarkReadRequest",
    "MessageCreate",
    "MessageType",
    # Promotion
    "BillingCycle",
    "ComboCalculateRequest",
    "ComboCalculation",
    "ComboPromotionsResult",
    "ComboPurchaseRequest",
    "CouponResult",
    "CouponValidateRequest",
    "DiscountType",
    "PaymentMethod",
    "PromotionCheckoutRequest",
    "PromotionExtendRequest",
    "PromotionReview",
    "PromotionStatus",
    "PromotionToCreate",
    "PromotionTrackRequest",
    "PromotionType",
    "SubscriptionStatus",
    "TransactionStatus",
    # Notification
    "DEFAULT_INBOX_SETTINGS",
    "NotificationCreate",
    "NotificationReadUpdate",
    "NotificationSettingsUpdate",
    "NotificationType",
    # Commerce
    "ORDER_TRANSITIONS",
    "OrderCreate",
    "OrderItemRequest",
    "OrderStatus",
    "OrderStatusUpdate",
    "ProductCreate",
    "ProductUpdate",
    # Ownership
    "ValidationResult",
]
