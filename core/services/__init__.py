# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .ownership_service import OwnershipService
from .braider_service import BraiderService
from .catalog_service import CatalogService
from .booking_service import BookingService
from .rating_service import RatingService
from .chat_service import ChatService
from .combo_service import ComboService
from .billing_service import BillingService
from .webhook_service import WebhookService
from .promotion_service import PromotionService
from .promotion_stats_service import PromotionStatsService
from .notification_service import NotificationService
from .inbox_service import InboxService
from .commission_service import CommissionService
from .order_service import OrderService

__all__ = [
    "OwnershipService",
    "BraiderService",
    "CatalogService",
    "BookingService",
    "RatingService",
    "ChatService",
    "ComboService",
    "BillingService",
    "WebhookService",
    "PromotionService",
    "PromotionStatsService",
    "NotificationService",
    "InboxService",
    "CommissionService",
    "OrderService",
]
