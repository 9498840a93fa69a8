# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health check endpoints
# - braiders.py: Braider discovery, profiles, services, availability
# - bookings.py: Booking creation and status changes
# - ratings.py: Braider ratings and rating reports
# - notifications.py: Notification inbox and settings
# - conversations.py: Chat conversations and messages (REST side)
# - promotions.py: Public promotions, paid promotion checkout, scheduler hook
# - combos.py: Combo packages, coupons and subscriptions
# - webhooks.py: Stripe webhooks
# - shop.py: Hair products and orders
# - admin.py: Admin-only management endpoints
#
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import health
from . import braiders
from . import bookings
from . import ratings
from . import notifications
from . import conversations
from . import promotions
from . import combos
from . import webhooks
from . import shop
from . import admin

__all__ = [
    "health",
    "braiders",
    "bookings",
    "ratings",
    "notifications",
    "conversations",
    "promotions",
    "combos",
    "webhooks",
    "shop",
    "admin",
]
