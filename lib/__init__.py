# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable utilities:
# - supabase_client.py: Typed Supabase wrapper for database operations
# - stripe_client.py: Stripe SDK wrapper (checkout, subscriptions, webhooks)
# - geo.py: Haversine distance and service-area bounds
# - order_number.py: Human-friendly order number generation
# - utils.py: Shared utilities (UUIDs, timestamps, money rounding)
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.stripe_client import StripeClient, StripeClientError
from lib.utils import normalize_uuid, round_money, utc_now

__all__ = [
    # Supabase
    "SupabaseClient",
    "SupabaseClientError",
    # Stripe
    "StripeClient",
    "StripeClientError",
    # Utils
    "normalize_uuid",
    "round_money",
    "utc_now",
]
