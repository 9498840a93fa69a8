# =============================================================================
# core/ - Business Logic Package
# =============================================================================
# This package contains framework-agnostic business logic:
# - models/: Pydantic schemas for request validation
# - services/: Marketplace rules (bookings, chat, promotions, billing, ...)
# - roles.py: User roles and route access rules
#
# Services raise app.exceptions errors and read/write through
# lib.supabase_client. Code here should NOT import from Celery.
# =============================================================================
