# =============================================================================
# lib/utils.py - Shared Utilities
# =============================================================================
# Common utilities used across the application:
# - UUID normalization for queries
# - UTC timestamps and ISO-8601 parsing (Supabase returns "Z" suffixes)
# - Money rounding (half-up to cents)
# - Calendar month arithmetic for billing periods
# =============================================================================

import calendar
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any
from uuid import UUID


# =============================================================================
# UUID Utilities
# =============================================================================

def normalize_uuid(value: str | UUID) -> str:
    """
    Normalize a UUID to string format.

    Example:
        braider_id = normalize_uuid(uuid_obj)  # "550e8400-..."
        braider_id = normalize_uuid("550e8400-...")  # "550e8400-..."
    """
    return str(value) if isinstance(value, UUID) else value


# =============================================================================
# Time Utilities
# =============================================================================

def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Serialize a datetime the way Postgres timestamptz columns store it."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def parse_datetime(value: Any) -> datetime | None:
    """
    Parse a timestamp coming back from Supabase.

    Accepts datetimes, ISO strings (with or without "Z"), and None.
    Naive values are treated as UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def from_unix(timestamp: int | float | None) -> str | None:
    """Convert a Stripe unix timestamp to an ISO string."""
    if timestamp is None:
        return None
    return to_iso(datetime.fromtimestamp(timestamp, tz=timezone.utc))


def add_months(value: datetime, months: int) -> datetime:
    """
    Add calendar months, clamping the day to the target month's length.

    Example:
        add_months(datetime(2024, 1, 31), 1)  # 2024-02-29
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def month_start(value: datetime) -> datetime:
    """First instant of the month containing `value`."""
    return value.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


# =============================================================================
# Money Utilities
# =============================================================================

def round_money(value: float | int | Decimal | None) -> float:
    """
    Round a monetary value to cents, half-up.

    Example:
        round_money(10.005)  # 10.01
    """
    if value is None:
        return 0.0
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def to_cents(value: float | int) -> int:
    """Convert a euro amount to integer cents for Stripe."""
    return int(Decimal(str(value)).scaleb(2).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
