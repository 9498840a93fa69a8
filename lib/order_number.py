# =============================================================================
# lib/order_number.py - Human-Friendly Order Numbers
# =============================================================================
# Order numbers are 8 uppercase alphanumerics: the last 4 digits of the
# millisecond timestamp followed by 4 random base-36 characters.
#
# Usage:
#   from lib.order_number import generate_unique_order_number, format_order_number
#   number = generate_unique_order_number(exists=lambda n: ...)
#   format_order_number(number)  # "#4821K9QZ"
# =============================================================================

import logging
import re
import secrets
import string
import time
from typing import Callable

logger = logging.getLogger(__name__)

ORDER_NUMBER_LENGTH = 8
ORDER_NUMBER_PATTERN = re.compile(r"^[A-Z0-9]{8}$")

_BASE36 = string.digits + string.ascii_uppercase


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def generate_order_number() -> str:
    """Generate a candidate order number (not checked for uniqueness)."""
    timestamp_part = str(_timestamp_ms())[-4:]
    random_part = "".join(secrets.choice(_BASE36) for _ in range(ORDER_NUMBER_LENGTH - 4))
    return f"{timestamp_part}{random_part}".upper()


def generate_unique_order_number(
    exists: Callable[[str], bool],
    max_attempts: int = 10,
) -> str:
    """
    Generate an order number that `exists` reports as unused.

    Falls back to the last 8 timestamp digits when every attempt collides.

    Args:
        exists: Callable returning True if the number is already taken
        max_attempts: Random attempts before falling back
    """
    for _ in range(max_attempts):
        candidate = generate_order_number()
        if not exists(candidate):
            return candidate

    logger.warning(f"Order number collided {max_attempts} times, using timestamp fallback")
    return str(_timestamp_ms())[-ORDER_NUMBER_LENGTH:].zfill(ORDER_NUMBER_LENGTH)


def format_order_number(order_number: str) -> str:
    """Display form with a leading '#'."""
    return f"#{order_number}"


def parse_order_number(value: str) -> str:
    """Normalize user input: strip '#', whitespace, upper-case."""
    return value.replace("#", "").strip().upper()


def is_valid_order_number(value: str) -> bool:
    return bool(ORDER_NUMBER_PATTERN.match(parse_order_number(value)))
