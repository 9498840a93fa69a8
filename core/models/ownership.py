# =============================================================================
# core/models/ownership.py - Ownership Validation Result
# =============================================================================

from typing import Any

from pydantic import BaseModel, Field


class ValidationResult(BaseModel):
    """
    Outcome of an ownership check.

    Checks never raise; callers inspect is_valid and decide how to respond.
    `details` carries the compared identifiers and, on failure, a
    `violation` tag for security logs.
    """
    is_valid: bool
    error: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
