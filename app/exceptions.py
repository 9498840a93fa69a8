# =============================================================================
# app/exceptions.py - Custom Exception Handlers
# =============================================================================
# Centralized exception handling for the API.
# Every error carries a machine-readable code and, where possible, a
# suggestion telling the caller how to fix the request.
# =============================================================================

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse


class MarketplaceException(Exception):
    """
    Base exception for the marketplace API.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "MARKETPLACE_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}
        self.headers = headers

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result = {
            "detail": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Lookup / Access Exceptions
# =============================================================================

class NotFoundError(MarketplaceException):
    """Raised when a record doesn't exist (or must not be revealed)."""

    def __init__(self, resource: str, resource_id: str | None = None):
        super().__init__(
            message=f"{resource.replace('_', ' ').capitalize()} not found"
            + (f": {resource_id}" if resource_id else ""),
            code=f"{resource.upper()}_NOT_FOUND",
            status_code=404,
            suggestion=f"Check that the {resource} id is correct",
            details={f"{resource}_id": resource_id} if resource_id else None,
        )


class OwnershipError(MarketplaceException):
    """Raised when an ownership validation fails."""

    def __init__(self, message: str = "Unauthorized access", details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code="UNAUTHORIZED_ACCESS",
            status_code=403,
            suggestion="You can only act on resources that belong to your account",
            details=details,
            headers={"X-Security-Violation": "ownership-validation-failed"},
        )


class RoleRequiredError(MarketplaceException):
    """Raised when the caller's role is not allowed on an endpoint."""

    def __init__(self, required: list[str] | tuple[str, ...], actual: str | None = None):
        super().__init__(
            message=f"This action requires role: {', '.join(required)}",
            code="ROLE_REQUIRED",
            status_code=403,
            suggestion="Sign in with an account that has the required role",
            details={"required": list(required), "role": actual},
        )


class ValidationFailedError(MarketplaceException):
    """Raised when request data breaks a business rule."""

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        merged = dict(details or {})
        if field:
            merged["field"] = field
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=400,
            details=merged,
        )


class ConflictError(MarketplaceException):
    """Raised when the request collides with existing state."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code="CONFLICT",
            status_code=409,
            details=details,
        )


# =============================================================================
# Payment Exceptions
# =============================================================================

class PaymentProviderError(MarketplaceException):
    """Raised when Stripe rejects or fails a call."""

    def __init__(self, error: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=f"Payment provider error: {error}",
            code="PAYMENT_PROVIDER_ERROR",
            status_code=502,
            suggestion="Try again later or contact support if the issue persists",
            details=details,
        )


class WebhookSignatureError(MarketplaceException):
    """Raised when a webhook payload can't be authenticated."""

    def __init__(self, message: str = "Invalid signature"):
        super().__init__(
            message=message,
            code="INVALID_SIGNATURE",
            status_code=400,
            suggestion="Check that the webhook signing secret matches the Stripe endpoint",
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def marketplace_exception_handler(
    request: Request,
    exc: MarketplaceException
) -> JSONResponse:
    """
    Convert MarketplaceException to JSON response.

    Returns structured error with:
    - detail: Human-readable message
    - code: Machine-readable error code
    - suggestion: How to fix (if available)
    - details: Additional context
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers,
    )


async def validation_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    Converts validation errors to user-friendly messages.
    """
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Validation error",
            "code": "VALIDATION_ERROR",
            "errors": str(exc)
        }
    )
