# =============================================================================
# app/auth/dependencies.py - FastAPI Auth Dependencies
# =============================================================================
# Provides dependency injection for authentication and role checks.
#
# Token verification supports both:
# - ES256 (new Supabase JWT signing keys) via JWKS
# - HS256 (legacy Supabase JWT secret) as fallback
#
# Roles come from the token (app_metadata.role, which only the service role
# can write) and fall back to public.users.role.
#
# Usage:
#   from app.auth import get_current_user, require_role, AuthUser
#
#   @router.get("/admin-only")
#   async def admin_only(user: AuthUser = Depends(require_role("admin"))):
#       ...
# =============================================================================

import logging
import time
from typing import Any, Optional
from uuid import UUID

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError, ExpiredSignatureError

from app.config import settings
from app.auth.models import AuthUser
from app.exceptions import RoleRequiredError
from core.roles import UserRole
from lib.supabase_client import SupabaseClient, SupabaseClientError

logger = logging.getLogger(__name__)

# HTTP Bearer token extractor
security = HTTPBearer()
security_optional = HTTPBearer(auto_error=False)

# Cache for JWKS keys
_jwks_cache: dict = {}
_jwks_cache_time: float = 0
JWKS_CACHE_TTL = 3600  # 1 hour

_VALID_ROLES = {role.value for role in UserRole}


def _get_jwks_url() -> str:
    """Get the JWKS URL from Supabase URL."""
    supabase_url = settings.SUPABASE_URL.rstrip('/')
    return f"{supabase_url}/auth/v1/.well-known/jwks.json"


def _fetch_jwks() -> dict:
    """Fetch JWKS from Supabase with caching."""
    global _jwks_cache, _jwks_cache_time

    current_time = time.time()

    if _jwks_cache and (current_time - _jwks_cache_time) < JWKS_CACHE_TTL:
        return _jwks_cache

    try:
        jwks_url = _get_jwks_url()
        response = httpx.get(jwks_url, timeout=10)
        response.raise_for_status()
        _jwks_cache = response.json()
        _jwks_cache_time = current_time
        logger.debug(f"Fetched JWKS from {jwks_url}")
        return _jwks_cache
    except httpx.HTTPError as e:
        logger.warning(f"Failed to fetch JWKS: {e}")
        # Stale keys are better than none
        if _jwks_cache:
            return _jwks_cache
        return {"keys": []}


def _get_signing_key(token: str) -> tuple[Any, str]:
    """
    Get the appropriate signing key for a token.

    Returns:
        Tuple of (key, algorithm) to use for verification
    """
    try:
        unverified_header = jwt.get_unverified_header(token)
    except JWTError:
        return settings.SUPABASE_JWT_SECRET, "HS256"

    alg = unverified_header.get("alg", "HS256")
    kid = unverified_header.get("kid")

    if alg == "HS256":
        return settings.SUPABASE_JWT_SECRET, "HS256"

    if kid:
        for key in _fetch_jwks().get("keys", []):
            if key.get("kid") == kid:
                return key, alg

    logger.warning(f"Could not find key for alg={alg}, kid={kid}, falling back to HS256")
    return settings.SUPABASE_JWT_SECRET, "HS256"


def _role_from_claims(payload: dict[str, Any]) -> Optional[str]:
    """
    Read the marketplace role from the app_metadata claim.

    user_metadata is writable by the user themselves and is never trusted.
    """
    role = (payload.get("app_metadata") or {}).get("role")
    return role if role in _VALID_ROLES else None


def decode_token(token: str) -> dict[str, Any]:
    """
    Verify a Supabase access token and return its claims.

    Shared by the HTTP dependencies and the websocket handshake.

    Raises:
        ExpiredSignatureError: Token has expired
        JWTError: Signature, audience or format is invalid
    """
    signing_key, algorithm = _get_signing_key(token)
    return jwt.decode(
        token,
        signing_key,
        algorithms=[algorithm],
        audience="authenticated"
    )


def user_from_token(token: str) -> AuthUser:
    """
    Build an AuthUser from a raw token.

    Raises:
        JWTError: If the token is invalid or has no usable subject
    """
    payload = decode_token(token)

    user_id = payload.get("sub")
    if not user_id:
        raise JWTError("missing user ID")

    try:
        user_uuid = UUID(user_id)
    except ValueError:
        raise JWTError("malformed user ID")

    return AuthUser(id=user_uuid, email=payload.get("email"), role=_role_from_claims(payload))


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> AuthUser:
    """
    Extract and validate user from Supabase JWT token.

    This dependency:
    1. Extracts the Bearer token from the Authorization header
    2. Verifies the JWT signature (supports ES256 and HS256)
    3. Validates the token hasn't expired
    4. Returns an AuthUser with id, email and (if present) role

    Raises:
        HTTPException: 401 if token is invalid or expired
    """
    try:
        user = user_from_token(credentials.credentials)
        logger.debug(f"Authenticated user: {user.id}")
        return user

    except ExpiredSignatureError:
        logger.warning("JWT token has expired")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )

    except JWTError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_optional)
) -> Optional[AuthUser]:
    """
    Optionally get the current user from JWT token.

    Returns None if no token is provided or it is invalid, instead of
    raising. Used by public endpoints that personalise when signed in.
    """
    if credentials is None:
        return None

    try:
        return await get_current_user(credentials)
    except HTTPException:
        return None


def resolve_role(user: AuthUser) -> str:
    """
    Determine the user's marketplace role.

    Order: token claim -> public.users.role -> customer.
    """
    if user.role:
        return user.role

    try:
        row = SupabaseClient.fetch_one("users", columns="role", id=user.id)
    except SupabaseClientError as e:
        logger.warning(f"Could not load role for user {user.id}: {e}")
        row = None

    role = (row or {}).get("role")
    return role if role in _VALID_ROLES else UserRole.CUSTOMER.value


def with_role(user: AuthUser) -> AuthUser:
    """Return a copy of the user with role resolved."""
    if user.role:
        return user
    return user.model_copy(update={"role": resolve_role(user)})


def require_role(*roles: UserRole | str):
    """
    Dependency factory restricting an endpoint to the given roles.

    The returned AuthUser always has `role` populated.

    Usage:
        @router.put("/braiders/{id}")
        async def review(user: AuthUser = Depends(require_role(UserRole.ADMIN))):
            ...
    """
    allowed = tuple(r.value if isinstance(r, UserRole) else r for r in roles)

    async def _check(user: AuthUser = Depends(get_current_user)) -> AuthUser:
        resolved = with_role(user)
        if resolved.role not in allowed:
            logger.warning(f"User {user.id} with role {resolved.role} denied, requires {allowed}")
            raise RoleRequiredError(allowed, resolved.role)
        return resolved

    return _check
