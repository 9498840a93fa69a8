# =============================================================================
# app/auth/__init__.py - Authentication Module
# =============================================================================
# Provides JWT-based authentication using Supabase Auth and role checks.
#
# Usage:
#   from app.auth import get_current_user, require_role, AuthUser
#
#   @router.get("/protected")
#   async def protected(user: AuthUser = Depends(get_current_user)):
#       return {"user_id": user.id}
# =============================================================================

from app.auth.dependencies import (
    decode_token,
    get_current_user,
    get_current_user_optional,
    require_role,
    resolve_role,
    user_from_token,
    with_role,
)
from app.auth.models import AuthUser, UserResponse

__all__ = [
    "decode_token",
    "get_current_user",
    "get_current_user_optional",
    "require_role",
    "resolve_role",
    "user_from_token",
    "with_role",
    "AuthUser",
    "UserResponse",
]
