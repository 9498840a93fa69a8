# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# API endpoints for authentication-related operations.
#
# Note: Actual signup/login is handled by Supabase Auth client-side.
# These routes return the caller's profile, role and landing page.
# =============================================================================

import logging
from fastapi import APIRouter, Depends, Query

from app.auth.dependencies import get_current_user, with_role
from app.auth.models import AuthUser, UserResponse
from core.roles import can_access_route, default_redirect_path, role_display_name
from lib.supabase_client import SupabaseClient, SupabaseClientError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    user: AuthUser = Depends(get_current_user)
) -> UserResponse:
    """
    Get the current authenticated user's profile.

    Falls back to token data when the public.users row doesn't exist yet
    (the signup trigger may not have run).
    """
    user = with_role(user)

    try:
        profile = SupabaseClient.fetch_user(user.id)
    except SupabaseClientError as e:
        logger.warning(f"Could not fetch user profile: {e}")
        profile = None

    profile = profile or {}
    return UserResponse(
        id=user.id,
        email=profile.get("email") or user.email,
        name=profile.get("name"),
        role=user.role,
        role_display_name=role_display_name(user.role),
        redirect_path=default_redirect_path(user.role),
        avatar_url=profile.get("avatar_url"),
        created_at=profile.get("created_at"),
    )


@router.get("/verify")
async def verify_token(
    user: AuthUser = Depends(get_current_user)
) -> dict:
    """
    Verify that the current token is valid.

    Useful for checking if a stored token is still valid.
    """
    return {
        "valid": True,
        "user_id": str(user.id),
        "email": user.email
    }


@router.get("/can-access")
async def check_route_access(
    path: str = Query(..., description="Frontend path, e.g. /braider-dashboard/chat"),
    user: AuthUser = Depends(get_current_user),
) -> dict:
    """Tell the frontend whether the caller's role may open a path."""
    user = with_role(user)
    allowed = can_access_route(user.role, path)
    return {
        "path": path,
        "role": user.role,
        "allowed": allowed,
        "redirect_path": None if allowed else default_redirect_path(user.role),
    }
