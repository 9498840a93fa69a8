# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for authentication data.
# =============================================================================

from pydantic import BaseModel
from uuid import UUID
from datetime import datetime
from typing import Optional


class AuthUser(BaseModel):
    """
    Authenticated user extracted from Supabase JWT.

    `role` is the marketplace role (customer/braider/admin) when the token
    carries it in app_metadata; otherwise it is resolved from
    public.users on demand.
    """
    id: UUID
    email: Optional[str] = None
    role: Optional[str] = None

    class Config:
        frozen = True  # Make immutable


class UserResponse(BaseModel):
    """
    Full user response for API endpoints.

    Includes additional profile data from the public.users table.
    """
    id: UUID
    email: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None
    role_display_name: Optional[str] = None
    redirect_path: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
