# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared resources and role-gated users.
# These are injected into route handlers using Annotated aliases.
# =============================================================================

from typing import Annotated

from fastapi import Depends

from app.auth import AuthUser, get_current_user, get_current_user_optional, require_role
from core.roles import UserRole

CurrentUser = Annotated[AuthUser, Depends(get_current_user)]
OptionalUser = Annotated[AuthUser | None, Depends(get_current_user_optional)]
AdminUser = Annotated[AuthUser, Depends(require_role(UserRole.ADMIN))]
BraiderUser = Annotated[AuthUser, Depends(require_role(UserRole.BRAIDER))]
