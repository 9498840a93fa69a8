# =============================================================================
# core/roles.py - Role Model & Route Permissions
# =============================================================================
# Three roles with a strict hierarchy:
#   customer (1) < braider (2) < admin (3)
#
# Route tables use prefix matching; entries ending in "/*" match any
# sub-path of the prefix.
# =============================================================================

from enum import Enum


class UserRole(str, Enum):
    """Marketplace roles stored on users.role."""
    CUSTOMER = "customer"
    BRAIDER = "braider"
    ADMIN = "admin"


ROLE_HIERARCHY: dict[str, int] = {
    UserRole.CUSTOMER.value: 1,
    UserRole.BRAIDER.value: 2,
    UserRole.ADMIN.value: 3,
}

ROLE_ROUTES: dict[str, list[str]] = {
    UserRole.CUSTOMER.value: ["/profile", "/orders", "/cart", "/checkout", "/favorites"],
    UserRole.BRAIDER.value: ["/braider-dashboard", "/braider-dashboard/*", "/profile", "/orders"],
    UserRole.ADMIN.value: ["/dashboard", "/admin", "/admin/*", "/profile", "/orders", "/cart", "/checkout"],
}

ROLE_REDIRECTS: dict[str, str] = {
    UserRole.CUSTOMER.value: "/",
    UserRole.BRAIDER.value: "/braider-dashboard",
    UserRole.ADMIN.value: "/dashboard",
}

ROLE_DISPLAY_NAMES: dict[str, str] = {
    UserRole.CUSTOMER.value: "Cliente",
    UserRole.BRAIDER.value: "Trancista",
    UserRole.ADMIN.value: "Administrador",
}


def _value(role: UserRole | str | None) -> str | None:
    return role.value if isinstance(role, UserRole) else role


def has_role(role: UserRole | str | None, required: UserRole | str) -> bool:
    """Exact role match."""
    return _value(role) == _value(required)


def has_role_permission(role: UserRole | str | None, required: UserRole | str) -> bool:
    """True if `role` sits at or above `required` in the hierarchy."""
    return ROLE_HIERARCHY.get(_value(role) or "", 0) >= ROLE_HIERARCHY.get(_value(required), 99)


def can_access_route(role: UserRole | str | None, path: str) -> bool:
    """
    Check whether a role may open a frontend path.

    Example:
        can_access_route("braider", "/braider-dashboard/chat")  # True
        can_access_route("customer", "/admin")                   # False
    """
    for route in ROLE_ROUTES.get(_value(role) or "", []):
        if route.endswith("/*"):
            if path.startswith(route[:-2]):
                return True
        elif path.startswith(route):
            return True
    return False


def default_redirect_path(role: UserRole | str | None) -> str:
    """Landing page after sign-in. Users without a role go to /login."""
    return ROLE_REDIRECTS.get(_value(role) or "", "/login")


def role_display_name(role: UserRole | str | None) -> str:
    return ROLE_DISPLAY_NAMES.get(_value(role) or "", "Usuário")


def can_manage_braiders(role: UserRole | str | None) -> bool:
    return has_role(role, UserRole.ADMIN)


def can_manage_products(role: UserRole | str | None) -> bool:
    return has_role(role, UserRole.ADMIN)


def can_manage_orders(
    role: UserRole | str | None,
    user_id: str | None = None,
    order_user_id: str | None = None,
) -> bool:
    """Admins and braiders manage any order; customers only their own."""
    if has_role(role, UserRole.ADMIN) or has_role(role, UserRole.BRAIDER):
        return True
    if has_role(role, UserRole.CUSTOMER) and user_id and order_user_id:
        return str(user_id) == str(order_user_id)
    return False
