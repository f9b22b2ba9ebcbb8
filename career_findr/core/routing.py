"""
Role-based route gating.

Each role has a home dashboard. A page that a role may not see sends the
user to their own dashboard; an unknown user or role goes to sign-in.
"""

from typing import Iterable, Optional

LOGIN_ROUTE = "/login"
LANDING_ROUTE = "/"

DASHBOARD_ROUTES = {
    "student": "/dashboard/student",
    "institute": "/dashboard/institute",
    "company": "/dashboard/company",
    "admin": "/dashboard/admin",
}


def _normalize(role) -> str:
    return str(getattr(role, "value", role)).strip().lower()


def dashboard_for(role) -> str:
    if not role:
        return LOGIN_ROUTE
    return DASHBOARD_ROUTES.get(_normalize(role), LANDING_ROUTE)


def redirect_for(user, allowed_roles: Iterable[str] = ()) -> Optional[str]:
    """
    Where to send `user` instead of a page restricted to `allowed_roles`.

    Returns None when the user may stay. An empty `allowed_roles` admits any
    signed-in user that has a role.
    """
    if user is None:
        return LOGIN_ROUTE

    role = user.get("role") if isinstance(user, dict) else getattr(user, "role", None)
    if not role:
        return LOGIN_ROUTE

    user_role = _normalize(role)
    allowed = {_normalize(r) for r in allowed_roles}
    if allowed and user_role not in allowed:
        return DASHBOARD_ROUTES.get(user_role, LANDING_ROUTE)
    return None
