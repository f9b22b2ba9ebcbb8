"""
Impersonation Routes ("view as")

GET /impersonation - Current impersonation state
POST /impersonation/start - Start viewing as another user (admin only, otherwise a no-op)
POST /impersonation/stop - Stop and return to the admin user list

State is kept in the signed session cookie only.
"""

from fastapi import APIRouter, HTTPException, Depends, Response

from career_findr.core.auth import get_user_service, get_view_context
from career_findr.core.impersonation import ViewContext, save_session, to_session_user
from career_findr.core.routing import dashboard_for
from career_findr.schemas.schemas import ImpersonationStart, ImpersonationStatus
from career_findr.services.user_service import UserService

router = APIRouter(prefix="/impersonation", tags=["Impersonation"])


def _status(ctx: ViewContext, active_user, redirect_to: str = None) -> ImpersonationStatus:
    session = ctx.session
    active = to_session_user(active_user)
    return ImpersonationStatus(
        is_impersonating=session.is_impersonating,
        active_user=active,
        impersonated_user=session.impersonated_user,
        original_user=session.original_user,
        dashboard=dashboard_for(active.role if active else None),
        redirect_to=redirect_to,
    )


@router.get("", response_model=ImpersonationStatus)
def impersonation_status(ctx: ViewContext = Depends(get_view_context)):
    return _status(ctx, ctx.active_user)


@router.post("/start", response_model=ImpersonationStatus)
def start_impersonation(
    data: ImpersonationStart,
    response: Response,
    ctx: ViewContext = Depends(get_view_context),
    users: UserService = Depends(get_user_service),
):
    """
    View the portal as another account.

    Non-admins get the unchanged state back; nothing is looked up or stored for them.
    """
    target = None
    if ctx.session.can_impersonate:
        target = users.get(data.user_id)
        if not target:
            raise HTTPException(status_code=404, detail="User not found")

    if not ctx.session.start(target):
        return _status(ctx, ctx.active_user)

    save_session(response, ctx.session.storage)
    return _status(ctx, target, redirect_to=dashboard_for(target.role))


@router.post("/stop", response_model=ImpersonationStatus)
def stop_impersonation(response: Response, ctx: ViewContext = Depends(get_view_context)):
    """Clears the state; the client reloads at the returned admin route."""
    admin_route = ctx.session.stop()
    save_session(response, ctx.session.storage)
    return _status(ctx, ctx.authenticated_user, redirect_to=admin_route)
