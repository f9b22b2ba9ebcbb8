"""
Admin impersonation ("view as").

An admin can render the portal as another account without signing in as
it. The state lives in session-scoped storage (the signed session cookie)
and is a presentation override only: the store never sees it and no
access check consults it.

Route handlers receive a ViewContext built per request instead of reading
any global "current user".
"""

import logging
from dataclasses import dataclass
from typing import MutableMapping, Optional

from fastapi import Request, Response
from jose import JWTError, jwt
from pydantic import ValidationError

from career_findr.core.config import get_settings
from career_findr.schemas.schemas import ImpersonationState, SessionUser, UserAccount, UserRole

logger = logging.getLogger(__name__)

settings = get_settings()

STORAGE_KEY = "impersonation"


def to_session_user(user) -> Optional[SessionUser]:
    if user is None:
        return None
    if isinstance(user, SessionUser):
        return user
    if isinstance(user, UserAccount):
        return SessionUser(id=user.id, email=user.email, name=user.name, role=user.role)
    return SessionUser.model_validate(user)


class ImpersonationSession:
    """
    Impersonation state for one acting principal.

    `storage` is any mutable mapping scoped to the browser session. Saved
    state is only honoured when it was started by the same principal and
    that principal is still an admin.
    """

    def __init__(self, user, storage: MutableMapping):
        self.user = to_session_user(user)
        self.storage = storage
        self.is_impersonating = False
        self.impersonated_user: Optional[SessionUser] = None
        self.original_user: Optional[SessionUser] = None
        self._restore()

    def _restore(self) -> None:
        saved = self.storage.get(STORAGE_KEY)
        if not saved:
            return
        try:
            state = ImpersonationState.model_validate(saved)
        except ValidationError:
            logger.warning("Discarding malformed impersonation state")
            self.storage.pop(STORAGE_KEY, None)
            return
        if not self.can_impersonate or state.original_user.id != self.user.id:
            return
        self.is_impersonating = True
        self.impersonated_user = state.impersonated_user
        self.original_user = state.original_user

    @property
    def can_impersonate(self) -> bool:
        return self.user is not None and self.user.role == UserRole.admin.value

    def start(self, target_user) -> bool:
        """Begin viewing as `target_user`. Admins only; anyone else is a no-op."""
        if not self.can_impersonate:
            logger.error("Only admins can impersonate users",
                         extra={"user_id": self.user.id if self.user else None})
            return False

        target = to_session_user(target_user)
        self.is_impersonating = True
        self.impersonated_user = target
        self.original_user = self.user
        self.storage[STORAGE_KEY] = ImpersonationState(
            original_user=self.user,
            impersonated_user=target,
        ).model_dump(mode="json")
        logger.info("Impersonation started", extra={"user_id": self.user.id})
        return True

    def stop(self) -> str:
        """Clear the state. Returns the admin route the client must reload."""
        self.is_impersonating = False
        self.impersonated_user = None
        self.original_user = None
        self.storage.pop(STORAGE_KEY, None)
        return settings.admin_home_route

    @property
    def active_user(self) -> Optional[SessionUser]:
        return self.impersonated_user if self.is_impersonating else self.user


@dataclass
class ViewContext:
    """Who is signed in, and who the views should render as."""
    authenticated_user: UserAccount
    active_user: UserAccount
    session: ImpersonationSession

    @property
    def is_impersonating(self) -> bool:
        return self.session.is_impersonating


# ============================================================
# SESSION COOKIE
# ============================================================

def load_session(request: Request) -> dict:
    """Session-scoped storage decoded from the signed cookie ({} if absent)."""
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        return {}
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        logger.warning("Ignoring session cookie with a bad signature")
        return {}


def save_session(response: Response, storage: MutableMapping) -> None:
    if storage:
        token = jwt.encode(dict(storage), settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
        response.set_cookie(settings.session_cookie_name, token, httponly=True, samesite="lax")
    else:
        response.delete_cookie(settings.session_cookie_name)
