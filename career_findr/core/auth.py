"""
Authentication Utility - JWT and Password handling.

Provides:
- Password hashing with bcrypt
- JWT access and password-reset tokens
- FastAPI dependencies for signed-in users, role gates and the view context
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from career_findr.core.config import get_settings
from career_findr.core.impersonation import ImpersonationSession, ViewContext, load_session
from career_findr.core.routing import redirect_for
from career_findr.db.mongodb import get_document_store
from career_findr.schemas.schemas import UserAccount, UserStatus
from career_findr.services.user_service import UserService

logger = logging.getLogger(__name__)

settings = get_settings()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token extractor
bearer_scheme = HTTPBearer()

BLOCKED_STATUSES = {UserStatus.rejected.value, UserStatus.suspended.value}


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def create_password_reset_token(user_id: str) -> str:
    return create_access_token(
        {"sub": user_id, "purpose": "password_reset"},
        expires_delta=timedelta(minutes=settings.password_reset_expire_minutes)
    )


def verify_password_reset_token(token: str) -> Optional[str]:
    """User id from a reset token, or None if invalid, expired or not a reset token."""
    payload = decode_token(token)
    if not payload or payload.get("purpose") != "password_reset":
        return None
    return payload.get("sub")


def get_user_service(store=Depends(get_document_store)) -> UserService:
    return UserService(store)


def authenticate_token(token: str, users: UserService) -> Optional[UserAccount]:
    """Account for a bearer token, or None. Reset tokens are not sign-in tokens."""
    payload = decode_token(token)
    if not payload or payload.get("purpose"):
        return None
    user_id = payload.get("sub")
    if not user_id:
        return None
    user = users.get(user_id)
    if not user or user.status in BLOCKED_STATUSES:
        return None
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    users: UserService = Depends(get_user_service),
) -> UserAccount:
    """
    FastAPI dependency - Get current authenticated user.

    Usage:
        @app.get("/protected")
        def route(user: UserAccount = Depends(get_current_user)):
            return user
    """
    user = authenticate_token(credentials.credentials, users)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_roles(*roles: str):
    """
    Dependency factory - allow only the given roles.

    Refusals are 403s carrying the route the client should redirect to.
    """
    async def dependency(user: UserAccount = Depends(get_current_user)) -> UserAccount:
        target = redirect_for(user, roles)
        if target:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "message": f"{', '.join(roles).title()} only" if roles else "Access denied",
                    "redirect_to": target,
                },
            )
        return user
    return dependency


def get_view_context(
    request: Request,
    user: UserAccount = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
) -> ViewContext:
    """
    Dependency - the signed-in user plus who the views render as.

    While an admin impersonates someone, `active_user` is that account.
    """
    session = ImpersonationSession(user, load_session(request))
    active = user
    if session.is_impersonating:
        impersonated = users.get(session.impersonated_user.id)
        if impersonated:
            active = impersonated
        else:
            logger.warning("Impersonated account no longer exists", extra={"user_id": user.id})
            session.stop()
    return ViewContext(authenticated_user=user, active_user=active, session=session)
