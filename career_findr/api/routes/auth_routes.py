"""
Authentication Routes

POST /auth/register - Register new user
POST /auth/login - Login and get JWT token
POST /auth/logout - Sign out (clears session, closes live feeds)
POST /auth/password-reset - Email a password reset link
POST /auth/password-reset/confirm - Set a new password from a reset token
GET /auth/me - Get current user info
"""

import logging

from fastapi import APIRouter, HTTPException, Depends, Response

from career_findr.core.auth import (
    BLOCKED_STATUSES,
    create_access_token,
    create_password_reset_token,
    get_current_user,
    get_user_service,
    hash_password,
    verify_password,
    verify_password_reset_token,
)
from career_findr.core.impersonation import save_session
from career_findr.core.routing import dashboard_for
from career_findr.api.routes.user_routes import to_user_response
from career_findr.schemas.schemas import (
    RegisterRequest, LoginRequest, TokenResponse, UserResponse, MessageResponse,
    PasswordResetRequest, PasswordResetConfirm, UserAccount
)
from career_findr.services.email_service import MailDeliveryError, Mailer, get_mailer
from career_findr.services.realtime import get_subscription_manager
from career_findr.services.user_service import EmailAlreadyRegistered, UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=MessageResponse, status_code=201)
def register(request: RegisterRequest, users: UserService = Depends(get_user_service)):
    """
    Register a new user account.

    Students can sign in right away; institutes and companies wait for admin approval.
    """
    try:
        users.create_account(
            email=request.email,
            password_hash=hash_password(request.password),
            role=request.role.value,
            name=request.name,
            phone=request.phone,
        )
    except EmailAlreadyRegistered:
        raise HTTPException(status_code=400, detail="Email already registered")

    return MessageResponse(message=f"Registered successfully as {request.role.value}. Please login.")


@router.post("/login", response_model=TokenResponse)
def login(request: LoginRequest, users: UserService = Depends(get_user_service)):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    doc = users.get_by_email(request.email)

    if not doc or not doc.get("password_hash"):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if doc.get("status") in BLOCKED_STATUSES:
        raise HTTPException(status_code=403, detail="Account deactivated")

    if not verify_password(request.password, doc["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    role = doc.get("role")
    token = create_access_token(data={"sub": doc["id"], "role": role})

    return TokenResponse(access_token=token, user_id=doc["id"], role=role or "", dashboard=dashboard_for(role))


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    user: UserAccount = Depends(get_current_user),
    manager=Depends(get_subscription_manager),
):
    """Sign out: drop session state and close this user's live feeds."""
    closed = manager.unsubscribe_owner(user.id)
    save_session(response, {})
    logger.info("Signed out, closed %d live feeds", closed, extra={"user_id": user.id})
    return MessageResponse(message="Signed out")


@router.post("/password-reset", response_model=MessageResponse)
def request_password_reset(
    request: PasswordResetRequest,
    users: UserService = Depends(get_user_service),
    mailer: Mailer = Depends(get_mailer),
):
    """Same answer whether or not the email is registered, or whether delivery worked."""
    doc = users.get_by_email(request.email)
    if doc:
        try:
            mailer.send_password_reset(doc["email"], create_password_reset_token(doc["id"]))
        except MailDeliveryError:
            logger.error("Password reset email not delivered", extra={"user_id": doc["id"]})
    return MessageResponse(message="If that email is registered, a reset link has been sent.")


@router.post("/password-reset/confirm", response_model=MessageResponse)
def confirm_password_reset(
    request: PasswordResetConfirm,
    users: UserService = Depends(get_user_service),
):
    user_id = verify_password_reset_token(request.token)
    if not user_id:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")

    if not users.set_password(user_id, hash_password(request.new_password)):
        raise HTTPException(status_code=404, detail="Account not found")

    return MessageResponse(message="Password updated. Please login.")


@router.get("/me", response_model=UserResponse)
def get_me(user: UserAccount = Depends(get_current_user)):
    """Get current authenticated user's info and home dashboard."""
    return to_user_response(user)
