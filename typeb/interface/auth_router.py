"""Account routes: sign-up, sign-in, sessions and profile."""

from typing import Any

from fastapi import APIRouter, status

from typeb.domain.create_models import PasswordResetConfirm, PasswordResetRequest, SignInRequest, SignUpRequest
from typeb.domain.update_models import UserSettingsUpdate
from typeb.interface.dependencies import CurrentUser
from typeb.models.service_models import AuthResult
from typeb.services import auth_service, user_service


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/sign-up", status_code=status.HTTP_201_CREATED)
async def sign_up(payload: SignUpRequest) -> AuthResult:
    """Create an account and return a session token."""
    return await auth_service.sign_up(
        email=payload.email,
        password=payload.password,
        display_name=payload.display_name,
        password_confirmation=payload.password_confirmation,
    )


@router.post("/sign-in")
async def sign_in(payload: SignInRequest) -> AuthResult:
    """Exchange email and password for a session token."""
    return await auth_service.sign_in(email=payload.email, password=payload.password)


@router.post("/sign-out", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(user: CurrentUser) -> None:
    """Revoke every session token of the signed-in user."""
    await auth_service.sign_out(user_id=user["id"])


@router.post("/password-reset", status_code=status.HTTP_202_ACCEPTED)
async def request_password_reset(payload: PasswordResetRequest) -> dict[str, str]:
    """Start a password reset. The response is the same whether or not the email exists."""
    await auth_service.send_password_reset(email=payload.email)
    return {"status": "If an account exists for this email, a reset link has been sent."}


@router.post("/password-reset/confirm", status_code=status.HTTP_204_NO_CONTENT)
async def confirm_password_reset(payload: PasswordResetConfirm) -> None:
    """Set a new password with a reset token."""
    await auth_service.reset_password(token=payload.token, new_password=payload.new_password)


@router.get("/me")
async def get_me(user: CurrentUser) -> dict[str, Any]:
    """Return the signed-in user's profile."""
    return user_service.to_public(user)


@router.patch("/me")
async def update_me(payload: UserSettingsUpdate, user: CurrentUser) -> dict[str, Any]:
    """Update the signed-in user's profile settings."""
    return await user_service.update_settings(user_id=user["id"], updates=payload.model_dump(exclude_unset=True))
