"""Account sign-up, sign-in and session management."""

import logging
from typing import Any

from typeb.core import db_client, security
from typeb.core.logging import span
from typeb.core.rate_limiter import rate_limiter
from typeb.models.service_models import AuthResult
from typeb.services import user_service
from typeb.validators import (
    sanitize_email,
    validate_display_name,
    validate_email,
    validate_password,
    validate_password_confirmation,
)


logger = logging.getLogger(__name__)

_INVALID_CREDENTIALS = "Invalid email or password"


def _issue_token(user: dict[str, Any]) -> str:
    return security.create_session_token(user_id=user["id"], session_version=user.get("session_version", 0))


async def sign_up(
    *,
    email: str,
    password: str,
    display_name: str,
    password_confirmation: str | None = None,
) -> AuthResult:
    """Create an account and sign it in.

    Args:
        email: Email address (normalized before storage)
        password: Plain-text password, hashed with bcrypt
        display_name: Name shown to the family
        password_confirmation: Optional repeat of the password

    Returns:
        AuthResult with the public user and a session token

    Raises:
        ValueError: If input fails validation or the email is taken
    """
    with span("auth_service.sign_up"):
        # Guard: Validate input
        validate_email(email).raise_for_errors()
        validate_password(password).raise_for_errors()
        validate_display_name(display_name).raise_for_errors()
        if password_confirmation is not None:
            validate_password_confirmation(password, password_confirmation).raise_for_errors()

        normalized = sanitize_email(email)

        # Guard: Reject duplicate accounts
        if await user_service.get_user_by_email(email=normalized):
            logger.warning("sign_up_duplicate_email")
            raise ValueError("An account with this email already exists")

        record = await db_client.create_record(
            collection="users",
            data={
                "email": normalized,
                "display_name": display_name.strip(),
                "password_hash": security.hash_password(password),
                "session_version": 0,
            },
        )
        logger.info("user_signed_up", extra={"user_id": record["id"]})
        return AuthResult(user=user_service.to_public(record), token=_issue_token(record))


async def sign_in(*, email: str, password: str) -> AuthResult:
    """Authenticate with email and password.

    Raises:
        PermissionError: If the credentials do not match
        HTTPException: 429 when too many attempts were made for this email
    """
    with span("auth_service.sign_in"):
        normalized = sanitize_email(email or "")
        await rate_limiter.check_sign_in_rate_limit(normalized)

        user = await user_service.get_user_by_email(email=normalized)
        if not user or not password or not security.verify_password(password, user["password_hash"]):
            logger.warning("sign_in_failed")
            raise PermissionError(_INVALID_CREDENTIALS)

        await rate_limiter.reset_sign_in_attempts(normalized)
        logger.info("user_signed_in", extra={"user_id": user["id"]})
        return AuthResult(user=user_service.to_public(user), token=_issue_token(user))


async def sign_out(*, user_id: str) -> None:
    """Revoke every outstanding session token for the user."""
    with span("auth_service.sign_out"):
        user = await user_service.get_user(user_id=user_id)
        await db_client.update_record(
            collection="users",
            record_id=user_id,
            data={"session_version": user.get("session_version", 0) + 1},
        )
        logger.info("user_signed_out", extra={"user_id": user_id})


async def verify_session_token(token: str) -> dict[str, Any]:
    """Resolve a session token to its user record.

    Raises:
        PermissionError: If the token is invalid, expired or revoked
    """
    payload = security.load_session_token(token)
    try:
        user = await user_service.get_user(user_id=str(payload["uid"]))
    except KeyError as err:
        raise PermissionError("Invalid token") from err

    if user.get("session_version", 0) != payload["ver"]:
        raise PermissionError("Session revoked")
    return user


async def send_password_reset(*, email: str) -> str | None:
    """Issue a password reset token.

    Unknown emails succeed silently so callers cannot tell which accounts exist.
    Delivery is handled outside this service.

    Returns:
        The reset token, or None when no account matches
    """
    with span("auth_service.send_password_reset"):
        user = await user_service.get_user_by_email(email=email or "")
        if not user:
            logger.info("password_reset_unknown_email")
            return None

        token = security.create_reset_token(user_id=user["id"], password_hash=user["password_hash"])
        logger.info("password_reset_issued", extra={"user_id": user["id"]})
        logger.debug("password_reset_token", extra={"user_id": user["id"], "token": token})
        return token


async def reset_password(*, token: str, new_password: str) -> None:
    """Set a new password using a reset token.

    Also revokes existing sessions.

    Raises:
        PermissionError: If the token is invalid, expired or already used
        ValueError: If the new password is too weak
    """
    with span("auth_service.reset_password"):
        payload = security.load_reset_token(token)
        validate_password(new_password).raise_for_errors()

        try:
            user = await user_service.get_user(user_id=str(payload["uid"]))
        except KeyError as err:
            raise PermissionError("Invalid token") from err

        # Guard: Token must match the current password (single use)
        if not security.reset_token_matches(payload, user["password_hash"]):
            raise PermissionError("Reset link expired")

        await db_client.update_record(
            collection="users",
            record_id=user["id"],
            data={
                "password_hash": security.hash_password(new_password),
                "session_version": user.get("session_version", 0) + 1,
            },
        )
        logger.info("password_reset_completed", extra={"user_id": user["id"]})
