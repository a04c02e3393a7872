"""Password hashing and signed session/reset tokens."""

import hashlib
import logging
from typing import Any

import bcrypt
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from typeb.core.config import settings


logger = logging.getLogger(__name__)

_SESSION_SALT = "typeb-session"
_RESET_SALT = "typeb-password-reset"

# bcrypt only uses the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72


def _serializer(salt: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(str(settings.secret_key), salt=salt)


def hash_password(password: str) -> str:
    """Hash a password with a fresh bcrypt salt."""
    return bcrypt.hashpw(password.encode()[:_BCRYPT_MAX_BYTES], bcrypt.gensalt()).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode()[:_BCRYPT_MAX_BYTES], password_hash.encode())
    except ValueError:
        logger.warning("password_hash_malformed")
        return False


def create_session_token(*, user_id: str, session_version: int) -> str:
    """Issue a signed session token bound to the user's session version."""
    return _serializer(_SESSION_SALT).dumps({"uid": user_id, "ver": session_version})


def load_session_token(token: str) -> dict[str, Any]:
    """Decode a session token.

    Returns:
        Payload with ``uid`` and ``ver``

    Raises:
        PermissionError: If the token is tampered with or expired
    """
    try:
        payload = _serializer(_SESSION_SALT).loads(token, max_age=settings.session_ttl_seconds)
    except SignatureExpired as err:
        raise PermissionError("Session expired") from err
    except BadSignature as err:
        raise PermissionError("Invalid token") from err

    if not isinstance(payload, dict) or "uid" not in payload or "ver" not in payload:
        raise PermissionError("Invalid token")
    return payload


def _password_fingerprint(password_hash: str) -> str:
    """Short digest of the current hash so a reset token dies once the password changes."""
    return hashlib.sha256(password_hash.encode()).hexdigest()[:16]


def create_reset_token(*, user_id: str, password_hash: str) -> str:
    """Issue a single-use password reset token."""
    return _serializer(_RESET_SALT).dumps({"uid": user_id, "fp": _password_fingerprint(password_hash)})


def load_reset_token(token: str) -> dict[str, Any]:
    """Decode a password reset token.

    Raises:
        PermissionError: If the token is tampered with or expired
    """
    try:
        payload = _serializer(_RESET_SALT).loads(token, max_age=settings.password_reset_ttl_seconds)
    except SignatureExpired as err:
        raise PermissionError("Reset link expired") from err
    except BadSignature as err:
        raise PermissionError("Invalid token") from err

    if not isinstance(payload, dict) or "uid" not in payload or "fp" not in payload:
        raise PermissionError("Invalid token")
    return payload


def reset_token_matches(payload: dict[str, Any], password_hash: str) -> bool:
    """Return True if the reset token was issued for the current password."""
    return payload.get("fp") == _password_fingerprint(password_hash)
