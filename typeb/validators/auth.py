"""Account input validators: email, password and display name."""

import re

from typeb.validators.result import ValidationResult


EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_EMAIL_LENGTH = 254  # RFC 5321

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128
_SPECIAL_CHARACTERS = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")
_WEAK_PASSWORDS = ("password", "12345678", "qwerty", "abc123", "password123")

DISPLAY_NAME_MIN_LENGTH = 2
DISPLAY_NAME_MAX_LENGTH = 50
_DISPLAY_NAME_REGEX = re.compile(r"^[a-zA-Z0-9\s\-']+$")

# Misspelled domain -> intended domain
_SUSPICIOUS_DOMAINS = {
    "gmial.com": "gmail.com",
    "gmai.com": "gmail.com",
    "yahooo.com": "yahoo.com",
    "hotmial.com": "hotmail.com",
}


def sanitize_email(email: str) -> str:
    """Normalize an email for storage and lookup."""
    return email.strip().lower()


def validate_email(email: str | None) -> ValidationResult:
    """Validate an email address, catching common domain typos."""
    if not email or not isinstance(email, str):
        return ValidationResult.fail("Email is required")

    normalized = sanitize_email(email)

    if not normalized:
        return ValidationResult.fail("Email cannot be empty")

    if len(normalized) > MAX_EMAIL_LENGTH:
        return ValidationResult.fail("Email is too long")

    if not EMAIL_REGEX.match(normalized):
        return ValidationResult.fail("Please enter a valid email address")

    domain = normalized.split("@")[1]
    if domain in _SUSPICIOUS_DOMAINS:
        return ValidationResult.fail(f"Did you mean @{_SUSPICIOUS_DOMAINS[domain]}?")

    return ValidationResult.ok()


def validate_password(password: str | None) -> ValidationResult:
    """Validate password strength, reporting every unmet rule."""
    if not password or not isinstance(password, str):
        return ValidationResult(is_valid=False, errors=["Password is required"])

    errors: list[str] = []

    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")

    if len(password) > PASSWORD_MAX_LENGTH:
        errors.append("Password is too long")

    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")

    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")

    if not re.search(r"[0-9]", password):
        errors.append("Password must contain at least one number")

    if not _SPECIAL_CHARACTERS.search(password):
        errors.append("Password must contain at least one special character")

    lowered = password.lower()
    if any(weak in lowered for weak in _WEAK_PASSWORDS):
        errors.append("Password is too common. Please choose a stronger password")

    return ValidationResult(is_valid=not errors, errors=errors)


def validate_display_name(display_name: str | None) -> ValidationResult:
    """Validate a display name: 2-50 letters, digits, spaces, hyphens or apostrophes."""
    if not display_name or not isinstance(display_name, str):
        return ValidationResult.fail("Display name is required")

    trimmed = display_name.strip()

    if len(trimmed) < DISPLAY_NAME_MIN_LENGTH:
        return ValidationResult.fail(f"Display name must be at least {DISPLAY_NAME_MIN_LENGTH} characters")

    if len(trimmed) > DISPLAY_NAME_MAX_LENGTH:
        return ValidationResult.fail(f"Display name must not exceed {DISPLAY_NAME_MAX_LENGTH} characters")

    if not _DISPLAY_NAME_REGEX.match(trimmed):
        return ValidationResult.fail("Display name contains invalid characters")

    return ValidationResult.ok()


def validate_password_confirmation(password: str, confirmation: str | None) -> ValidationResult:
    """Check that the confirmation matches the password."""
    if not confirmation:
        return ValidationResult.fail("Password confirmation is required")

    if password != confirmation:
        return ValidationResult.fail("Passwords do not match")

    return ValidationResult.ok()


def is_email_likely_valid(email: str | None) -> bool:
    """Cheap structural check for as-you-type feedback."""
    if not email:
        return False

    parts = email.split("@")
    if len(parts) != 2:  # noqa: PLR2004
        return False

    local, domain = parts
    if not local or not domain:
        return False

    domain_parts = domain.split(".")
    return len(domain_parts) >= 2 and all(domain_parts)  # noqa: PLR2004
