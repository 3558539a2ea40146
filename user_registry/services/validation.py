"""Validation helpers for registration input.

Every check is a pure function: same input, same verdict, no I/O. Checks
short-circuit in a fixed order so a rejected value carries exactly one
message, which lets the same functions back both the per-keystroke form
feedback and the final pre-submit gate.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

SANITIZE_PATTERN = re.compile(r"[<>'\"]")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
REPEATED_CHAR_PATTERN = re.compile(r"(.)\1\1", re.DOTALL)
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")
ALNUM_USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9]+$")


class ValidationError(Exception):
    """Input rejected by a validation rule; the message is client-safe."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


@dataclass(frozen=True)
class ValidationPolicy:
    """Length bounds, character rules and email requirement for one profile."""

    name: str
    username_min_length: int = 3
    username_max_length: int = 30
    username_allow_underscore: bool = True
    password_min_length: int = 6
    password_max_length: int = 100
    password_special_chars: str = '!@#$%^&*(),.?":{}|<>'
    forbid_repeated_chars: bool = False
    email_required: bool = False
    email_max_length: int = 100


STANDARD_POLICY = ValidationPolicy(name="standard")

STRICT_POLICY = ValidationPolicy(
    name="strict",
    username_max_length=50,
    username_allow_underscore=False,
    password_min_length=8,
    password_special_chars="!@#$%^&*()_+-=[]{};':\"\\|,.<>/?",
    forbid_repeated_chars=True,
    email_required=True,
)

PROFILES: dict[str, ValidationPolicy] = {
    STANDARD_POLICY.name: STANDARD_POLICY,
    STRICT_POLICY.name: STRICT_POLICY,
}


def get_policy(name: str) -> ValidationPolicy:
    """Return the named profile, raising KeyError for unknown names."""
    try:
        return PROFILES[name]
    except KeyError:
        raise KeyError(f"Unknown validation profile: {name!r}") from None


@dataclass(frozen=True)
class CheckResult:
    valid: bool
    value: Any = None
    message: str | None = None

    @classmethod
    def accept(cls, value: Any) -> CheckResult:
        return cls(valid=True, value=value)

    @classmethod
    def reject(cls, message: str) -> CheckResult:
        return cls(valid=False, message=message)


@dataclass(frozen=True)
class RegistrationData:
    """Sanitized registration fields ready for the credential store."""

    username: str
    password: str
    email: str | None = None


def sanitize_input(value: Any) -> Any:
    """Strip characters with markup meaning; non-strings pass through."""
    if not isinstance(value, str):
        return value
    return SANITIZE_PATTERN.sub("", value)


def validate_username(raw: Any, policy: ValidationPolicy = STANDARD_POLICY) -> CheckResult:
    if raw is None or not isinstance(raw, str):
        return CheckResult.reject("Username is required")

    username = raw.strip()

    if len(username) < policy.username_min_length:
        return CheckResult.reject(
            f"Username must be at least {policy.username_min_length} characters long"
        )
    if len(username) > policy.username_max_length:
        return CheckResult.reject(
            f"Username cannot exceed {policy.username_max_length} characters"
        )

    if policy.username_allow_underscore:
        if not USERNAME_PATTERN.match(username):
            return CheckResult.reject(
                "Username can only contain letters, numbers, and underscores"
            )
    elif not ALNUM_USERNAME_PATTERN.match(username):
        return CheckResult.reject("Username can only contain letters and numbers")

    # ASCII only: the character class above already excludes other letters
    if not ("a" <= username[0].lower() <= "z"):
        return CheckResult.reject("Username must start with a letter")

    return CheckResult.accept(username)


def validate_password(raw: Any, policy: ValidationPolicy = STANDARD_POLICY) -> CheckResult:
    """Check a plaintext password against the policy.

    Rules are evaluated in priority order (length, lowercase, uppercase,
    digit, special character, repeated characters) and only the first
    violation is reported. The accepted value is the original string.
    """
    if raw is None or not isinstance(raw, str):
        return CheckResult.reject("Password is required")

    if len(raw) < policy.password_min_length:
        return CheckResult.reject(
            f"Password must be at least {policy.password_min_length} characters long"
        )
    if len(raw) > policy.password_max_length:
        return CheckResult.reject(
            f"Password cannot exceed {policy.password_max_length} characters"
        )
    if not any("a" <= ch <= "z" for ch in raw):
        return CheckResult.reject("Password must contain at least one lowercase letter")
    if not any("A" <= ch <= "Z" for ch in raw):
        return CheckResult.reject("Password must contain at least one uppercase letter")
    if not any("0" <= ch <= "9" for ch in raw):
        return CheckResult.reject("Password must contain at least one number")
    if not any(ch in policy.password_special_chars for ch in raw):
        return CheckResult.reject("Password must contain at least one special character")
    if policy.forbid_repeated_chars and REPEATED_CHAR_PATTERN.search(raw):
        return CheckResult.reject(
            "Password cannot contain three identical characters in a row"
        )

    return CheckResult.accept(raw)


def validate_email(raw: Any, policy: ValidationPolicy = STANDARD_POLICY) -> CheckResult:
    """Shallow local@domain.tld shape check; not RFC 5322."""
    if raw is None or not isinstance(raw, str):
        return CheckResult.reject("Email is required")

    email = raw.strip().lower()

    if len(email) > policy.email_max_length:
        return CheckResult.reject(f"Email cannot exceed {policy.email_max_length} characters")
    if not EMAIL_PATTERN.match(email):
        return CheckResult.reject("Must be a valid email address")

    return CheckResult.accept(email)


def validate_optional_email(raw: Any, policy: ValidationPolicy = STANDARD_POLICY) -> CheckResult:
    """Like validate_email, but a missing value is fine when the profile allows it."""
    missing = raw is None or (isinstance(raw, str) and not raw.strip())
    if missing:
        if policy.email_required:
            return CheckResult.reject("Email is required")
        return CheckResult.accept(None)
    return validate_email(raw, policy)


def validate_registration(
    username: Any,
    password: Any,
    email: Any = None,
    policy: ValidationPolicy = STANDARD_POLICY,
) -> RegistrationData:
    """Run all registration checks, raising ValidationError on the first rejection."""
    checks = (
        ("username", validate_username(username, policy)),
        ("password", validate_password(password, policy)),
        ("email", validate_optional_email(email, policy)),
    )
    for field, result in checks:
        if not result.valid:
            raise ValidationError(result.message, field=field)

    email = sanitize_input(checks[2][1].value)
    # Stripping quotes can break the shape, e.g. "'@x.y" -> "@x.y"
    if email is not None and not EMAIL_PATTERN.match(email):
        raise ValidationError("Must be a valid email address", field="email")

    return RegistrationData(
        username=sanitize_input(checks[0][1].value),
        password=checks[1][1].value,
        email=email,
    )
