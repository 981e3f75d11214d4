"""
api/models.py -- Pydantic v2 models for form validation and JSON responses.

These models define the HTTP transport contract. They are intentionally
separate from the dataclasses in auth/models.py and customers/models.py,
which own the domain representation. Route handlers map between the two.

Form models raise PydanticCustomError so the first error message can be
shown on the page verbatim (plain ValueError would prefix "Value error, ").
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from auth.passwords import MAX_PASSWORD_BYTES

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6


# ---------------------------------------------------------------------------
# Shared field checks
# ---------------------------------------------------------------------------


def _check_email(value: str) -> str:
    if not value:
        raise PydanticCustomError("email_required", "Email is required")
    if not EMAIL_PATTERN.match(value):
        raise PydanticCustomError("email_invalid", "Invalid email address")
    return value


def _check_password_bytes(value: str) -> str:
    # bcrypt ignores everything past 72 bytes
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise PydanticCustomError(
            "password_too_long",
            "Password must be at most {max_bytes} bytes",
            {"max_bytes": MAX_PASSWORD_BYTES},
        )
    return value


def first_error(exc: ValidationError) -> str:
    """Return the message of the first validation error, for display on the form."""
    errors = exc.errors()
    if not errors:
        return "Invalid input"
    return errors[0]["msg"]


# ---------------------------------------------------------------------------
# Form models
# ---------------------------------------------------------------------------


class LoginForm(BaseModel):
    """POST /login body. Password only needs to be present."""

    model_config = ConfigDict(frozen=True)

    email: str = ""
    password: str = ""

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not v:
            raise PydanticCustomError("password_required", "Password is required")
        return _check_password_bytes(v)


class RegisterForm(BaseModel):
    """POST /register body."""

    model_config = ConfigDict(frozen=True)

    email: str = ""
    password: str = ""

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise PydanticCustomError(
                "password_too_short",
                "Password must be at least {min_length} characters",
                {"min_length": MIN_PASSWORD_LENGTH},
            )
        return _check_password_bytes(v)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
