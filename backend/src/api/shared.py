# pyright: reportMissingTypeStubs=false
"""
Shared models and validators for API endpoints.

Request and response bodies use camelCase on the wire (`firstName`,
`appointmentDate`, ...) while Python code uses snake_case. Every model derives
from `CamelModel`, which accepts either spelling on input and emits camelCase.
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from core.constants import MAX_NOTES_LENGTH

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 72  # bcrypt input limit


class CamelModel(BaseModel):
    """Base model with camelCase aliases."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ===== Common Field Validators =====

def validate_required_text(v: str, field_label: str = "Field", max_length: int = 255) -> str:
    """Trim and require a non-empty string of bounded length."""
    v = (v or "").strip()
    if not v:
        raise ValueError(f"{field_label} is required")
    if len(v) > max_length:
        raise ValueError(f"{field_label} is too long (max {max_length} characters)")
    return v


def validate_email(v: str) -> str:
    v = (v or "").strip().lower()
    if not EMAIL_PATTERN.match(v):
        raise ValueError("Invalid email address")
    return v


def validate_email_optional(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return None
    return validate_email(v)


def validate_password(v: str) -> str:
    if len(v) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if len(v.encode("utf-8")) > PASSWORD_MAX_LENGTH:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_LENGTH} bytes")
    return v


def validate_notes(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    if len(v) > MAX_NOTES_LENGTH:
        raise ValueError(f"Notes are too long (max {MAX_NOTES_LENGTH} characters)")
    return v


def validate_choice(v: Optional[str], choices: tuple[str, ...], field_label: str) -> Optional[str]:
    """Case-insensitive enum check; returns the canonical uppercase value."""
    if v is None:
        return None
    upper = v.strip().upper()
    if upper not in choices:
        raise ValueError(f"{field_label} must be one of: {', '.join(choices)}")
    return upper
