from __future__ import annotations

import re
from typing import Any, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from leadsheets.errors import ValidationError

# +1 (555) 123-4567, (555) 123-4567, 555-123-4567, 555.123.4567, 5551234567
PHONE_RE = re.compile(r"^\+?\(?[0-9]{3}\)?[-\s.]?[0-9]{3}[-\s.]?[0-9]{4,6}$")

NAME_MAX = 100
EMAIL_MAX = 255
MESSAGE_MAX = 1000

HONEYPOT_FIELD = "_honeypot"


def _text(value: Any, label: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise PydanticCustomError("string_type", f"{label} must be text")
    return value.strip()


class LeadIn(BaseModel):
    """A validated, normalized lead submission."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(default="", validate_default=True)
    email: str = Field(default="", validate_default=True)
    phone: Optional[str] = None
    message: str = Field(default="", validate_default=True)

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, v: Any) -> str:
        v = _text(v, "Name")
        if not v:
            raise PydanticCustomError("name_required", "Name is required")
        if len(v) > NAME_MAX:
            raise PydanticCustomError("name_too_long", "Name is too long")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def _email(cls, v: Any) -> str:
        v = _text(v, "Email").lower()
        if len(v) > EMAIL_MAX:
            raise PydanticCustomError("email_too_long", "Email is too long")
        try:
            validate_email(v, check_deliverability=False, globally_deliverable=False, test_environment=True)
        except EmailNotValidError:
            raise PydanticCustomError("email_invalid", "Please enter a valid email address")
        return v

    @field_validator("phone", mode="before")
    @classmethod
    def _phone(cls, v: Any) -> Optional[str]:
        v = _text(v, "Phone")
        if not v:
            return None
        if not PHONE_RE.match(re.sub(r"\s", "", v)):
            raise PydanticCustomError("phone_invalid", "Please enter a valid phone number")
        return v

    @field_validator("message", mode="before")
    @classmethod
    def _message(cls, v: Any) -> str:
        v = _text(v, "Message")
        if not v:
            raise PydanticCustomError("message_required", "Message is required")
        if len(v) > MESSAGE_MAX:
            raise PydanticCustomError("message_too_long", "Message is too long")
        return v


class LeadOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    row_number: Optional[int] = Field(default=None, alias="rowNumber")

    def body(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class NotificationResult(BaseModel):
    channel: str                 # email | chat
    success: bool
    method: str                  # gmail | webhook | console-only
    error: Optional[str] = None


class HealthOut(BaseModel):
    status: str = "ok"
    timestamp: str
    uptime: float


def parse_lead(payload: Any) -> LeadIn:
    """
    Validate a raw submission body. Raises leadsheets ValidationError carrying
    every field message, in field order.
    """
    if not isinstance(payload, dict):
        raise ValidationError(["Request body must be a JSON object"])
    try:
        return LeadIn.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError([err["msg"] for err in e.errors()]) from e


def is_spam(payload: Any) -> bool:
    """True when the hidden honeypot field holds anything but None or "", whitespace included."""
    if not isinstance(payload, dict):
        return False
    return payload.get(HONEYPOT_FIELD) not in (None, "")
