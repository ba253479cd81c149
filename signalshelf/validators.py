"""
Boundary validation for signal payloads.

Untyped input (CLI arguments, MCP tool arguments, decoded JSON) is
checked here before it reaches the store. The outcome is either
``Valid`` carrying a typed SignalInput, or ``Invalid`` carrying one
message per offending field. Validation never raises.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from .types import MAX_TAGS, STATUS_INBOX, STATUSES

TITLE_MIN_LENGTH = 2
TITLE_MAX_LENGTH = 120
NOTES_MAX_LENGTH = 2000
TAG_MAX_LENGTH = 24

_URL_SCHEME_RE = re.compile(r'^https?://', re.IGNORECASE)

# Messages for pydantic's own error types (missing field, wrong model input)
_REQUIRED_MESSAGES = {
    "url": "URL is required.",
    "title": "Title is required.",
}


def _fail(kind: str, message: str) -> PydanticCustomError:
    return PydanticCustomError(kind, message)


class SignalInput(BaseModel):
    """A validated create/update payload."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    url: str = Field(default="", validate_default=True)
    title: str = Field(default="", validate_default=True)
    notes: str = Field(default="", validate_default=True)
    tags: list[str] = Field(default_factory=list, validate_default=True)
    status: str = Field(default=STATUS_INBOX, validate_default=True)

    @field_validator("url", mode="before")
    @classmethod
    def _check_url(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise _fail("url_required", "URL is required.")
        value = value.strip()
        if not _URL_SCHEME_RE.match(value):
            raise _fail("url_scheme", "URL must start with http:// or https://.")
        return value

    @field_validator("title", mode="before")
    @classmethod
    def _check_title(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise _fail("title_required", "Title is required.")
        value = value.strip()
        if not TITLE_MIN_LENGTH <= len(value) <= TITLE_MAX_LENGTH:
            raise _fail(
                "title_length",
                f"Title must be between {TITLE_MIN_LENGTH} and {TITLE_MAX_LENGTH} characters.",
            )
        return value

    @field_validator("notes", mode="before")
    @classmethod
    def _check_notes(cls, value: Any) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            raise _fail("notes_type", "Notes must be a string.")
        if len(value) > NOTES_MAX_LENGTH:
            raise _fail("notes_length", f"Notes must be {NOTES_MAX_LENGTH} characters or less.")
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _check_tags(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if not isinstance(value, (list, tuple)):
            raise _fail("tags_type", "Tags must be an array.")
        if len(value) > MAX_TAGS:
            raise _fail("tags_count", f"Tags must have at most {MAX_TAGS} items.")
        tags = []
        for raw in value:
            if not isinstance(raw, str):
                raise _fail("tag_type", "Each tag must be a string.")
            tag = raw.strip().lower()
            if not 1 <= len(tag) <= TAG_MAX_LENGTH:
                raise _fail("tag_length", f"Each tag must be 1 to {TAG_MAX_LENGTH} characters.")
            tags.append(tag)
        return tags

    @field_validator("status", mode="before")
    @classmethod
    def _check_status(cls, value: Any) -> str:
        if value is None or value == "":
            return STATUS_INBOX
        if not isinstance(value, str):
            raise _fail("status_type", "Status must be a string.")
        if value not in STATUSES:
            raise _fail("status_choice", "Status must be inbox, reading, or done.")
        return value


@dataclass(frozen=True)
class Valid:
    """Validation succeeded."""
    value: SignalInput
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Invalid:
    """Validation failed; maps field name to message."""
    errors: dict[str, str]
    ok: bool = field(default=False, init=False)


ValidationResult = Union[Valid, Invalid]


def _errors_by_field(exc: ValidationError) -> dict[str, str]:
    errors: dict[str, str] = {}
    for err in exc.errors():
        loc = err.get("loc") or ("body",)
        name = str(loc[0])
        if name in errors:
            continue
        if err.get("type") == "missing":
            errors[name] = _REQUIRED_MESSAGES.get(name, f"{name} is required.")
        else:
            errors[name] = err.get("msg", "Invalid value.")
    return errors


def validate_signal_input(payload: Any) -> ValidationResult:
    """
    Validate an untyped payload against the signal field rules.

    Args:
        payload: Anything; non-mappings fail every required field

    Returns:
        Valid(SignalInput) or Invalid({field: message})
    """
    if not isinstance(payload, dict):
        payload = {}
    try:
        return Valid(SignalInput.model_validate(payload))
    except ValidationError as e:
        return Invalid(_errors_by_field(e))
