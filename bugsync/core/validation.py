"""Validation rules for bug payloads.

The same rules run in the client store before anything is sent and in the
persistence service before anything is written.
"""

from typing import Any, Mapping

from pydantic import BaseModel, Field

from .errors import FieldError, ValidationError, REQUIRED, TOO_SHORT, INVALID_ENUM
from .status import STATUSES

TITLE_MIN_LENGTH = 3
DESCRIPTION_MIN_LENGTH = 10


class ValidationResult(BaseModel):
    """Outcome of validating a payload."""
    valid: bool
    field_errors: dict[str, FieldError] = Field(default_factory=dict)

    def to_error(self, local: bool = True) -> ValidationError:
        return ValidationError(dict(self.field_errors), local=local)


def _as_mapping(payload: Mapping[str, Any] | BaseModel, partial: bool) -> dict[str, Any]:
    if isinstance(payload, BaseModel):
        return payload.model_dump(exclude_unset=partial)
    return dict(payload)


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _check_text(label: str, value: Any, min_length: int) -> FieldError | None:
    text = _text(value)
    if not text:
        return FieldError(code=REQUIRED, message=f"{label} is required")
    if len(text) < min_length:
        return FieldError(
            code=TOO_SHORT,
            message=f"{label} must be at least {min_length} characters",
        )
    return None


def validate(payload: Mapping[str, Any] | BaseModel, partial: bool = False) -> ValidationResult:
    """Validate a bug payload.

    With ``partial=True`` only the fields present in the payload are checked,
    which is what a partial update needs. Status is only checked when present.
    """
    data = _as_mapping(payload, partial)
    errors: dict[str, FieldError] = {}

    if not partial or "title" in data:
        error = _check_text("Title", data.get("title"), TITLE_MIN_LENGTH)
        if error:
            errors["title"] = error

    if not partial or "description" in data:
        error = _check_text("Description", data.get("description"), DESCRIPTION_MIN_LENGTH)
        if error:
            errors["description"] = error

    status = data.get("status")
    if status is not None and status not in STATUSES:
        errors["status"] = FieldError(
            code=INVALID_ENUM,
            message=f"Status {status!r} is not a valid value. Allowed: {', '.join(STATUSES)}",
        )

    return ValidationResult(valid=not errors, field_errors=errors)
