"""
TaskTrack Schemas — typed request/response models at the HTTP boundary.

Request models forbid unknown keys and collect every violated constraint.
``parse_payload()`` turns pydantic's error list into the service's
field-level ``ValidationError`` entries.

Partial updates: a key present in the request body marks the field as being
set (``model_fields_set``), whatever its value. Absent keys are untouched.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_serializer, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from tasktrack.db.models import (
    BIO_MAX_LENGTH,
    DESCRIPTION_MAX_LENGTH,
    NAME_MAX_LENGTH,
    TASK_PRIORITIES,
    TASK_STATUSES,
    TITLE_MAX_LENGTH,
)
from tasktrack.engine.errors import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
URL_PATTERN = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)
DEFAULT_PASSWORD_MIN_LENGTH = 6
# bcrypt only accepts this many input bytes
PASSWORD_MAX_BYTES = 72

# Messages for required fields that are absent entirely
MISSING_MESSAGES = {
    "title": "Title is required",
    "name": "Name is required",
    "email": "Email is required",
    "password": "Password is required",
}


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ---------------------------------------------------------------------------
# Shared validators
# ---------------------------------------------------------------------------

def _check_title(value: Any) -> str:
    if value is None:
        raise ValueError("Title cannot be empty")
    if not isinstance(value, str):
        raise ValueError("Title must be a string")
    value = value.strip()
    if not value:
        raise ValueError("Title cannot be empty")
    if len(value) > TITLE_MAX_LENGTH:
        raise ValueError(f"Title cannot be more than {TITLE_MAX_LENGTH} characters")
    return value


def _check_status(value: Any) -> str:
    if value not in TASK_STATUSES:
        raise ValueError("Invalid status")
    return value


def _check_priority(value: Any) -> str:
    if value not in TASK_PRIORITIES:
        raise ValueError("Invalid priority")
    return value


def _clean_description(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("Description must be a string")
    value = value.strip()
    if len(value) > DESCRIPTION_MAX_LENGTH:
        raise ValueError(f"Description cannot be more than {DESCRIPTION_MAX_LENGTH} characters")
    return value or None


def _clean_due_date(value: Any) -> Any:
    if value is None or value == "":
        return None
    if isinstance(value, str) and "T" in value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError("Invalid due date") from None
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc)
        return parsed.date()
    return value


def _clean_tags(value: Any) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError("Tags must be a list of strings")
    cleaned = []
    for tag in value:
        if not isinstance(tag, str):
            raise ValueError("Tags must be a list of strings")
        tag = tag.strip()
        if tag:
            cleaned.append(tag)
    return cleaned


class _RequestModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ---------------------------------------------------------------------------
# Task requests
# ---------------------------------------------------------------------------

class _TaskPayload(_RequestModel):
    """Fields shared by task create and update bodies."""

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[date] = None
    tags: Optional[List[str]] = None

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: Any) -> str:
        return _check_title(v)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: Any) -> str:
        return _check_status(v)

    @field_validator("priority", mode="before")
    @classmethod
    def validate_priority(cls, v: Any) -> str:
        return _check_priority(v)

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v: Any) -> Optional[str]:
        return _clean_description(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def validate_due_date(cls, v: Any) -> Any:
        return _clean_due_date(v)

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v: Any) -> List[str]:
        return _clean_tags(v)


class TaskCreateRequest(_TaskPayload):
    title: str


class TaskUpdateRequest(_TaskPayload):

    def changes(self) -> Dict[str, Any]:
        """Only the fields whose keys were present in the request."""
        return self.model_dump(exclude_unset=True)


# ---------------------------------------------------------------------------
# Profile / account requests
# ---------------------------------------------------------------------------

def _check_name(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Name cannot be empty")
    value = value.strip()
    if len(value) > NAME_MAX_LENGTH:
        raise ValueError(f"Name cannot be more than {NAME_MAX_LENGTH} characters")
    return value


def _check_email(value: Any) -> str:
    if not isinstance(value, str) or not EMAIL_PATTERN.match(value.strip()):
        raise ValueError("Please enter a valid email")
    return value.strip().lower()


class ProfileUpdateRequest(_RequestModel):
    name: Optional[str] = None
    bio: Optional[str] = None
    avatar: Optional[str] = None
    email: Optional[Any] = None

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        return _check_name(v)

    @field_validator("bio", mode="before")
    @classmethod
    def validate_bio(cls, v: Any) -> Optional[str]:
        if v is None or v == "":
            return None
        if not isinstance(v, str):
            raise ValueError("Bio must be a string")
        if len(v) > BIO_MAX_LENGTH:
            raise ValueError(f"Bio cannot be more than {BIO_MAX_LENGTH} characters")
        return v

    @field_validator("avatar", mode="before")
    @classmethod
    def validate_avatar(cls, v: Any) -> Optional[str]:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        if not isinstance(v, str) or not URL_PATTERN.match(v.strip()):
            raise ValueError("Avatar must be a valid URL")
        return v.strip()

    @field_validator("email", mode="before")
    @classmethod
    def reject_email(cls, v: Any) -> Any:
        raise ValueError("Email cannot be changed")

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude={"email"})


class RegisterRequest(_RequestModel):
    name: str
    email: str
    password: str

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        return _check_name(v)

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, v: Any) -> str:
        return _check_email(v)

    @field_validator("password", mode="before")
    @classmethod
    def validate_password(cls, v: Any, info: ValidationInfo) -> str:
        min_length = (info.context or {}).get("password_min_length", DEFAULT_PASSWORD_MIN_LENGTH)
        if not isinstance(v, str) or len(v) < min_length:
            raise ValueError(f"Password must be at least {min_length} characters")
        if len(v.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise ValueError(f"Password cannot be more than {PASSWORD_MAX_BYTES} bytes")
        return v


class LoginRequest(_RequestModel):
    email: str
    password: str

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, v: Any) -> str:
        return _check_email(v)

    @field_validator("password", mode="before")
    @classmethod
    def validate_password(cls, v: Any) -> str:
        if not isinstance(v, str) or not v:
            raise ValueError("Password is required")
        return v


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class _ResponseModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_public(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class Principal(_ResponseModel):
    """Public view of a user. The credential secret is never part of it."""
    id: str
    name: str
    email: str
    bio: Optional[str] = None
    avatar: Optional[str] = None
    created_at: datetime

    @field_serializer("created_at")
    def _serialize_created(self, value: datetime) -> str:
        return _as_utc(value).isoformat()

    @classmethod
    def from_record(cls, user) -> "Principal":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            bio=user.bio,
            avatar=user.avatar,
            created_at=user.created_at,
        )


class TaskOut(_ResponseModel):
    id: str
    user: str
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    due_date: Optional[date] = None
    tags: List[str] = []
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def _serialize_timestamps(self, value: datetime) -> str:
        return _as_utc(value).isoformat()

    @classmethod
    def from_record(cls, task) -> "TaskOut":
        return cls(
            id=task.id,
            user=task.user_id,
            title=task.title,
            description=task.description,
            status=task.status,
            priority=task.priority,
            due_date=task.due_date,
            tags=list(task.tags or []),
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


class TaskStats(_ResponseModel):
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    high_priority: int = 0


# ---------------------------------------------------------------------------
# Payload parsing
# ---------------------------------------------------------------------------

def _error_message(err: Mapping[str, Any], field: str) -> str:
    kind = err.get("type")
    if kind == "value_error":
        ctx = err.get("ctx") or {}
        if "error" in ctx:
            return str(ctx["error"])
    if kind == "missing":
        return MISSING_MESSAGES.get(field, f"{field} is required")
    if kind == "extra_forbidden":
        return f"Unknown field '{field}'"
    return str(err.get("msg", "Invalid value"))


def convert_errors(exc: PydanticValidationError) -> List[Dict[str, Any]]:
    """Flatten pydantic errors into {"field", "message", "value"} entries."""
    entries = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "body"
        value = None if err.get("type") == "missing" else err.get("input")
        entries.append({
            "field": field,
            "message": _error_message(err, field),
            "value": value,
        })
    return entries


def parse_payload(
    model: Type[ModelT],
    payload: Any,
    context: Optional[Dict[str, Any]] = None,
) -> ModelT:
    """
    Validate a decoded JSON body into ``model``.

    Raises:
        ValidationError with one entry per violated constraint.
    """
    if not isinstance(payload, dict):
        raise ValidationError(
            "Validation failed",
            validation_errors=[{
                "field": "body",
                "message": "Request body must be a JSON object",
                "value": None,
            }],
        )
    try:
        return model.model_validate(payload, context=context)
    except PydanticValidationError as e:
        raise ValidationError("Validation failed", validation_errors=convert_errors(e)) from e
