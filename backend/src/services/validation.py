"""
Explicit validation for profiles and events.

Each function collects every field error it finds and returns a
ValidationResult; callers run these before touching the session so a
rejected request never leaves a partial record behind.

Usage:
    >>> result = validate_profile(name="Ann", timezone="Mars/Phobos")
    >>> result.ok
    False
    >>> result.raise_if_invalid()
    Traceback (most recent call last):
    ValidationError: Invalid timezone provided
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from backend.src.models.event import EVENT_DESCRIPTION_MAX_LENGTH, EVENT_TITLE_MAX_LENGTH
from backend.src.models.profile import PROFILE_NAME_MAX_LENGTH
from backend.src.models.types import utcnow
from backend.src.services.exceptions import ValidationError
from backend.src.services.timezone_service import TimezoneService, parse_instant


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}


@dataclass
class ValidationResult:
    """Accumulated field errors for one entity."""

    errors: List[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add(self, field_name: str, message: str) -> None:
        self.errors.append(FieldError(field_name, message))

    def raise_if_invalid(self) -> None:
        """
        Raise the service ValidationError for the first error.

        Raises:
            ValidationError: With every field error attached in ``errors``
        """
        if self.errors:
            first = self.errors[0]
            raise ValidationError(
                first.message,
                field=first.field,
                errors=[error.to_dict() for error in self.errors],
            )


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _check_timezone(result: ValidationResult, tz_id: Any, required_message: str) -> None:
    if _is_blank(tz_id):
        result.add("timezone", required_message)
    elif not TimezoneService.is_valid_timezone(tz_id):
        result.add("timezone", "Invalid timezone provided")


def _check_instant(
    result: ValidationResult,
    field_name: str,
    value: Any,
    required_message: str
) -> Optional[datetime]:
    """Parse an instant field, recording an error and returning None on failure."""
    if _is_blank(value):
        result.add(field_name, required_message)
        return None
    try:
        return parse_instant(value)
    except (TypeError, ValueError):
        result.add(field_name, f"Invalid date/time value for {field_name}")
        return None


def _check_title(result: ValidationResult, title: Any) -> None:
    if _is_blank(title):
        result.add("title", "Event title is required")
    elif len(title.strip()) > EVENT_TITLE_MAX_LENGTH:
        result.add("title", f"Title cannot be more than {EVENT_TITLE_MAX_LENGTH} characters")


def _check_description(result: ValidationResult, description: Any) -> None:
    if description is not None and len(description.strip()) > EVENT_DESCRIPTION_MAX_LENGTH:
        result.add(
            "description",
            f"Description cannot be more than {EVENT_DESCRIPTION_MAX_LENGTH} characters"
        )


def _check_profiles(result: ValidationResult, profile_guids: Any) -> None:
    if not profile_guids:
        result.add("profiles", "At least one profile must be assigned")
    elif len(set(profile_guids)) != len(profile_guids):
        result.add("profiles", "A profile can only be assigned once")


def validate_profile(name: Any, timezone: Any) -> ValidationResult:
    """Validate profile name (required, trimmed length) and timezone."""
    result = ValidationResult()
    if _is_blank(name):
        result.add("name", "Profile name is required")
    elif len(name.strip()) > PROFILE_NAME_MAX_LENGTH:
        result.add("name", f"Name cannot be more than {PROFILE_NAME_MAX_LENGTH} characters")
    _check_timezone(result, timezone, "Timezone is required")
    return result


def validate_event_create(
    title: Any,
    profile_guids: Optional[Sequence[str]],
    timezone: Any,
    start_date_time: Any,
    end_date_time: Any,
    created_by_guid: Any,
    description: Any = None,
    now: Optional[datetime] = None
) -> ValidationResult:
    """
    Validate a complete event before creation.

    Checks required fields and lengths, the timezone, ``end > start`` and
    that the event does not end in the past.
    """
    result = ValidationResult()
    _check_title(result, title)
    _check_description(result, description)
    _check_profiles(result, profile_guids)
    _check_timezone(result, timezone, "Event timezone is required")
    if _is_blank(created_by_guid):
        result.add("created_by", "Creator profile is required")

    start = _check_instant(result, "start_date_time", start_date_time,
                           "Start date and time is required")
    end = _check_instant(result, "end_date_time", end_date_time,
                         "End date and time is required")
    if start is not None and end is not None:
        if end <= start:
            result.add("end_date_time", "End date/time must be after start date/time")
        elif end < (now or utcnow()):
            result.add("end_date_time", "End date/time cannot be in the past")
    return result


def validate_event_update(
    existing_start: datetime,
    existing_end: datetime,
    fields: Mapping[str, Any]
) -> ValidationResult:
    """
    Validate the supplied subset of event fields.

    Only fields present in ``fields`` are checked, but the ordering rule is
    applied to the merged result: a new start is compared against the stored
    end when no new end is supplied, and vice versa.
    """
    result = ValidationResult()
    if "title" in fields:
        _check_title(result, fields["title"])
    if "description" in fields:
        _check_description(result, fields["description"])
    if "profiles" in fields:
        _check_profiles(result, fields["profiles"])
    if "timezone" in fields:
        _check_timezone(result, fields["timezone"], "Event timezone is required")

    start, end = existing_start, existing_end
    if "start_date_time" in fields:
        start = _check_instant(result, "start_date_time", fields["start_date_time"],
                               "Start date and time is required")
    if "end_date_time" in fields:
        end = _check_instant(result, "end_date_time", fields["end_date_time"],
                             "End date and time is required")
    if start is not None and end is not None and end <= start:
        result.add("end_date_time", "End date/time must be after start date/time")
    return result
