"""
Timezone service for IANA timezone validation, conversion and formatting.

All persisted instants are absolute (UTC). The timezone stored on profiles
and events is presentation metadata: conversion happens only when an
instant is rendered for a viewer, or when a zone-naive wall-clock value
supplied by a client has to be pinned to a zone.

Design:
- Validation and formatting fail closed and never raise:
  is_valid_timezone -> False, format -> "N/A" / "Invalid Date",
  current_offset -> "UTC"
- Offsets are computed for the current instant, so zones with daylight
  saving report the offset in effect now
- Naive datetimes passed as instants are treated as UTC
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from backend.src.utils.logging_config import get_logger


logger = get_logger("services")


# Zones offered by the profile and event forms
COMMON_TIMEZONES = [
    "UTC",
    "America/New_York",
    "America/Chicago",
    "America/Denver",
    "America/Los_Angeles",
    "Europe/London",
    "Europe/Paris",
    "Europe/Berlin",
    "Asia/Tokyo",
    "Asia/Kolkata",
    "Asia/Singapore",
    "Australia/Sydney",
]

DEFAULT_FORMAT = "%Y-%m-%d %H:%M"
INPUT_FORMAT = "%Y-%m-%dT%H:%M"

MISSING_VALUE = "N/A"
INVALID_DATE = "Invalid Date"
FALLBACK_OFFSET = "UTC"


def _as_utc(instant: datetime) -> datetime:
    """Attach UTC to naive datetimes; leave aware ones untouched."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant


def parse_instant(value: Union[str, datetime]) -> datetime:
    """
    Parse an ISO-8601 string (or pass through a datetime) as an aware instant.

    A trailing "Z" is accepted. Naive values are interpreted as UTC.

    Raises:
        ValueError: If the string is not ISO-8601
    """
    if isinstance(value, datetime):
        return _as_utc(value)
    if not isinstance(value, str):
        raise ValueError(f"Expected an ISO-8601 string, got {type(value).__name__}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return _as_utc(datetime.fromisoformat(text))


class TimezoneService:
    """
    Stateless helpers around zoneinfo.

    Usage:
        >>> TimezoneService.is_valid_timezone("Europe/Paris")
        True
        >>> TimezoneService.format(instant, "Asia/Tokyo")
        '2025-06-01 19:00'
        >>> TimezoneService.current_offset("Asia/Kolkata")
        'UTC+5:30'
    """

    @staticmethod
    def get_zone(tz_id: str) -> Optional[ZoneInfo]:
        """
        Resolve an IANA identifier to a ZoneInfo.

        Returns:
            ZoneInfo, or None when the identifier cannot be resolved
        """
        if not tz_id or not isinstance(tz_id, str):
            return None
        try:
            return ZoneInfo(tz_id)
        except (ZoneInfoNotFoundError, ValueError, TypeError, OSError):
            return None

    @staticmethod
    def is_valid_timezone(tz_id: str) -> bool:
        """Return True iff ``tz_id`` is a resolvable IANA timezone identifier."""
        return TimezoneService.get_zone(tz_id) is not None

    @staticmethod
    def format(
        instant: Optional[datetime],
        tz_id: str,
        pattern: str = DEFAULT_FORMAT
    ) -> str:
        """
        Render an instant in the wall clock of ``tz_id``.

        Args:
            instant: Absolute instant (naive values are UTC); None allowed
            tz_id: IANA timezone identifier
            pattern: strftime pattern

        Returns:
            Formatted string, "N/A" when instant is None,
            "Invalid Date" when the zone cannot be resolved
        """
        if instant is None:
            return MISSING_VALUE
        zone = TimezoneService.get_zone(tz_id)
        if zone is None:
            return INVALID_DATE
        try:
            return _as_utc(instant).astimezone(zone).strftime(pattern)
        except (ValueError, OverflowError, AttributeError) as e:
            logger.debug(f"Could not format {instant!r} in {tz_id}: {e}")
            return INVALID_DATE

    @staticmethod
    def format_for_display(instant: Optional[datetime], tz_id: str) -> str:
        """
        Human readable rendering, e.g. "Jun 1, 2025 at 6:00 AM".

        Day and hour are not zero padded. Same sentinels as format().
        """
        if instant is None:
            return MISSING_VALUE
        zone = TimezoneService.get_zone(tz_id)
        if zone is None:
            return INVALID_DATE
        try:
            local = _as_utc(instant).astimezone(zone)
        except (ValueError, OverflowError, AttributeError):
            return INVALID_DATE
        hour = local.hour % 12 or 12
        return f"{local:%b} {local.day}, {local:%Y} at {hour}:{local:%M} {local:%p}"

    @staticmethod
    def format_for_input(instant: Optional[datetime], tz_id: str) -> str:
        """Rendering suitable for an <input type="datetime-local"> value."""
        return TimezoneService.format(instant, tz_id, INPUT_FORMAT)

    @staticmethod
    def current_offset(tz_id: str, at: Optional[datetime] = None) -> str:
        """
        UTC offset of ``tz_id`` at ``at`` (default: now).

        Returns:
            "UTC+H", "UTC-H", "UTC+H:MM" or "UTC-H:MM"; "UTC" when the zone
            cannot be resolved
        """
        zone = TimezoneService.get_zone(tz_id)
        if zone is None:
            return FALLBACK_OFFSET
        moment = _as_utc(at) if at is not None else datetime.now(timezone.utc)
        offset = moment.astimezone(zone).utcoffset() or timedelta(0)
        total_minutes = int(offset.total_seconds() // 60)
        sign = "+" if total_minutes >= 0 else "-"
        hours, minutes = divmod(abs(total_minutes), 60)
        if minutes == 0:
            return f"UTC{sign}{hours}"
        return f"UTC{sign}{hours}:{minutes:02d}"

    @staticmethod
    def convert(
        value: Union[str, datetime],
        from_tz: str,
        to_tz: str
    ) -> datetime:
        """
        Express a value as an instant in ``to_tz``.

        Zone-naive values (strings without offset or naive datetimes) are
        wall-clock times belonging to ``from_tz``. Values that already carry
        an offset are instants and ``from_tz`` does not change them.

        Args:
            value: ISO-8601 string or datetime
            from_tz: IANA zone the naive wall-clock value belongs to
            to_tz: IANA zone of the result

        Returns:
            Aware datetime in ``to_tz`` (same instant)

        Raises:
            ValueError: If either zone is invalid or the string cannot be parsed
        """
        source = TimezoneService.get_zone(from_tz)
        target = TimezoneService.get_zone(to_tz)
        if source is None:
            raise ValueError(f"Invalid timezone: {from_tz}")
        if target is None:
            raise ValueError(f"Invalid timezone: {to_tz}")

        if isinstance(value, str):
            text = value.strip()
            if text.endswith(("Z", "z")):
                text = text[:-1] + "+00:00"
            parsed = datetime.fromisoformat(text)
        elif isinstance(value, datetime):
            parsed = value
        else:
            raise ValueError(f"Cannot convert value of type {type(value).__name__}")

        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=source)
        return parsed.astimezone(target)

    @staticmethod
    def now_in_timezone(tz_id: str, pattern: str = INPUT_FORMAT) -> str:
        """Current wall-clock time in ``tz_id`` (form default values)."""
        return TimezoneService.format(datetime.now(timezone.utc), tz_id, pattern)

    @staticmethod
    def future_in_timezone(tz_id: str, hours: int = 1, pattern: str = INPUT_FORMAT) -> str:
        """Wall-clock time ``hours`` from now in ``tz_id``."""
        return TimezoneService.format(
            datetime.now(timezone.utc) + timedelta(hours=hours), tz_id, pattern
        )

    @staticmethod
    def times_for_timezones(
        instant: Optional[datetime],
        tz_ids: Iterable[str],
        pattern: str = DEFAULT_FORMAT
    ) -> Dict[str, str]:
        """Render one instant in several zones, keyed by zone identifier."""
        return {tz_id: TimezoneService.format(instant, tz_id, pattern) for tz_id in tz_ids}

    @staticmethod
    def list_common_timezones(at: Optional[datetime] = None) -> list:
        """Common zones with their current offsets, for selectors."""
        return [
            {"timezone": tz_id, "utc_offset": TimezoneService.current_offset(tz_id, at)}
            for tz_id in COMMON_TIMEZONES
        ]
