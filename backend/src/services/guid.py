"""
Public identifiers for profiles, events and audit log entries.

Internal integer ids never leave the database. Every persisted entity also
carries a UUIDv7, and clients see it as a GUID string:

    {prefix}_{26 lowercase Crockford base32 characters}

    pro_01jx4v1k7d8e6q3m5n9r2s0t4w   Profile
    evt_...                          Event
    log_...                          EventUpdateLog

Parsing is case-insensitive; the prefix must match the entity being looked
up, so an event GUID never resolves to a profile.
"""

import re
import uuid
from typing import Optional, Tuple, Union

import base32_crockford
from uuid_extensions import uuid7


ENTITY_PREFIXES = {
    "pro": "Profile",
    "evt": "Event",
    "log": "EventUpdateLog",
}

ENCODED_LENGTH = 26

# Crockford base32 without I, L, O, U
GUID_PATTERN = re.compile(
    r"^(%s)_[0-9a-hjkmnp-tv-z]{%d}$" % ("|".join(ENTITY_PREFIXES), ENCODED_LENGTH),
    re.IGNORECASE,
)


def _split(guid: str) -> Tuple[str, str]:
    prefix, _, encoded = guid.partition("_")
    return prefix.lower(), encoded


class GuidService:
    """
    Static helpers to mint, encode and parse GUIDs.

    Usage:
        >>> guid = GuidService.generate_guid("evt")
        >>> GuidService.parse_guid(guid, "evt")
        UUID('01936f0e-...')
    """

    @staticmethod
    def generate_uuid() -> uuid.UUID:
        """New time-ordered UUIDv7 (keeps the uuid index append-mostly)."""
        return uuid7()

    @staticmethod
    def encode_uuid(uuid_value: Union[uuid.UUID, bytes], prefix: str) -> str:
        """
        Render a UUID (or its 16 raw bytes) as a GUID.

        Raises:
            ValueError: If the prefix is not one of ENTITY_PREFIXES
        """
        if prefix not in ENTITY_PREFIXES:
            raise ValueError(
                f"Invalid prefix '{prefix}'. Valid prefixes: {', '.join(ENTITY_PREFIXES)}"
            )
        raw = uuid_value if isinstance(uuid_value, bytes) else uuid_value.bytes
        encoded = base32_crockford.encode(int.from_bytes(raw, "big"))
        return f"{prefix}_{encoded.zfill(ENCODED_LENGTH).lower()}"

    @staticmethod
    def generate_guid(prefix: str) -> str:
        return GuidService.encode_uuid(GuidService.generate_uuid(), prefix)

    @staticmethod
    def decode_guid(guid: str) -> Tuple[str, uuid.UUID]:
        """
        Split a GUID into its prefix and UUID.

        Raises:
            ValueError: If the string is empty, malformed, or encodes more
                than 128 bits
        """
        if not guid:
            raise ValueError("GUID cannot be empty")
        if not GUID_PATTERN.match(guid):
            raise ValueError(
                f"Invalid GUID format: {guid}. Expected {{prefix}}_{{26-char base32}}"
            )

        prefix, encoded = _split(guid)
        try:
            value = base32_crockford.decode(encoded.upper())
            return prefix, uuid.UUID(bytes=value.to_bytes(16, "big"))
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Invalid GUID encoding: {e}")

    @staticmethod
    def validate_guid(guid: str, expected_prefix: Optional[str] = None) -> bool:
        """Format check only; never raises."""
        if not isinstance(guid, str) or not GUID_PATTERN.match(guid):
            return False
        if expected_prefix is None:
            return True
        return _split(guid)[0] == expected_prefix.lower()

    @staticmethod
    def get_entity_type(guid: str) -> Optional[str]:
        """Entity name for the GUID's prefix, or None."""
        if not isinstance(guid, str):
            return None
        return ENTITY_PREFIXES.get(_split(guid)[0])

    @staticmethod
    def parse_guid(guid: str, expected_prefix: str) -> uuid.UUID:
        """
        Resolve a GUID of a known entity type to its UUID.

        Raises:
            ValueError: If the GUID is empty or malformed, or its prefix is
                not ``expected_prefix``
        """
        if not guid:
            raise ValueError("Identifier cannot be empty")

        prefix, uuid_value = GuidService.decode_guid(guid)
        if prefix != expected_prefix.lower():
            raise ValueError(
                f"GUID prefix mismatch. Expected '{expected_prefix}', got '{prefix}'"
            )
        return uuid_value
