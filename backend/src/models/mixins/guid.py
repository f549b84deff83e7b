"""
GUID support shared by profiles, events and audit log entries.

Each of these tables has a ``uuid`` column (UUIDv7, filled on insert) next
to its integer primary key. The API only ever exposes the GUID derived from
it, e.g. ``evt_01jx4v1k7d8e6q3m5n9r2s0t4w``; see services.guid for the
format.
"""

import uuid as uuid_module
from typing import ClassVar, Optional

from sqlalchemy import Column, TypeDecorator, LargeBinary
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

from backend.src.services.guid import GuidService


class UUIDType(TypeDecorator):
    """
    UUID column that works on both supported backends.

    PostgreSQL stores a native UUID; SQLite stores the 16 raw bytes.
    Python code always sees ``uuid.UUID``.
    """

    impl = LargeBinary
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(LargeBinary(16))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, bytes):
            value = uuid_module.UUID(bytes=value)
        elif not isinstance(value, uuid_module.UUID):
            value = uuid_module.UUID(str(value))
        return value if dialect.name == "postgresql" else value.bytes

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, uuid_module.UUID):
            return value
        if isinstance(value, bytes):
            return uuid_module.UUID(bytes=value)
        return uuid_module.UUID(str(value))


class GuidMixin:
    """
    Adds the ``uuid`` column, the ``guid`` property and ``parse_guid``.

    Usage:
        class Profile(Base, GuidMixin):
            GUID_PREFIX = "pro"

        Profile.parse_guid("pro_01jx...")  # -> UUID, ValueError if malformed
    """

    GUID_PREFIX: ClassVar[str]

    uuid = Column(
        UUIDType(),
        nullable=False,
        unique=True,
        index=True,
        default=GuidService.generate_uuid,
    )

    @property
    def guid(self) -> Optional[str]:
        """Prefixed GUID, or None until the row has been flushed."""
        if self.uuid is None:
            return None
        return GuidService.encode_uuid(self.uuid, self.GUID_PREFIX)

    @classmethod
    def parse_guid(cls, guid: str) -> uuid_module.UUID:
        """
        UUID of a GUID belonging to this entity type.

        Raises:
            ValueError: If the GUID is malformed or has another prefix
        """
        return GuidService.parse_guid(guid, cls.GUID_PREFIX)
