"""
GUID support for EventCore models.

Rows carry a UUIDv7 key and are addressed externally by a prefixed,
lowercase Crockford Base32 string: evt_<26 chars> for events and
ser_<26 chars> for series.
"""

import uuid as uuid_module
from typing import ClassVar, Optional

import base32_crockford
from sqlalchemy import Column, TypeDecorator, LargeBinary
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Query, Session
from uuid_extensions import uuid7


# Length of the Base32 part of a GUID (128 bits, 5 bits per character)
ENCODED_LENGTH = 26


def _as_uuid(value) -> uuid_module.UUID:
    if isinstance(value, uuid_module.UUID):
        return value
    if isinstance(value, bytes):
        return uuid_module.UUID(bytes=value)
    return uuid_module.UUID(str(value))


def encode_guid(prefix: str, value) -> str:
    """Encode a UUID (or its 16 raw bytes) as {prefix}_{base32}."""
    number = int.from_bytes(_as_uuid(value).bytes, "big")
    return f"{prefix}_{base32_crockford.encode(number).zfill(ENCODED_LENGTH).lower()}"


def decode_guid(prefix: str, guid: str) -> uuid_module.UUID:
    """
    Decode a {prefix}_{base32} string.

    Raises:
        ValueError: Empty value, wrong prefix, wrong length or bad characters
    """
    if not guid:
        raise ValueError("GUID cannot be empty")

    head, sep, encoded = guid.partition("_")
    if not sep or head.lower() != prefix:
        raise ValueError(f"Expected a '{prefix}_' GUID, got '{head}'")
    if len(encoded) != ENCODED_LENGTH:
        raise ValueError(
            f"Invalid GUID length: expected {ENCODED_LENGTH} characters after prefix, got {len(encoded)}"
        )

    try:
        return uuid_module.UUID(bytes=base32_crockford.decode(encoded.upper()).to_bytes(16, "big"))
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Invalid GUID encoding: {e}") from e


class UUIDType(TypeDecorator):
    """UUID column: native on PostgreSQL, 16-byte binary elsewhere."""

    impl = LargeBinary
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(LargeBinary(16))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = _as_uuid(value)
        return value if dialect.name == 'postgresql' else value.bytes

    def process_result_value(self, value, dialect):
        return None if value is None else _as_uuid(value)


class GuidMixin:
    """
    Adds a UUIDv7 `uuid` column and the prefixed `guid` view of it.

    Subclasses set GUID_PREFIX ("evt" for Event, "ser" for EventSeries).
    """

    GUID_PREFIX: ClassVar[str]

    uuid = Column(
        UUIDType(),
        nullable=False,
        unique=True,
        index=True,
        default=uuid7,
    )

    @property
    def guid(self) -> Optional[str]:
        """Prefixed GUID, or None before the row is flushed."""
        if self.uuid is None:
            return None
        return encode_guid(self.GUID_PREFIX, self.uuid)

    @classmethod
    def parse_guid(cls, guid: str) -> uuid_module.UUID:
        """
        Parse a GUID of this model's kind.

        Raises:
            ValueError: If the GUID is malformed or carries another prefix
        """
        return decode_guid(cls.GUID_PREFIX, guid)

    @classmethod
    def query_by_guid(cls, db: Session, guid: str) -> Optional[Query]:
        """Query for the row with this GUID, or None if the GUID is malformed."""
        try:
            uuid_value = cls.parse_guid(guid)
        except ValueError:
            return None
        return db.query(cls).filter(cls.uuid == uuid_value)
