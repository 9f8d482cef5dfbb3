"""
Binary codecs for user records and user collections.

Callers hand in rows in whatever shape their persistence layer produces
(dicts with ``created_at``, ORM objects with ``id``, pydantic models, ...).
``map_record`` is the single total mapping from those shapes onto the wire
field names; every wire field comes out as a string, with "" standing in
for anything absent.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import is_dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional
from uuid import UUID

from pydantic import BaseModel, ValidationError

from .crypto import HASH_ALGORITHM, SIGN_ALGORITHM
from .errors import MalformedInput, SchemaViolation
from .registry import SchemaRegistry
from .schema import CollectionMetadata, UserCollection, UserRecord

logger = logging.getLogger(__name__)

# wire name -> accepted source attribute names, first non-empty wins
FIELD_SOURCES: dict[str, tuple[str, ...]] = {
    "identifier": ("identifier", "id"),
    "email": ("email",),
    "role": ("role",),
    "status": ("status",),
    "createdAt": ("createdAt", "created_at"),
    "emailHash": ("emailHash", "email_hash"),
    "signature": ("signature",),
}


def isoformat_utc(dt: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix.

    Naive datetimes are taken to be UTC already.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _coerce(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return isoformat_utc(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    return value


def _lookup(record: Any, key: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(key)
    return getattr(record, key, None)


def _is_record(record: Any) -> bool:
    if isinstance(record, (Mapping, BaseModel)):
        return True
    if is_dataclass(record) and not isinstance(record, type):
        return True
    return hasattr(record, "__dict__") and not isinstance(record, type)


def map_record(record: Any) -> dict[str, Any]:
    """Map a caller record onto the wire field names.

    Accepts a mapping, a pydantic model, a dataclass instance or any object
    carrying attributes; anything else is a SchemaViolation.
    """
    if not _is_record(record):
        raise SchemaViolation(f"Expected a user record, got {type(record).__name__}")

    wire: dict[str, Any] = {}
    for wire_name, sources in FIELD_SOURCES.items():
        value = None
        for key in sources:
            candidate = _lookup(record, key)
            if candidate is not None and candidate != "":
                value = candidate
                break
        wire[wire_name] = _coerce(value)
    return wire


class RecordCodec:
    """Encode / decode a single ``userproof.v1.User`` message."""

    def __init__(self, registry: SchemaRegistry):
        self.registry = registry
        self.message_type = registry.record

    def encode(self, record: Any) -> bytes:
        wire = map_record(record)
        message = self.message_type.build(wire)
        data = self.message_type.encode(message)
        logger.debug(f"Encoded user {wire['identifier']!r} ({len(data)} bytes)")
        return data

    def decode(self, data: bytes) -> UserRecord:
        message = self.message_type.decode(data)
        return self.from_message(message)

    def from_message(self, message: Any) -> UserRecord:
        return UserRecord.model_validate(self.message_type.to_payload(message))


class CollectionCodec:
    """Encode / decode a ``userproof.v1.UserCollection`` export."""

    def __init__(
        self,
        registry: SchemaRegistry,
        record_codec: Optional[RecordCodec] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.registry = registry
        self.message_type = registry.collection
        self.record_codec = record_codec or RecordCodec(registry)
        self.clock = clock or utc_now

    def encode(self, records: Iterable[Any]) -> bytes:
        if isinstance(records, (str, bytes, Mapping)) or not isinstance(records, Iterable):
            raise SchemaViolation(
                f"Expected a sequence of user records, got {type(records).__name__}"
            )

        mapped = [map_record(r) for r in records]
        payload = {
            "records": mapped,
            "totalCount": len(mapped),
            "exportedAt": isoformat_utc(self.clock()),
            "signAlgorithm": SIGN_ALGORITHM,
            "hashAlgorithm": HASH_ALGORITHM,
        }
        message = self.message_type.build(payload)
        data = self.message_type.encode(message)

        logger.info(
            f"Encoded user collection: {len(mapped)} users, {len(data)} bytes, "
            f"exported_at={payload['exportedAt']}"
        )
        return data

    def decode(self, data: bytes) -> UserCollection:
        message = self.message_type.decode(data)
        payload = self.message_type.to_payload(message)
        try:
            collection = UserCollection(
                records=[UserRecord.model_validate(r) for r in payload.pop("records")],
                metadata=CollectionMetadata.model_validate(payload),
            )
        except ValidationError as e:
            raise MalformedInput(f"UserCollection: {e}") from e

        logger.info(
            f"Decoded user collection: {collection.metadata.total_count} users "
            f"exported_at={collection.metadata.exported_at}"
        )
        return collection
