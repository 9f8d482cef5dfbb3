"""
Schema registry — loads the static protobuf schema for user exports.

The schema description is a JSON-encoded ``FileDescriptorProto`` shipped
with the package (``schemas/user.schema.json``). Loading it builds real
protobuf message classes in a private descriptor pool, so no generated
``_pb2`` modules or protoc step are needed.

Two message shapes are fixed at design time and checked on load:

  userproof.v1.User            identifier, email, role, status,
                               createdAt, emailHash, signature (all string)
  userproof.v1.UserCollection  records (repeated User), totalCount (int32),
                               exportedAt, signAlgorithm, hashAlgorithm

Any deviation is a SchemaLoadError. After load() everything is immutable.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from google.protobuf import descriptor_pb2, descriptor_pool, json_format, message_factory
from google.protobuf.message import DecodeError, Message

from .config import DEFAULT_SCHEMA_PATH
from .errors import MalformedInput, SchemaLoadError, SchemaViolation

logger = logging.getLogger(__name__)

RECORD_MESSAGE = "userproof.v1.User"
COLLECTION_MESSAGE = "userproof.v1.UserCollection"

# json name -> (wire type, repeated)
RECORD_SHAPE = {
    "identifier": ("string", False),
    "email": ("string", False),
    "role": ("string", False),
    "status": ("string", False),
    "createdAt": ("string", False),
    "emailHash": ("string", False),
    "signature": ("string", False),
}
COLLECTION_SHAPE = {
    "records": ("User", True),
    "totalCount": ("int32", False),
    "exportedAt": ("string", False),
    "signAlgorithm": ("string", False),
    "hashAlgorithm": ("string", False),
}

_FDP = descriptor_pb2.FieldDescriptorProto
_SCALAR_TYPES = {
    _FDP.TYPE_STRING: "string",
    _FDP.TYPE_INT32: "int32",
}
_INT32_MIN, _INT32_MAX = -(2**31), 2**31 - 1


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p[:1].upper() + p[1:] for p in rest)


@dataclass(frozen=True)
class FieldSpec:
    name: str  # proto field name
    json_name: str  # wire name used in payload dicts
    wire_type: str  # "string", "int32", or a message name
    repeated: bool = False

    @classmethod
    def from_proto(cls, fp: descriptor_pb2.FieldDescriptorProto) -> "FieldSpec":
        if fp.type == _FDP.TYPE_MESSAGE:
            wire_type = fp.type_name.rsplit(".", 1)[-1]
        elif fp.type in _SCALAR_TYPES:
            wire_type = _SCALAR_TYPES[fp.type]
        else:
            raise SchemaLoadError(
                f"Field {fp.name!r} has unsupported type {_FDP.Type.Name(fp.type)}"
            )
        return cls(
            name=fp.name,
            json_name=fp.json_name or _camel(fp.name),
            wire_type=wire_type,
            repeated=fp.label == _FDP.LABEL_REPEATED,
        )


@dataclass(frozen=True)
class MessageType:
    """Typed handle for one message shape: validate, build, encode, decode."""
    full_name: str
    fields: tuple[FieldSpec, ...]
    message_class: type
    nested: Mapping[str, "MessageType"] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.full_name.rsplit(".", 1)[-1]

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.json_name for f in self.fields)

    # -- encode side -------------------------------------------------------

    def validate(self, payload: Any, path: str = "") -> None:
        """Check a payload dict against the field specs; raise SchemaViolation."""
        where = path or self.name
        if not isinstance(payload, Mapping):
            raise SchemaViolation(f"{where}: expected an object, got {type(payload).__name__}")

        unknown = set(payload) - set(self.field_names)
        if unknown:
            raise SchemaViolation(f"{where}: unknown field(s) {sorted(unknown)}")

        for spec in self.fields:
            value = payload.get(spec.json_name)
            if value is None:
                continue
            fpath = f"{where}.{spec.json_name}"
            if spec.repeated:
                if not isinstance(value, list):
                    raise SchemaViolation(f"{fpath}: expected a list")
                for i, item in enumerate(value):
                    self._check_value(spec, item, f"{fpath}[{i}]")
            else:
                self._check_value(spec, value, fpath)

    def _check_value(self, spec: FieldSpec, value: Any, path: str) -> None:
        if spec.wire_type == "string":
            if not isinstance(value, str):
                raise SchemaViolation(f"{path}: string expected, got {type(value).__name__}")
        elif spec.wire_type == "int32":
            if isinstance(value, bool) or not isinstance(value, int):
                raise SchemaViolation(f"{path}: integer expected, got {type(value).__name__}")
            if not _INT32_MIN <= value <= _INT32_MAX:
                raise SchemaViolation(f"{path}: {value} out of int32 range")
        else:
            self.nested[spec.json_name].validate(value, path)

    def build(self, payload: Mapping[str, Any]) -> Message:
        self.validate(payload)
        try:
            return json_format.ParseDict(payload, self.message_class())
        except json_format.ParseError as e:
            raise SchemaViolation(f"{self.name}: {e}") from e

    def encode(self, message: Message) -> bytes:
        return message.SerializeToString(deterministic=True)

    # -- decode side -------------------------------------------------------

    def decode(self, data: Any) -> Message:
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise MalformedInput(f"{self.name}: expected bytes, got {type(data).__name__}")
        message = self.message_class()
        try:
            message.ParseFromString(bytes(data))
        except (DecodeError, UnicodeDecodeError) as e:
            raise MalformedInput(f"{self.name}: {e}") from e
        return message

    def to_payload(self, message: Message) -> dict:
        """Convert a message to a payload dict with every field present."""
        payload: dict[str, Any] = {}
        for spec in self.fields:
            value = getattr(message, spec.name)
            nested = self.nested.get(spec.json_name)
            if spec.repeated:
                payload[spec.json_name] = [
                    nested.to_payload(v) if nested else v for v in value
                ]
            elif nested is not None:
                payload[spec.json_name] = nested.to_payload(value)
            else:
                payload[spec.json_name] = value
        return payload


class SchemaRegistry:
    """The two export message types, loaded once at startup."""

    def __init__(self, record: MessageType, collection: MessageType, source: Path):
        self.record = record
        self.collection = collection
        self.source = source

    @classmethod
    def load(cls, path: Optional[Path | str] = None) -> "SchemaRegistry":
        source = Path(path) if path is not None else DEFAULT_SCHEMA_PATH
        try:
            raw = json.loads(source.read_text(encoding="utf-8"))
        except OSError as e:
            logger.error(f"Schema description not readable: {source}")
            raise SchemaLoadError(f"Cannot read schema {source}: {e}") from e
        except json.JSONDecodeError as e:
            logger.error(f"Schema description is not valid JSON: {source}")
            raise SchemaLoadError(f"Invalid JSON in schema {source}: {e}") from e

        if not isinstance(raw, dict):
            raise SchemaLoadError(f"Schema {source} must be a JSON object")

        try:
            fdp = json_format.ParseDict(raw, descriptor_pb2.FileDescriptorProto())
        except json_format.ParseError as e:
            raise SchemaLoadError(f"Schema {source} is not a valid file descriptor: {e}") from e

        pool = descriptor_pool.DescriptorPool()
        try:
            pool.AddSerializedFile(fdp.SerializeToString())
        except (TypeError, ValueError, KeyError) as e:
            raise SchemaLoadError(f"Schema {source} cannot be built: {e}") from e

        protos = {f"{fdp.package}.{m.name}": m for m in fdp.message_type}
        record = _message_type(pool, protos, RECORD_MESSAGE, RECORD_SHAPE)
        collection = _message_type(
            pool, protos, COLLECTION_MESSAGE, COLLECTION_SHAPE, nested={"records": record}
        )

        logger.info(
            f"Loaded protobuf schema {fdp.name} from {source} "
            f"({record.full_name}, {collection.full_name})"
        )
        return cls(record=record, collection=collection, source=source)

    def stats(self) -> dict:
        return {
            "source": str(self.source),
            "record_message": self.record.full_name,
            "collection_message": self.collection.full_name,
            "record_fields": list(self.record.field_names),
            "collection_fields": list(self.collection.field_names),
        }


def _message_type(
    pool: descriptor_pool.DescriptorPool,
    protos: dict[str, descriptor_pb2.DescriptorProto],
    full_name: str,
    shape: dict[str, tuple[str, bool]],
    nested: Optional[dict[str, MessageType]] = None,
) -> MessageType:
    proto = protos.get(full_name)
    if proto is None:
        raise SchemaLoadError(f"Schema does not define message {full_name}")

    fields = tuple(FieldSpec.from_proto(fp) for fp in proto.field)
    actual = {f.json_name: (f.wire_type, f.repeated) for f in fields}
    if actual != shape:
        raise SchemaLoadError(f"{full_name} fields {actual} differ from expected {shape}")

    descriptor = pool.FindMessageTypeByName(full_name)
    return MessageType(
        full_name=full_name,
        fields=fields,
        message_class=message_factory.GetMessageClass(descriptor),
        nested=nested or {},
    )
