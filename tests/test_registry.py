"""Tests for loading and using the protobuf schema registry."""

import json

import pytest

from userproof.config import DEFAULT_SCHEMA_PATH
from userproof.errors import MalformedInput, SchemaLoadError, SchemaViolation
from userproof.registry import COLLECTION_MESSAGE, RECORD_MESSAGE, SchemaRegistry


def _schema() -> dict:
    return json.loads(DEFAULT_SCHEMA_PATH.read_text())


def _write(tmp_path, data) -> str:
    path = tmp_path / "schema.json"
    path.write_text(data if isinstance(data, str) else json.dumps(data))
    return str(path)


class TestLoad:
    def test_default_schema(self, registry):
        assert registry.record.full_name == RECORD_MESSAGE
        assert registry.collection.full_name == COLLECTION_MESSAGE
        assert registry.record.field_names == (
            "identifier", "email", "role", "status", "createdAt", "emailHash", "signature",
        )
        assert registry.collection.field_names == (
            "records", "totalCount", "exportedAt", "signAlgorithm", "hashAlgorithm",
        )

    def test_explicit_path(self, tmp_path):
        reg = SchemaRegistry.load(_write(tmp_path, _schema()))
        assert reg.record.name == "User"
        assert reg.stats()["source"].endswith("schema.json")

    def test_missing_file(self, tmp_path):
        with pytest.raises(SchemaLoadError):
            SchemaRegistry.load(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        with pytest.raises(SchemaLoadError):
            SchemaRegistry.load(_write(tmp_path, "{not json"))

    def test_not_an_object(self, tmp_path):
        with pytest.raises(SchemaLoadError):
            SchemaRegistry.load(_write(tmp_path, "[]"))

    def test_not_a_descriptor(self, tmp_path):
        with pytest.raises(SchemaLoadError):
            SchemaRegistry.load(_write(tmp_path, {"messageTypes": []}))

    def test_missing_collection_message(self, tmp_path):
        schema = _schema()
        schema["messageType"] = schema["messageType"][:1]
        with pytest.raises(SchemaLoadError):
            SchemaRegistry.load(_write(tmp_path, schema))

    def test_renamed_field(self, tmp_path):
        schema = _schema()
        schema["messageType"][0]["field"][4]["jsonName"] = "created"
        with pytest.raises(SchemaLoadError):
            SchemaRegistry.load(_write(tmp_path, schema))

    def test_changed_type(self, tmp_path):
        schema = _schema()
        schema["messageType"][1]["field"][1]["type"] = "TYPE_STRING"
        with pytest.raises(SchemaLoadError):
            SchemaRegistry.load(_write(tmp_path, schema))

    def test_unsupported_type(self, tmp_path):
        schema = _schema()
        schema["messageType"][0]["field"][3]["type"] = "TYPE_BOOL"
        with pytest.raises(SchemaLoadError):
            SchemaRegistry.load(_write(tmp_path, schema))

    def test_unresolvable_reference(self, tmp_path):
        schema = _schema()
        schema["messageType"][1]["field"][0]["typeName"] = ".userproof.v1.Missing"
        with pytest.raises(SchemaLoadError):
            SchemaRegistry.load(_write(tmp_path, schema))


class TestValidate:
    def test_valid_record_payload(self, registry):
        registry.record.validate({"identifier": "u1", "email": "a@b.com"})

    def test_unknown_field(self, registry):
        with pytest.raises(SchemaViolation, match="unknown"):
            registry.record.validate({"id": "u1"})

    def test_wrong_scalar_type(self, registry):
        with pytest.raises(SchemaViolation, match="email"):
            registry.record.validate({"email": 42})

    def test_not_an_object(self, registry):
        with pytest.raises(SchemaViolation):
            registry.record.validate(["u1"])

    def test_int32_rejects_bool_and_overflow(self, registry):
        with pytest.raises(SchemaViolation):
            registry.collection.validate({"totalCount": True})
        with pytest.raises(SchemaViolation):
            registry.collection.validate({"totalCount": 2**31})

    def test_repeated_must_be_list(self, registry):
        with pytest.raises(SchemaViolation):
            registry.collection.validate({"records": {"email": "a@b.com"}})

    def test_nested_record_checked(self, registry):
        with pytest.raises(SchemaViolation, match=r"records\[1\]"):
            registry.collection.validate({"records": [{"email": "a"}, {"email": 1}]})


class TestDecode:
    def test_non_bytes(self, registry):
        with pytest.raises(MalformedInput):
            registry.record.decode("not bytes")

    def test_truncated(self, registry):
        with pytest.raises(MalformedInput):
            registry.record.decode(b"\x0a\x05ab")

    def test_invalid_utf8_string(self, registry):
        with pytest.raises(MalformedInput):
            registry.record.decode(b"\x0a\x02\xff\xfe")

    def test_to_payload_fills_defaults(self, registry):
        message = registry.record.decode(b"\x0a\x02u1")
        assert registry.record.to_payload(message) == {
            "identifier": "u1",
            "email": "",
            "role": "",
            "status": "",
            "createdAt": "",
            "emailHash": "",
            "signature": "",
        }
