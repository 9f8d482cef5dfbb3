"""Tests for the userproof pydantic record models."""

import pytest
from pydantic import ValidationError

from userproof.schema import CollectionMetadata, UserCollection, UserRecord


class TestUserRecord:
    def test_defaults_are_empty_strings(self):
        rec = UserRecord()
        assert rec.to_wire() == {
            "identifier": "",
            "email": "",
            "role": "",
            "status": "",
            "createdAt": "",
            "emailHash": "",
            "signature": "",
        }

    def test_accepts_alias_and_field_names(self):
        by_alias = UserRecord.model_validate({"createdAt": "t", "emailHash": "h"})
        by_name = UserRecord(created_at="t", email_hash="h")
        assert by_alias == by_name

    def test_frozen(self):
        rec = UserRecord(email="a@b.com")
        with pytest.raises(ValidationError):
            rec.email = "b@b.com"

    def test_rejects_non_string(self):
        with pytest.raises(ValidationError):
            UserRecord(email=["a@b.com"])


class TestUserCollection:
    def test_empty(self):
        col = UserCollection()
        assert col.records == []
        assert col.metadata.total_count == 0

    def test_count_must_match(self):
        with pytest.raises(ValidationError):
            UserCollection(
                records=[UserRecord(identifier="u1")],
                metadata=CollectionMetadata(total_count=2),
            )

    def test_negative_count_rejected(self):
        with pytest.raises(ValidationError):
            CollectionMetadata(total_count=-1)

    def test_metadata_aliases(self):
        meta = CollectionMetadata.model_validate(
            {"totalCount": 1, "exportedAt": "t", "signAlgorithm": "RSA-2048", "hashAlgorithm": "SHA-384"}
        )
        assert meta.model_dump(by_alias=True)["signAlgorithm"] == "RSA-2048"
