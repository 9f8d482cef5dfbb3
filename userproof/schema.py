"""
userproof record models — Pydantic v2.

Python attributes are snake_case; the wire (protobuf JSON) names are the
camelCase aliases:

  UserRecord          identifier, email, role, status, createdAt,
                      emailHash, signature
  CollectionMetadata  totalCount, exportedAt, signAlgorithm, hashAlgorithm
  UserCollection      records + metadata

All string fields default to "" because the wire schema never omits them.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class UserRecord(_WireModel):
    identifier: str = ""
    email: str = ""
    role: str = ""
    status: str = ""
    created_at: str = ""  # ISO-8601
    email_hash: str = ""  # SHA-384 hex of normalized email
    signature: str = ""  # RSA-SHA256 hex over email_hash

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class CollectionMetadata(_WireModel):
    total_count: int = Field(default=0, ge=0)
    exported_at: str = ""
    sign_algorithm: str = ""
    hash_algorithm: str = ""


class UserCollection(BaseModel):
    records: list[UserRecord] = Field(default_factory=list)
    metadata: CollectionMetadata = Field(default_factory=CollectionMetadata)

    @model_validator(mode="after")
    def _count_matches(self) -> "UserCollection":
        if self.metadata.total_count != len(self.records):
            raise ValueError(
                f"totalCount {self.metadata.total_count} does not match "
                f"{len(self.records)} records"
            )
        return self
