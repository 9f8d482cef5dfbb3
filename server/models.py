"""Request/response models for the userproof API."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from userproof.schema import CollectionMetadata, UserRecord


# ---------------------------------------------------------------------------
# GET /api/users/crypto/public-key
# ---------------------------------------------------------------------------

class PublicKeyResponse(BaseModel):
    public_key: str  # PEM (SPKI)
    key_id: str
    algorithm: str
    hash_algorithm: str


# ---------------------------------------------------------------------------
# POST /api/users/crypto/proof
# ---------------------------------------------------------------------------

class ProofRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=320)


class ProofResponse(BaseModel):
    email_hash: str
    signature: str


# ---------------------------------------------------------------------------
# POST /api/users/crypto/verify
# ---------------------------------------------------------------------------

class VerifyRequest(BaseModel):
    email_hash: str
    signature: str
    public_key: Optional[str] = None  # PEM; defaults to the server key


class VerifyResponse(BaseModel):
    valid: bool


# ---------------------------------------------------------------------------
# POST /api/users/export/decode
# ---------------------------------------------------------------------------

class ExportView(BaseModel):
    records: list[UserRecord]
    metadata: CollectionMetadata
