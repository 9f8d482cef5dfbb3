"""
UserProofService — composition root for the server and the CLI.

Wires KeyManager → SigningEngine → AuthenticityPipeline and the schema
registry → record / collection codecs from one Settings object.
initialize() is the readiness gate: it loads (or generates) the key pair
and loads the schema; nothing may be used before it returns.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Optional

from .codec import CollectionCodec, RecordCodec, map_record
from .config import Settings
from .errors import KeyUnavailable
from .keys import KeyManager
from .pipeline import AuthenticityPipeline, EmailProof
from .registry import SchemaRegistry
from .schema import UserCollection, UserRecord
from .signing import PublicKeyLike, SigningEngine

logger = logging.getLogger(__name__)


class UserProofService:
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings.from_env()
        self.keys = KeyManager(self.settings.root_dir)
        self.engine = SigningEngine(self.keys)
        self.pipeline = AuthenticityPipeline(self.engine)
        self._registry: Optional[SchemaRegistry] = None
        self._record_codec: Optional[RecordCodec] = None
        self._collection_codec: Optional[CollectionCodec] = None

    def initialize(self) -> "UserProofService":
        self.keys.initialize()
        if self._registry is None:
            self._registry = SchemaRegistry.load(self.settings.schema_path)
            self._record_codec = RecordCodec(self._registry)
            self._collection_codec = CollectionCodec(self._registry, self._record_codec)
        logger.info(f"userproof ready (root={self.settings.root_dir}, kid={self.keys.key_id})")
        return self

    @property
    def is_ready(self) -> bool:
        return self.keys.is_initialized and self._registry is not None

    def _require_ready(self) -> None:
        if not self.is_ready:
            raise KeyUnavailable("Service not initialized; call initialize() first")

    @property
    def registry(self) -> SchemaRegistry:
        self._require_ready()
        return self._registry

    @property
    def record_codec(self) -> RecordCodec:
        self._require_ready()
        return self._record_codec

    @property
    def collection_codec(self) -> CollectionCodec:
        self._require_ready()
        return self._collection_codec

    # -- authenticity ------------------------------------------------------

    def public_key_pem(self) -> str:
        return self.keys.public_key_pem()

    def process_email(self, email: str) -> EmailProof:
        self._require_ready()
        return self.pipeline.process(email)

    def sign_record(self, record: Any) -> UserRecord:
        """Return the record in wire form with a fresh email hash and signature."""
        wire = map_record(record)
        proof = self.process_email(wire["email"])
        wire.update(emailHash=proof.email_hash, signature=proof.signature)
        return UserRecord.model_validate(wire)

    def verify(self, email_hash: str, signature: str, public_key: Optional[PublicKeyLike] = None) -> bool:
        self._require_ready()
        return self.engine.verify(email_hash, signature, public_key)

    def verify_record(self, record: Any, public_key: Optional[PublicKeyLike] = None) -> bool:
        self._require_ready()
        return self.pipeline.verify_record(record, public_key)

    # -- export ------------------------------------------------------------

    def export_users(self, users: Iterable[Any]) -> bytes:
        return self.collection_codec.encode(users)

    def import_users(self, data: bytes) -> UserCollection:
        return self.collection_codec.decode(data)

    def stats(self) -> dict:
        return {
            "ready": self.is_ready,
            "keys": self.keys.stats(),
            "schema": self._registry.stats() if self._registry else None,
        }
