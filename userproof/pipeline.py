"""
Authenticity pipeline: hash an email, sign the hash.

Called by the surrounding CRUD layer once per user creation or email
change; the resulting (email_hash, signature) pair is stored on the user
row and later travels with it in exports.
"""

from __future__ import annotations

import logging
from typing import Any, NamedTuple, Optional

from .codec import map_record
from .crypto import hash_email
from .errors import UserProofError
from .signing import PublicKeyLike, SigningEngine

logger = logging.getLogger(__name__)


class EmailProof(NamedTuple):
    email_hash: str
    signature: str


class AuthenticityPipeline:
    def __init__(self, engine: SigningEngine):
        self.engine = engine

    def process(self, email: str) -> EmailProof:
        email_hash = hash_email(email)
        signature = self.engine.sign(email_hash)
        logger.info(f"Processed email: hash={email_hash[:12]}... sig_len={len(signature)}")
        return EmailProof(email_hash=email_hash, signature=signature)

    def verify_record(self, record: Any, public_key: Optional[PublicKeyLike] = None) -> bool:
        """Check a stored user row: hash matches its email and signature is valid."""
        try:
            wire = map_record(record)
            expected = hash_email(wire["email"])
        except UserProofError as e:
            logger.warning(f"Record cannot be verified: {e}")
            return False
        if wire["emailHash"] != expected:
            logger.warning(f"Email hash mismatch for record {wire['identifier']!r}")
            return False
        return self.engine.verify(wire["emailHash"], wire["signature"], public_key)
