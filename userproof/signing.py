"""
Signing and verification of email digests with the process key pair.

sign() needs an initialized KeyManager. verify() is a trust-boundary check:
anything it cannot make sense of (bad hex, wrong length, unparseable PEM)
is reported as False rather than raised.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from cryptography.hazmat.primitives.asymmetric import rsa

from .crypto import load_public_key, sign_bytes, verify_bytes
from .errors import InvalidInput, KeyUnavailable
from .keys import KeyManager

logger = logging.getLogger(__name__)

PublicKeyLike = Union[str, bytes, rsa.RSAPublicKey]


class SigningEngine:
    """Signs with the process key; verifies against any RSA public key.

    An engine built without a KeyManager can only verify with an explicit
    public key.
    """

    def __init__(self, keys: Optional[KeyManager] = None):
        self.keys = keys

    def _require_keys(self) -> KeyManager:
        if self.keys is None:
            raise KeyUnavailable("No key manager configured for this engine")
        return self.keys

    def sign(self, digest: str) -> str:
        """Sign a hex digest; returns the signature as lower-case hex."""
        if not isinstance(digest, str) or not digest:
            raise InvalidInput("Digest must be a non-empty string")
        sk = self._require_keys().require_keypair().private_key
        signature = sign_bytes(digest.encode("utf-8"), sk).hex()
        logger.debug(f"Signed digest {digest[:12]}... ({len(signature)} hex chars)")
        return signature

    def verify(
        self,
        digest: str,
        signature: str,
        public_key: Optional[PublicKeyLike] = None,
    ) -> bool:
        """Return True iff *signature* is a valid signature of *digest*.

        Without *public_key* the process key is used, which requires the
        key manager to be initialized.
        """
        pk = self._require_keys().public_key if public_key is None else public_key
        try:
            if not isinstance(digest, str) or not isinstance(signature, str):
                return False
            if not isinstance(pk, rsa.RSAPublicKey):
                pk = load_public_key(pk)
            sig = bytes.fromhex(signature)
            return verify_bytes(digest.encode("utf-8"), sig, pk)
        except Exception as e:
            logger.warning(f"Rejected verification input: {e}")
            return False
