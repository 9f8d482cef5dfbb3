"""
Key lifecycle — one RSA-2048 key pair per process.

On initialize() the manager looks for ``keys/private.pem`` and
``keys/public.pem`` under its root directory:

  both present   → load and cross-check them
  neither        → generate a new pair and write both files
  only one       → KeyUnavailable (operator must restore or remove it)

A pair is never regenerated once files exist, since every signature issued
so far depends on it.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import rsa

from .config import KEY_DIR_NAME, PRIVATE_KEY_FILE, PUBLIC_KEY_FILE
from .crypto import (
    HASH_ALGORITHM,
    KEY_SIZE,
    SIGN_ALGORITHM,
    KeyPair,
    generate_keypair,
    keypair_from_private,
    load_private_key,
    load_public_key,
    private_key_pem,
    public_key_pem,
)
from .errors import KeyUnavailable

logger = logging.getLogger(__name__)


def _temp_path(target: Path) -> Path:
    return target.with_name(f".{target.name}.tmp")


class KeyManager:
    """Owns the process key pair. Construct, then call initialize()."""

    def __init__(self, root_dir: Path | str):
        self.key_dir = Path(root_dir) / KEY_DIR_NAME
        self.private_key_path = self.key_dir / PRIVATE_KEY_FILE
        self.public_key_path = self.key_dir / PUBLIC_KEY_FILE
        self._keypair: Optional[KeyPair] = None

    @property
    def is_initialized(self) -> bool:
        return self._keypair is not None

    def initialize(self) -> None:
        if self._keypair is not None:
            return

        has_private = self.private_key_path.exists()
        has_public = self.public_key_path.exists()

        if has_private and has_public:
            self._keypair = self._load()
            logger.info(f"Loaded existing RSA keypair (kid={self._keypair.kid})")
        elif not has_private and not has_public:
            self._keypair = self._generate()
            logger.info(f"Generated new RSA keypair (kid={self._keypair.kid})")
        else:
            present = self.private_key_path if has_private else self.public_key_path
            missing = self.public_key_path if has_private else self.private_key_path
            logger.error(f"Key files out of step: {present} exists but {missing} does not")
            raise KeyUnavailable(
                f"Found {present.name} without {missing.name} in {self.key_dir}; "
                "restore the missing file or remove both to generate a new pair"
            )

    def _load(self) -> KeyPair:
        try:
            sk = load_private_key(self.private_key_path.read_bytes())
            pk = load_public_key(self.public_key_path.read_bytes())
        except (OSError, ValueError, TypeError, UnsupportedAlgorithm) as e:
            logger.error(f"Failed to load keys from {self.key_dir}: {e}")
            raise KeyUnavailable(f"Cannot read key pair from {self.key_dir}: {e}") from e

        if sk.key_size != KEY_SIZE:
            logger.error(f"Key in {self.key_dir} is {sk.key_size}-bit, expected {KEY_SIZE}-bit")
            raise KeyUnavailable(f"Expected a {KEY_SIZE}-bit key, found {sk.key_size}-bit")
        if sk.public_key().public_numbers() != pk.public_numbers():
            logger.error(f"Public key in {self.key_dir} does not belong to the private key")
            raise KeyUnavailable(f"{self.public_key_path.name} does not match {self.private_key_path.name}")

        return keypair_from_private(sk)

    def _generate(self) -> KeyPair:
        """Write both PEM files, or neither.

        Each file is written under a temporary name first and only moved into
        place once both writes succeeded. A failure removes whatever landed.
        """
        kp = generate_keypair()
        staged = [
            (self.private_key_path, private_key_pem(kp.private_key)),
            (self.public_key_path, public_key_pem(kp.public_key)),
        ]
        placed: list[Path] = []
        try:
            self.key_dir.mkdir(parents=True, exist_ok=True)
            for target, data in staged:
                _temp_path(target).write_bytes(data)
            for target, _ in staged:
                os.replace(_temp_path(target), target)
                placed.append(target)
        except OSError as e:
            logger.error(f"Failed to persist keys to {self.key_dir}: {e}")
            for target, _ in staged:
                _temp_path(target).unlink(missing_ok=True)
            for target in placed:
                target.unlink(missing_ok=True)
            raise KeyUnavailable(f"Cannot write key pair to {self.key_dir}: {e}") from e
        return kp

    # -- read-only views ---------------------------------------------------

    def require_keypair(self) -> KeyPair:
        """Return the loaded pair, for the signing engine only."""
        if self._keypair is None:
            raise KeyUnavailable("Key pair not initialized; call initialize() first")
        return self._keypair

    @property
    def public_key(self) -> rsa.RSAPublicKey:
        return self.require_keypair().public_key

    @property
    def key_id(self) -> str:
        return self.require_keypair().kid

    def public_key_pem(self) -> str:
        """PEM (SPKI) text of the public key, for distribution to verifiers."""
        return public_key_pem(self.public_key).decode("ascii")

    def stats(self) -> dict:
        return {
            "initialized": self.is_initialized,
            "key_id": self._keypair.kid if self._keypair else None,
            "key_dir": str(self.key_dir),
            "private_key_path": str(self.private_key_path),
            "public_key_path": str(self.public_key_path),
            "algorithm": SIGN_ALGORITHM,
            "hash_algorithm": HASH_ALGORITHM,
        }
