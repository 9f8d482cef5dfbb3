"""
Cryptographic primitives for userproof.

- SHA-384 hashing of normalized email addresses (48-byte digests)
- RSA-2048 key generation, PEM (de)serialization
- RSA PKCS#1 v1.5 / SHA-256 signing and verification

The signature primitive hashes its input again with SHA-256, so an email
is hashed twice (SHA-384 digest, then SHA-256 inside RSA). Signatures
already issued depend on this, so it must not change.

All operations use the `cryptography` library.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
    load_pem_public_key,
)

from .errors import InvalidInput

SIGN_ALGORITHM = "RSA-2048"
HASH_ALGORITHM = "SHA-384"
SIGNATURE_SCHEME = "RSA-SHA256"

KEY_SIZE = 2048
PUBLIC_EXPONENT = 65537
DIGEST_SIZE = 48  # bytes; 96 hex chars


# ---------------------------------------------------------------------------
# SHA-384 utilities
# ---------------------------------------------------------------------------

def sha384_hex(data: str | bytes) -> str:
    """Return the SHA-384 hex digest of *data*."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha384(data).hexdigest()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def hash_email(email: str) -> str:
    """Hash an email address after trimming and lower-casing it.

    Raises InvalidInput for non-string or blank input.
    """
    if not isinstance(email, str):
        raise InvalidInput(f"Email must be a string, got {type(email).__name__}")
    normalized = normalize_email(email)
    if not normalized:
        raise InvalidInput("Email must be a non-empty string")
    return sha384_hex(normalized)


# ---------------------------------------------------------------------------
# RSA key management
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class KeyPair:
    private_key: rsa.RSAPrivateKey
    public_key: rsa.RSAPublicKey
    kid: str  # key identifier (hex of SPKI hash)


def key_id(pk: rsa.RSAPublicKey) -> str:
    der = pk.public_bytes(Encoding.DER, PublicFormat.SubjectPublicKeyInfo)
    return hashlib.sha256(der).hexdigest()[:16]


def keypair_from_private(sk: rsa.RSAPrivateKey) -> KeyPair:
    pk = sk.public_key()
    return KeyPair(private_key=sk, public_key=pk, kid=key_id(pk))


def generate_keypair() -> KeyPair:
    """Generate a fresh RSA-2048 key pair."""
    sk = rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=KEY_SIZE)
    return keypair_from_private(sk)


def private_key_pem(sk: rsa.RSAPrivateKey) -> bytes:
    return sk.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption())


def public_key_pem(pk: rsa.RSAPublicKey) -> bytes:
    return pk.public_bytes(Encoding.PEM, PublicFormat.SubjectPublicKeyInfo)


def load_private_key(pem: bytes) -> rsa.RSAPrivateKey:
    sk = load_pem_private_key(pem, password=None)
    if not isinstance(sk, rsa.RSAPrivateKey):
        raise TypeError(f"Expected an RSA private key, got {type(sk).__name__}")
    return sk


def load_public_key(pem: str | bytes) -> rsa.RSAPublicKey:
    if isinstance(pem, str):
        pem = pem.encode("ascii")
    pk = load_pem_public_key(pem)
    if not isinstance(pk, rsa.RSAPublicKey):
        raise TypeError(f"Expected an RSA public key, got {type(pk).__name__}")
    return pk


# ---------------------------------------------------------------------------
# Signing & verification
# ---------------------------------------------------------------------------

def sign_bytes(data: bytes, sk: rsa.RSAPrivateKey) -> bytes:
    """Sign raw bytes with RSA PKCS#1 v1.5 / SHA-256. Returns 256-byte signature."""
    return sk.sign(data, padding.PKCS1v15(), hashes.SHA256())


def verify_bytes(data: bytes, signature: bytes, pk: rsa.RSAPublicKey) -> bool:
    """Verify an RSA-SHA256 signature. Returns True if valid, False otherwise."""
    try:
        pk.verify(signature, data, padding.PKCS1v15(), hashes.SHA256())
        return True
    except InvalidSignature:
        return False
