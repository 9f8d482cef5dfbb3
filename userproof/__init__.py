"""userproof — signed user records and protobuf user exports."""

from .codec import CollectionCodec, RecordCodec, isoformat_utc, map_record
from .config import Settings, configure_logging
from .crypto import (
    HASH_ALGORITHM,
    SIGN_ALGORITHM,
    KeyPair,
    generate_keypair,
    hash_email,
    sha384_hex,
)
from .errors import (
    InvalidInput,
    KeyUnavailable,
    MalformedInput,
    SchemaLoadError,
    SchemaViolation,
    UserProofError,
)
from .keys import KeyManager
from .pipeline import AuthenticityPipeline, EmailProof
from .registry import SchemaRegistry
from .schema import CollectionMetadata, UserCollection, UserRecord
from .service import UserProofService
from .signing import SigningEngine

__all__ = [
    "CollectionCodec",
    "RecordCodec",
    "isoformat_utc",
    "map_record",
    "Settings",
    "configure_logging",
    "HASH_ALGORITHM",
    "SIGN_ALGORITHM",
    "KeyPair",
    "generate_keypair",
    "hash_email",
    "sha384_hex",
    "InvalidInput",
    "KeyUnavailable",
    "MalformedInput",
    "SchemaLoadError",
    "SchemaViolation",
    "UserProofError",
    "KeyManager",
    "AuthenticityPipeline",
    "EmailProof",
    "SchemaRegistry",
    "CollectionMetadata",
    "UserCollection",
    "UserRecord",
    "UserProofService",
    "SigningEngine",
]
