"""
Exception taxonomy for userproof.

- KeyUnavailable   — key pair missing, unreadable, or not yet initialized
- InvalidInput     — malformed argument to hashing / signing
- SchemaViolation  — encode-time payload does not fit the wire schema
- MalformedInput   — decode-time bytes do not parse as the expected message
- SchemaLoadError  — schema description missing or malformed at startup

Verification mismatch is never an exception: verify() returns False.
"""

from __future__ import annotations


class UserProofError(Exception):
    """Base class for every error raised by the userproof core."""


class KeyUnavailable(UserProofError):
    pass


class InvalidInput(UserProofError, ValueError):
    pass


class SchemaViolation(UserProofError):
    pass


class MalformedInput(UserProofError, ValueError):
    pass


class SchemaLoadError(UserProofError):
    pass
