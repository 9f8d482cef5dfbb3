"""Shared fixtures. RSA-2048 generation is slow, so key fixtures are session-scoped."""

import pytest

from userproof.config import Settings
from userproof.crypto import generate_keypair, public_key_pem
from userproof.keys import KeyManager
from userproof.registry import SchemaRegistry
from userproof.service import UserProofService
from userproof.signing import SigningEngine


@pytest.fixture(scope="session")
def key_root(tmp_path_factory):
    return tmp_path_factory.mktemp("userproof-home")


@pytest.fixture(scope="session")
def key_manager(key_root):
    km = KeyManager(key_root)
    km.initialize()
    return km


@pytest.fixture(scope="session")
def engine(key_manager):
    return SigningEngine(key_manager)


@pytest.fixture(scope="session")
def other_public_pem():
    """Public key of an unrelated key pair."""
    return public_key_pem(generate_keypair().public_key).decode()


@pytest.fixture(scope="session")
def registry():
    return SchemaRegistry.load()


@pytest.fixture(scope="session")
def service(key_root, key_manager):
    return UserProofService(Settings(root_dir=key_root)).initialize()


@pytest.fixture
def sample_user():
    return {
        "id": "u1",
        "email": "a@b.com",
        "role": "user",
        "status": "active",
        "created_at": "2024-01-01T00:00:00Z",
        "email_hash": "ab" * 48,
        "signature": "cd" * 256,
    }
