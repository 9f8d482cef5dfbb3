"""Tests for the UserProofService composition root."""

import pytest

from userproof.config import Settings
from userproof.errors import InvalidInput, KeyUnavailable
from userproof.service import UserProofService


class TestLifecycle:
    def test_not_ready_before_initialize(self, tmp_path):
        svc = UserProofService(Settings(root_dir=tmp_path))
        assert svc.is_ready is False
        with pytest.raises(KeyUnavailable):
            svc.process_email("a@b.com")
        with pytest.raises(KeyUnavailable):
            svc.export_users([])
        assert svc.stats()["schema"] is None

    def test_initialize_idempotent(self, service):
        pem = service.public_key_pem()
        assert service.initialize() is service
        assert service.public_key_pem() == pem
        assert service.is_ready

    def test_shares_keys_with_manager_on_same_root(self, service, key_manager):
        assert service.public_key_pem() == key_manager.public_key_pem()

    def test_settings_from_env(self, tmp_path):
        settings = Settings.from_env({"USERPROOF_HOME": str(tmp_path), "USERPROOF_LOG_LEVEL": "debug"})
        assert settings.private_key_path == tmp_path / "keys" / "private.pem"
        assert settings.log_level == "DEBUG"


class TestOperations:
    def test_sign_record_then_verify(self, service, sample_user):
        signed = service.sign_record({**sample_user, "email": "New@Example.com"})
        assert signed.identifier == "u1"
        assert signed.email == "New@Example.com"
        assert service.verify(signed.email_hash, signed.signature) is True
        assert service.verify_record(signed) is True

    def test_sign_record_without_email(self, service):
        with pytest.raises(InvalidInput):
            service.sign_record({"id": "u1"})

    def test_export_import(self, service, sample_user):
        signed = service.sign_record(sample_user)
        collection = service.import_users(service.export_users([signed, signed]))
        assert collection.metadata.total_count == 2
        assert all(service.verify_record(r) for r in collection.records)

    def test_stats(self, service):
        stats = service.stats()
        assert stats["ready"] is True
        assert stats["keys"]["initialized"] is True
        assert stats["schema"]["record_message"] == "userproof.v1.User"
