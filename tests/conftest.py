"""Shared test fixtures for aumai-docattest."""

from __future__ import annotations

import os
from datetime import UTC, datetime

import pytest

from aumai_docattest.core import AttestationSigner, AttestationVerifier
from aumai_docattest.keystore import InMemoryKeyRepository, KeyManager
from aumai_docattest.models import AttestationPackage, SigningKey

KEY_CREATED_AT = datetime(2024, 1, 1, tzinfo=UTC)


class RecordingKeyRepository(InMemoryKeyRepository):
    """In-memory repository that counts lookups."""

    def __init__(self, keys: list[SigningKey] | None = None) -> None:
        super().__init__(keys)
        self.active_lookups = 0
        self.id_lookups = 0

    def find_active_keys(self, purpose: str) -> list[SigningKey]:
        self.active_lookups += 1
        return super().find_active_keys(purpose)

    def find_key_by_id(self, key_id: str) -> SigningKey | None:
        self.id_lookups += 1
        return super().find_key_by_id(key_id)


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Hide any DOCATTEST_* variables set in the developer's shell."""
    for name in list(os.environ):
        if name.upper().startswith("DOCATTEST_"):
            monkeypatch.delenv(name)


# ---------------------------------------------------------------------------
# Key fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def key_manager() -> KeyManager:
    """A shared KeyManager instance (stateless, safe to share)."""
    return KeyManager()


@pytest.fixture(scope="session")
def signing_key(key_manager: KeyManager) -> SigningKey:
    """Active attestation key 'key-1', valid from 2024-01-01 with no expiry."""
    return key_manager.generate_signing_key(key_id="key-1", created_at=KEY_CREATED_AT)


@pytest.fixture(scope="session")
def second_signing_key(key_manager: KeyManager) -> SigningKey:
    """An inactive attestation key 'key-2' with its own key material."""
    return key_manager.generate_signing_key(
        key_id="key-2", created_at=KEY_CREATED_AT, is_active=False
    )


@pytest.fixture()
def repository(signing_key: SigningKey) -> RecordingKeyRepository:
    return RecordingKeyRepository([signing_key])


@pytest.fixture()
def signer(repository: RecordingKeyRepository) -> AttestationSigner:
    return AttestationSigner(repository)


@pytest.fixture()
def verifier(repository: RecordingKeyRepository) -> AttestationVerifier:
    return AttestationVerifier(repository)


# ---------------------------------------------------------------------------
# Package fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def package_data() -> dict:
    """Wire-format (camelCase) attestation package."""
    return {
        "hashes": {"cryptographic": "abc123", "pHash": "p1", "dHash": "d1"},
        "identity": {"provider": "google", "identifier": "user@example.com"},
        "exclusionZone": {
            "x": 10,
            "y": 10,
            "width": 100,
            "height": 100,
            "fillColor": "#ffffff",
        },
    }


@pytest.fixture()
def package(package_data: dict) -> AttestationPackage:
    return AttestationPackage.model_validate(package_data)


@pytest.fixture()
def package_with_url(package_data: dict) -> AttestationPackage:
    return AttestationPackage.model_validate(
        {**package_data, "userUrl": "https://example.com/doc/42"}
    )
