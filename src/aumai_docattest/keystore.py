"""Signing-key repositories and operator key management."""

from __future__ import annotations

import json
import logging
import os
import time
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from aumai_docattest.errors import AmbiguousActiveKeyError, KeyRepositoryError
from aumai_docattest.models import KeyAlgorithm, SigningKey

logger = logging.getLogger(__name__)

DEFAULT_KEY_PURPOSE = "attestation"


# ---------------------------------------------------------------------------
# Repository interface
# ---------------------------------------------------------------------------


class KeyRepository(ABC):
    """Read access to signing keys.

    Implementations raise :class:`KeyRepositoryError` (or
    :class:`KeyRepositoryUnavailableError` for connectivity problems) when a
    lookup itself fails.  "Not found" is ``None``, not an exception.
    """

    @abstractmethod
    def find_active_keys(self, purpose: str) -> list[SigningKey]:
        """Return every key with ``is_active=True`` for *purpose*."""

    @abstractmethod
    def find_key_by_id(self, key_id: str) -> SigningKey | None:
        """Return the key with id *key_id*, active or not."""

    def find_active_key(self, purpose: str) -> SigningKey | None:
        """Return the single active key for *purpose*, or ``None``.

        Raises:
            AmbiguousActiveKeyError: if more than one key is active.
        """
        keys = self.find_active_keys(purpose)
        if len(keys) > 1:
            raise AmbiguousActiveKeyError(purpose, sorted(k.id for k in keys))
        return keys[0] if keys else None


class InMemoryKeyRepository(KeyRepository):
    """Dict-backed repository for tests and embedding."""

    def __init__(self, keys: list[SigningKey] | None = None) -> None:
        self._keys: dict[str, SigningKey] = {}
        for key in keys or []:
            self.add_key(key)

    def add_key(self, key: SigningKey) -> None:
        """Add or replace *key*."""
        self._keys[key.id] = key

    def remove_key(self, key_id: str) -> None:
        """Remove a key.

        Raises:
            KeyError: if *key_id* is not present.
        """
        if key_id not in self._keys:
            raise KeyError(f"Signing key not found: {key_id}")
        del self._keys[key_id]

    def list_keys(self) -> list[SigningKey]:
        return list(self._keys.values())

    def activate_key(self, key_id: str) -> SigningKey:
        """Mark *key_id* active and deactivate other keys with its purpose.

        Rotation is an operator action; the signing and verification paths
        never call this.  Deactivation leaves ``created_at``/``expires_at``
        untouched, so attestations made under a retired key still verify.

        Raises:
            KeyError: if *key_id* is not present.
        """
        target = self._keys.get(key_id)
        if target is None:
            raise KeyError(f"Signing key not found: {key_id}")
        for key in list(self._keys.values()):
            if key.key_purpose == target.key_purpose and key.is_active:
                self._keys[key.id] = key.model_copy(update={"is_active": False})
        activated = target.model_copy(update={"is_active": True})
        self._keys[key_id] = activated
        logger.info(
            "Activated signing key %s for purpose %s", key_id, target.key_purpose
        )
        return activated

    def find_active_keys(self, purpose: str) -> list[SigningKey]:
        return [
            key
            for key in self._keys.values()
            if key.is_active and key.key_purpose == purpose
        ]

    def find_key_by_id(self, key_id: str) -> SigningKey | None:
        return self._keys.get(key_id)


class JsonKeyRepository(InMemoryKeyRepository):
    """Key repository persisted to a JSON file.

    Every mutating operation is written to disk immediately.  The file holds
    private keys and is written with mode 0o600 on POSIX systems.
    """

    def __init__(self, path: str) -> None:
        self._path = Path(path)
        super().__init__()
        if self._path.exists():
            self._load()

    @property
    def path(self) -> Path:
        return self._path

    def add_key(self, key: SigningKey) -> None:
        super().add_key(key)
        self._save()

    def remove_key(self, key_id: str) -> None:
        super().remove_key(key_id)
        self._save()

    def activate_key(self, key_id: str) -> SigningKey:
        activated = super().activate_key(key_id)
        self._save()
        return activated

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = [k.model_dump(mode="json") for k in self._keys.values()]
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        try:
            os.chmod(self._path, 0o600)
        except NotImplementedError:
            pass  # Windows

    def _load(self) -> None:
        try:
            raw: list[dict[str, Any]] = json.loads(
                self._path.read_text(encoding="utf-8")
            )
            keys = [SigningKey.model_validate(entry) for entry in raw]
        except (OSError, ValueError, TypeError) as exc:
            raise KeyRepositoryError(
                f"Could not load key store {self._path}: {exc}"
            ) from exc
        for key in keys:
            self._keys[key.id] = key
        logger.debug("Loaded %d signing keys from %s", len(self._keys), self._path)


# ---------------------------------------------------------------------------
# KeyManager
# ---------------------------------------------------------------------------


class KeyManager:
    """Generate Ed25519 signing keys in the interchange format the service uses."""

    def generate_keypair(self) -> tuple[bytes, bytes]:
        """Return ``(private_pem, public_pem)``: PKCS#8 and SPKI, unencrypted."""
        private_key = Ed25519PrivateKey.generate()
        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        public_pem = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        return private_pem, public_pem

    def generate_signing_key(
        self,
        key_id: str | None = None,
        purpose: str = DEFAULT_KEY_PURPOSE,
        created_at: datetime | None = None,
        expires_at: datetime | None = None,
        is_active: bool = True,
        metadata: dict[str, Any] | None = None,
    ) -> SigningKey:
        """Generate a fresh key pair wrapped in a :class:`SigningKey`.

        Args:
            key_id: Key identifier; defaults to ``key-<epoch milliseconds>``.
            purpose: Purpose tag the signer looks keys up by.
            created_at: Start of the validity window; defaults to now.
            expires_at: Optional end of the validity window.
            is_active: Whether the signer may pick this key.
            metadata: Free-form operator notes.
        """
        private_pem, public_pem = self.generate_keypair()
        created = created_at or datetime.now(tz=UTC)
        # Same precision as attestation timestamps.
        created = created.replace(microsecond=created.microsecond // 1000 * 1000)
        return SigningKey(
            id=key_id or f"key-{int(time.time() * 1000)}",
            private_key=private_pem.decode("ascii"),
            public_key=public_pem.decode("ascii"),
            algorithm=KeyAlgorithm.ed25519,
            is_active=is_active,
            key_purpose=purpose,
            created_at=created,
            expires_at=expires_at,
            metadata={"generated_at": created.isoformat(), **(metadata or {})},
        )


__all__ = [
    "DEFAULT_KEY_PURPOSE",
    "InMemoryKeyRepository",
    "JsonKeyRepository",
    "KeyManager",
    "KeyRepository",
]
