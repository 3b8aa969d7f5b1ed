"""Signing and verification of document attestations."""

from __future__ import annotations

import base64
import binascii
import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from aumai_docattest import providers
from aumai_docattest.canonical import (
    canonical_bytes,
    encode,
    format_timestamp,
    load_record,
    parse_timestamp,
)
from aumai_docattest.config import AttestationSettings
from aumai_docattest.errors import (
    KeyRepositoryError,
    KeyRepositoryUnavailableError,
    NoActiveKeyError,
    SigningError,
)
from aumai_docattest.keystore import KeyRepository
from aumai_docattest.models import (
    AttestationPackage,
    CanonicalAttestationData,
    SignatureVerificationResult,
    SigningKey,
    SigningResponse,
    VerificationDetails,
    VerificationIdentity,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _as_utc(moment: datetime) -> datetime:
    return moment.replace(tzinfo=UTC) if moment.tzinfo is None else moment


def key_valid_at(
    key: SigningKey,
    moment: datetime,
    tolerance: timedelta = timedelta(0),
) -> bool:
    """Whether *moment* lies inside the key's ``[created_at, expires_at]`` window.

    Both ends are inclusive.  ``is_active`` plays no part: retiring a key
    stops new signatures but does not shrink its validity window.
    """
    moment = _as_utc(moment)
    if moment < _as_utc(key.created_at) - tolerance:
        return False
    if key.expires_at is not None and moment > _as_utc(key.expires_at) + tolerance:
        return False
    return True


# ---------------------------------------------------------------------------
# AttestationSigner
# ---------------------------------------------------------------------------


class AttestationSigner:
    """Canonicalize attestation packages and sign them with the active key."""

    def __init__(
        self,
        repository: KeyRepository,
        settings: AttestationSettings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._repository = repository
        self._settings = settings or AttestationSettings.from_env()
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    def sign(self, package: AttestationPackage) -> SigningResponse:
        """Sign *package* and return the signature with its key metadata.

        The returned ``timestamp`` and ``public_key_id`` are the exact values
        embedded in the signed bytes.

        Raises:
            UnknownProviderError: before any key lookup, for an unknown provider.
            InvalidGeometryError: before any key lookup, for a bad exclusion zone.
            NoActiveKeyError: if no usable active key exists.
            AmbiguousActiveKeyError: if several keys are active for the purpose.
            KeyRepositoryError: if the key lookup itself fails.
            SigningError: if the private key cannot be used.
        """
        timestamp = format_timestamp(self._clock())
        service_name = self._settings.service_name

        # encode() is pure; a first pass rejects bad input before the repository
        # is touched.
        encode(package, timestamp, "", service_name)

        key = self._fetch_active_key()
        if not key_valid_at(key, parse_timestamp(timestamp)):
            raise NoActiveKeyError(
                f"Active signing key '{key.id}' is not valid at {timestamp}"
            )

        record = encode(package, timestamp, key.id, service_name)
        payload = canonical_bytes(record)
        raw_sig = self._sign_bytes(key, payload)

        logger.info(
            "Signed attestation with key %s (provider=%s)",
            key.id,
            record.identity.provider,
        )
        logger.debug("Canonical payload for key %s: %d bytes", key.id, len(payload))
        return SigningResponse(
            timestamp=timestamp,
            signature=base64.b64encode(raw_sig).decode("ascii"),
            public_key=key.public_key,
            public_key_id=key.id,
        )

    def _fetch_active_key(self) -> SigningKey:
        purpose = self._settings.key_purpose
        try:
            key = self._repository.find_active_key(purpose)
        except KeyRepositoryError as exc:
            logger.error("Active key lookup failed for purpose %s: %s", purpose, exc)
            raise
        except Exception as exc:
            logger.error("Active key lookup failed for purpose %s: %s", purpose, exc)
            raise KeyRepositoryError(f"Database error: {exc}") from exc

        if key is None:
            logger.error("No active signing key for purpose %s", purpose)
            raise NoActiveKeyError("No active signing key available")
        return key

    @staticmethod
    def _sign_bytes(key: SigningKey, payload: bytes) -> bytes:
        try:
            private_key = serialization.load_pem_private_key(
                key.private_key.encode("ascii"), password=None
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise SigningError(f"Could not load private key '{key.id}': {exc}") from exc

        if not isinstance(private_key, Ed25519PrivateKey):
            raise SigningError(
                f"Key '{key.id}' is a "
                f"{type(private_key).__name__}, not Ed25519"
            )
        return private_key.sign(payload)


# ---------------------------------------------------------------------------
# AttestationVerifier
# ---------------------------------------------------------------------------


class AttestationVerifier:
    """Verify signed attestation records against the key repository.

    Every expected failure comes back as a result with ``is_valid=False``.
    Only :class:`KeyRepositoryUnavailableError` and malformed input
    (:class:`InvalidRecordError`) are raised.
    """

    def __init__(
        self,
        repository: KeyRepository,
        settings: AttestationSettings | None = None,
    ) -> None:
        self._repository = repository
        self._settings = settings or AttestationSettings.from_env()

    def verify(
        self, record: CanonicalAttestationData | Mapping[str, Any]
    ) -> SignatureVerificationResult:
        """Verify one signed record.

        Checks run in order and stop at the first failure: signature present,
        key id present, key found, signing time inside the key's validity
        window, signature matches the reconstructed canonical bytes.
        """
        if not isinstance(record, CanonicalAttestationData):
            missing = self._check_required_fields(record)
            if missing is not None:
                return missing
            record = load_record(record)

        key_id = record.service.key_id

        if not record.signature:
            return self._result(record, error="No signature found")
        if not key_id:
            return self._result(record, error="No public key ID found")

        try:
            key = self._repository.find_key_by_id(key_id)
        except KeyRepositoryUnavailableError:
            logger.error("Key repository unavailable while verifying key %s", key_id)
            raise
        except Exception as exc:
            logger.error("Key lookup failed for %s: %s", key_id, exc)
            return self._result(
                record,
                error=f"Key lookup failed: {exc}",
                details=VerificationDetails(),
            )

        if key is None:
            logger.warning("Public key not found: %s", key_id)
            return self._result(
                record,
                error=f"Public key not found: {key_id}",
                details=VerificationDetails(),
            )

        if not self._timestamp_valid(record.timestamp, key):
            logger.warning(
                "Key %s was not valid at signing time %s", key_id, record.timestamp
            )
            return self._result(
                record,
                error="Key was not valid at the time of signing",
                details=VerificationDetails(key_found=True),
            )

        try:
            payload = canonical_bytes(record)
            public_key = serialization.load_pem_public_key(
                key.public_key.encode("ascii")
            )
            if not isinstance(public_key, Ed25519PublicKey):
                raise TypeError(
                    f"Unsupported public key type: {type(public_key).__name__}"
                )
            raw_sig = base64.b64decode(record.signature, validate=True)
        except (ValueError, TypeError, UnsupportedAlgorithm, binascii.Error) as exc:
            logger.warning("Signature verification failed for key %s: %s", key_id, exc)
            return self._result(
                record,
                error=f"Signature verification failed: {exc}",
                details=VerificationDetails(key_found=True, timestamp_valid=True),
            )

        try:
            public_key.verify(raw_sig, payload)
            match = True
        except InvalidSignature:
            match = False
        except (ValueError, TypeError) as exc:
            logger.warning("Signature verification failed for key %s: %s", key_id, exc)
            return self._result(
                record,
                error=f"Signature verification failed: {exc}",
                details=VerificationDetails(key_found=True, timestamp_valid=True),
            )

        log = logger.info if match else logger.warning
        log(
            "Verified attestation with key %s: %s",
            key_id,
            "valid" if match else "signature mismatch",
        )
        return self._result(
            record,
            is_valid=match,
            details=VerificationDetails(
                key_found=True, signature_match=match, timestamp_valid=True
            ),
        )

    @staticmethod
    def _check_required_fields(
        data: Mapping[str, Any],
    ) -> SignatureVerificationResult | None:
        """Run the signature and key-id checks on an undecoded record.

        A record missing either field fails verification whatever else is
        wrong with it, so these run before structural validation.
        """
        service = data.get("s")
        key_id = service.get("k") if isinstance(service, Mapping) else None
        if not data.get("sig"):
            error = "No signature found"
        elif not key_id:
            error = "No public key ID found"
        else:
            return None

        identity = data.get("i")
        if not isinstance(identity, Mapping):
            identity = {}
        return SignatureVerificationResult(
            is_valid=False,
            public_key_id=_text(key_id),
            timestamp=_text(data.get("t")),
            identity=VerificationIdentity(
                provider=_text(identity.get("p")),
                identifier=_text(identity.get("id")),
            ),
            error=error,
        )

    def _timestamp_valid(self, timestamp: str, key: SigningKey) -> bool:
        try:
            signed_at = parse_timestamp(timestamp)
        except ValueError:
            return False
        return key_valid_at(key, signed_at, self._settings.clock_skew)

    @staticmethod
    def _result(
        record: CanonicalAttestationData,
        *,
        is_valid: bool = False,
        error: str | None = None,
        details: VerificationDetails | None = None,
    ) -> SignatureVerificationResult:
        return SignatureVerificationResult(
            is_valid=is_valid,
            public_key_id=record.service.key_id,
            timestamp=record.timestamp,
            identity=VerificationIdentity(
                provider=record.identity.provider,
                identifier=record.identity.identifier,
            ),
            error=error,
            details=details,
        )


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def describe_provider(code: str) -> str:
    """Long provider name for *code*, or the code itself if unregistered."""
    return providers.full(code) if providers.is_known_code(code) else code


__all__ = [
    "AttestationSigner",
    "AttestationVerifier",
    "describe_provider",
    "key_valid_at",
]
