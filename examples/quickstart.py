"""aumai-docattest quickstart — working demonstrations of the main features.

Run this file directly to verify your installation:

    python examples/quickstart.py

Each demo is self-contained; the JSON key store demo writes into a temporary
directory that is removed afterwards.
"""

from __future__ import annotations

import base64
import tempfile
from datetime import UTC, datetime, timedelta
from pathlib import Path

from aumai_docattest import (
    AttestationPackage,
    AttestationService,
    AttestationSigner,
    AttestationVerifier,
    InMemoryKeyRepository,
    JsonKeyRepository,
    KeyManager,
    attach_signature,
    canonical_bytes,
)
from aumai_docattest.canonical import dump_record

PACKAGE = {
    "hashes": {"cryptographic": "abc123", "pHash": "p1", "dHash": "d1"},
    "identity": {"provider": "google", "identifier": "user@example.com"},
    "exclusionZone": {"x": 10, "y": 10, "width": 100, "height": 100, "fillColor": "#ffffff"},
}


# ---------------------------------------------------------------------------
# Demo 1 — sign and verify
# ---------------------------------------------------------------------------

def demo_sign_and_verify() -> None:
    """Sign a package with the active key and verify the resulting record."""

    print("\n=== Demo 1: Sign & Verify ===")

    key = KeyManager().generate_signing_key(
        key_id="key-1", created_at=datetime(2024, 1, 1, tzinfo=UTC)
    )
    repository = InMemoryKeyRepository([key])

    package = AttestationPackage.model_validate(PACKAGE)
    response = AttestationSigner(repository).sign(package)
    record = attach_signature(package, response)

    print(f"  Signed at : {response.timestamp}")
    print(f"  Key       : {response.public_key_id}")
    print(f"  Canonical : {canonical_bytes(record).decode()}")
    print(f"  Record    : {len(dump_record(record))} characters")

    result = AttestationVerifier(repository).verify(record)
    print(f"  Valid     : {result.is_valid}")
    assert result.is_valid


# ---------------------------------------------------------------------------
# Demo 2 — tampering and forged timestamps
# ---------------------------------------------------------------------------

def demo_tamper_detection() -> None:
    """Show how edited records and out-of-window timestamps are reported."""

    print("\n=== Demo 2: Tamper Detection ===")

    key = KeyManager().generate_signing_key(
        key_id="key-1", created_at=datetime(2024, 1, 1, tzinfo=UTC)
    )
    repository = InMemoryKeyRepository([key])
    verifier = AttestationVerifier(repository)

    package = AttestationPackage.model_validate(PACKAGE)
    record = attach_signature(package, AttestationSigner(repository).sign(package))

    zone = record.exclusion_zone.model_copy(update={"fill": "000000"})
    edited = verifier.verify(record.model_copy(update={"exclusion_zone": zone}))
    print(f"  Edited fill colour -> valid={edited.is_valid}, details={edited.details}")

    raw = bytearray(base64.b64decode(record.signature or ""))
    raw[0] ^= 0x01
    flipped = record.model_copy(update={"signature": base64.b64encode(bytes(raw)).decode()})
    print(f"  Flipped signature bit -> valid={verifier.verify(flipped).is_valid}")

    forged = verifier.verify(record.model_copy(update={"timestamp": "2023-01-01T00:00:00Z"}))
    print(f"  Forged timestamp -> valid={forged.is_valid}, error={forged.error!r}")


# ---------------------------------------------------------------------------
# Demo 3 — key rotation with a JSON key store
# ---------------------------------------------------------------------------

def demo_key_rotation() -> None:
    """Rotate keys and show that earlier attestations still verify."""

    print("\n=== Demo 3: Key Rotation ===")

    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonKeyRepository(str(Path(tmpdir) / "keys.json"))
        manager = KeyManager()
        now = datetime.now(tz=UTC)

        store.add_key(manager.generate_signing_key(key_id="2024-q1", created_at=now))
        package = AttestationPackage.model_validate(PACKAGE)
        record = attach_signature(package, AttestationSigner(store).sign(package))

        store.add_key(
            manager.generate_signing_key(
                key_id="2024-q2",
                created_at=now,
                expires_at=now + timedelta(days=90),
                is_active=False,
            )
        )
        store.activate_key("2024-q2")
        print(f"  Active key now: {store.find_active_key('attestation').id}")

        result = AttestationVerifier(store).verify(record)
        print(f"  Record signed by 2024-q1 still valid: {result.is_valid}")


# ---------------------------------------------------------------------------
# Demo 4 — request/response boundary
# ---------------------------------------------------------------------------

def demo_service_boundary() -> None:
    """Drive the transport-independent sign/verify handlers."""

    print("\n=== Demo 4: Service Boundary ===")

    key = KeyManager().generate_signing_key(key_id="key-1")
    repository = InMemoryKeyRepository([key])
    service = AttestationService(
        AttestationSigner(repository), AttestationVerifier(repository)
    )

    status, body = service.handle_sign({**PACKAGE, "userUrl": "https://example.com/d/1"})
    print(f"  sign   -> {status} {sorted(body)}")

    status, body = service.handle_verify({"attestationData": {"sig": "AAAA"}})
    print(f"  verify (no key id) -> {status} {body['error']}")

    status, body = service.handle_sign({**PACKAGE, "identity": {"provider": "myspace", "identifier": "x"}})
    print(f"  sign (unknown provider) -> {status} {body}")


if __name__ == "__main__":
    demo_sign_and_verify()
    demo_tamper_detection()
    demo_key_rotation()
    demo_service_boundary()
