"""Canonical encoding of attestation records.

The signature covers a byte sequence, not a set of fields, so everything in
this module is pinned: key order, key names, omission of absent optionals and
number formatting.  The same functions run before signing and before
verification.

Canonical layout (``u`` only when a user URL was supplied)::

    {"h":{"c":..,"p":{"p":..,"d":..}},"t":..,"i":{"p":..,"id":..},
     "s":{"n":..,"k":..},"e":{"x":..,"y":..,"w":..,"h":..,"f":..},"u":..}
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from aumai_docattest import providers
from aumai_docattest.errors import InvalidGeometryError, InvalidRecordError
from aumai_docattest.models import (
    AttestationPackage,
    CanonicalAttestationData,
    HashBlock,
    IdentityBlock,
    PerceptualHashes,
    ServiceBlock,
    SigningResponse,
    ZoneBlock,
)

SERVICE_NAME = "sc"

# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def format_timestamp(moment: datetime) -> str:
    """Format *moment* as ISO-8601 UTC with millisecond precision and ``Z``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    text = moment.astimezone(UTC).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC.

    Raises:
        ValueError: if *value* is not an ISO-8601 timestamp.
    """
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


# ---------------------------------------------------------------------------
# Value normalisation
# ---------------------------------------------------------------------------


def _dimension(name: str, value: Any) -> int | float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise InvalidGeometryError(
            f"Exclusion zone '{name}' must be a number, got {value!r}"
        )
    if not math.isfinite(value) or value < 0:
        raise InvalidGeometryError(
            f"Exclusion zone '{name}' must be finite and non-negative, got {value!r}"
        )
    # 10.0 and 10 must serialise identically.
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _strip_hash(color: str) -> str:
    return color[1:] if color.startswith("#") else color


# ---------------------------------------------------------------------------
# Encoder
# ---------------------------------------------------------------------------


def encode(
    package: AttestationPackage,
    timestamp: str | datetime,
    key_id: str,
    service_name: str = SERVICE_NAME,
    *,
    signature: str | None = None,
) -> CanonicalAttestationData:
    """Build the compact record for *package*.

    Args:
        package: The verbose attestation request.
        timestamp: Signing time; a ``datetime`` is formatted with
            :func:`format_timestamp`, a string is used verbatim.
        key_id: Id of the signing key.
        service_name: Short service name stored under ``s.n``.
        signature: Base64 signature to carry under ``sig``.  Leave as
            ``None`` on the signing path.

    Raises:
        UnknownProviderError: if the package names an unregistered provider.
        InvalidGeometryError: if any exclusion-zone value is unusable.
    """
    provider_code = providers.compact(package.identity.provider)
    zone = package.exclusion_zone
    if isinstance(timestamp, datetime):
        timestamp = format_timestamp(timestamp)

    return CanonicalAttestationData(
        hashes=HashBlock(
            cryptographic=package.hashes.cryptographic,
            perceptual=PerceptualHashes(
                p_hash=package.hashes.p_hash,
                d_hash=package.hashes.d_hash,
            ),
        ),
        timestamp=timestamp,
        identity=IdentityBlock(
            provider=provider_code,
            identifier=package.identity.identifier,
        ),
        service=ServiceBlock(name=service_name, key_id=key_id),
        exclusion_zone=ZoneBlock(
            x=_dimension("x", zone.x),
            y=_dimension("y", zone.y),
            width=_dimension("width", zone.width),
            height=_dimension("height", zone.height),
            fill=_strip_hash(zone.fill_color),
        ),
        user_url=package.user_url or None,
        signature=signature,
    )


def to_canonical_dict(
    record: CanonicalAttestationData,
    include_signature: bool = False,
) -> dict[str, Any]:
    """Return the record as an insertion-ordered dict of short keys.

    ``sig`` is present only when *include_signature* is true and the record
    carries one; ``u`` only when the record has a non-empty user URL.
    """
    zone = record.exclusion_zone
    data: dict[str, Any] = {
        "h": {
            "c": record.hashes.cryptographic,
            "p": {
                "p": record.hashes.perceptual.p_hash,
                "d": record.hashes.perceptual.d_hash,
            },
        },
        "t": record.timestamp,
        "i": {
            "p": record.identity.provider,
            "id": record.identity.identifier,
        },
        "s": {
            "n": record.service.name,
            "k": record.service.key_id,
        },
        "e": {
            "x": _dimension("x", zone.x),
            "y": _dimension("y", zone.y),
            "w": _dimension("w", zone.width),
            "h": _dimension("h", zone.height),
            "f": zone.fill,
        },
    }
    if record.user_url:
        data["u"] = record.user_url
    if include_signature and record.signature is not None:
        data["sig"] = record.signature
    return data


def _dumps(data: dict[str, Any]) -> str:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def canonical_bytes(record: CanonicalAttestationData) -> bytes:
    """The exact bytes that are signed and verified (never includes ``sig``)."""
    return _dumps(to_canonical_dict(record, include_signature=False)).encode("utf-8")


def dump_record(record: CanonicalAttestationData) -> str:
    """Compact JSON of the full record, signature included."""
    return _dumps(to_canonical_dict(record, include_signature=True))


def load_record(raw: str | bytes | Mapping[str, Any]) -> CanonicalAttestationData:
    """Parse a signed record from JSON text or an already-decoded mapping.

    Raises:
        InvalidRecordError: if *raw* is not a structurally valid record.
    """
    try:
        if isinstance(raw, str | bytes):
            return CanonicalAttestationData.model_validate_json(raw)
        return CanonicalAttestationData.model_validate(raw)
    except ValidationError as exc:
        raise InvalidRecordError(f"Malformed attestation record: {exc}") from exc


def attach_signature(
    package: AttestationPackage,
    response: SigningResponse,
    service_name: str = SERVICE_NAME,
) -> CanonicalAttestationData:
    """Combine *package* with a signing *response* into a verifiable record.

    The timestamp and key id are taken from the response verbatim; they are
    part of the signed bytes and must not be re-derived.
    """
    return encode(
        package,
        response.timestamp,
        response.public_key_id,
        service_name,
        signature=response.signature,
    )


__all__ = [
    "SERVICE_NAME",
    "attach_signature",
    "canonical_bytes",
    "dump_record",
    "encode",
    "format_timestamp",
    "load_record",
    "parse_timestamp",
    "to_canonical_dict",
]
