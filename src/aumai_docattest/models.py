"""Pydantic models for aumai-docattest."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt
from pydantic.alias_generators import to_camel

# Wire-facing models speak camelCase; Python code uses snake_case.
_WIRE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
)

# Canonical records use explicit one/two-letter aliases.  Nested blocks are
# signed as received, so unknown keys inside them are rejected; unknown
# top-level keys are not part of the signed bytes and are dropped.
_BLOCK_CONFIG = ConfigDict(populate_by_name=True, frozen=True, extra="forbid")
_RECORD_CONFIG = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


class KeyAlgorithm(str, Enum):
    """Signature algorithms a signing key may declare."""

    ed25519 = "Ed25519"


# ---------------------------------------------------------------------------
# AttestationPackage — what a client submits for signing
# ---------------------------------------------------------------------------


class DocumentHashes(BaseModel):
    """Pre-computed document fingerprints, as opaque hex strings."""

    model_config = _WIRE_CONFIG

    cryptographic: str
    p_hash: str
    d_hash: str


class Identity(BaseModel):
    """The identity endorsing the document."""

    model_config = _WIRE_CONFIG

    provider: str
    identifier: str


class ExclusionZone(BaseModel):
    """Rectangle of the document reserved for the scannable code."""

    model_config = _WIRE_CONFIG

    x: StrictInt | StrictFloat
    y: StrictInt | StrictFloat
    width: StrictInt | StrictFloat
    height: StrictInt | StrictFloat
    fill_color: str = Field(pattern=r"^#?[0-9A-Fa-f]{6}$")


class AttestationPackage(BaseModel):
    """Verbose attestation request assembled by the client."""

    model_config = _WIRE_CONFIG

    hashes: DocumentHashes
    identity: Identity
    exclusion_zone: ExclusionZone
    user_url: str | None = None


# ---------------------------------------------------------------------------
# CanonicalAttestationData — the compact record that is signed
# ---------------------------------------------------------------------------


class PerceptualHashes(BaseModel):
    model_config = _BLOCK_CONFIG

    p_hash: str = Field(alias="p")
    d_hash: str = Field(alias="d")


class HashBlock(BaseModel):
    model_config = _BLOCK_CONFIG

    cryptographic: str = Field(alias="c")
    perceptual: PerceptualHashes = Field(alias="p")


class IdentityBlock(BaseModel):
    model_config = _BLOCK_CONFIG

    provider: str = Field(alias="p")  # compact code
    identifier: str = Field(alias="id")


class ServiceBlock(BaseModel):
    model_config = _BLOCK_CONFIG

    name: str = Field(alias="n")
    key_id: str = Field(default="", alias="k")


class ZoneBlock(BaseModel):
    model_config = _BLOCK_CONFIG

    x: int | float
    y: int | float
    width: int | float = Field(alias="w")
    height: int | float = Field(alias="h")
    fill: str = Field(alias="f")  # no leading '#'


class CanonicalAttestationData(BaseModel):
    """Compact attestation record.

    This model is only a typed container.  The bytes that are signed and
    verified come from :func:`aumai_docattest.canonical.canonical_bytes`,
    never from ``model_dump``.
    """

    model_config = _RECORD_CONFIG

    hashes: HashBlock = Field(alias="h")
    timestamp: str = Field(alias="t")
    identity: IdentityBlock = Field(alias="i")
    service: ServiceBlock = Field(alias="s")
    exclusion_zone: ZoneBlock = Field(alias="e")
    user_url: str | None = Field(default=None, alias="u")
    signature: str | None = Field(default=None, alias="sig")


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


class SigningKey(BaseModel):
    """A server-held Ed25519 key pair as stored in the key repository."""

    id: str
    private_key: str = Field(repr=False)  # PKCS#8 PEM
    public_key: str  # SPKI PEM
    algorithm: KeyAlgorithm = KeyAlgorithm.ed25519
    is_active: bool = True
    key_purpose: str = "attestation"
    created_at: datetime
    expires_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class SigningResponse(BaseModel):
    """What the signing service hands back to the client."""

    model_config = _WIRE_CONFIG

    timestamp: str
    signature: str  # base64
    public_key: str  # SPKI PEM
    public_key_id: str


class VerificationDetails(BaseModel):
    model_config = _WIRE_CONFIG

    key_found: bool = False
    signature_match: bool = False
    timestamp_valid: bool = False


class VerificationIdentity(BaseModel):
    model_config = _WIRE_CONFIG

    provider: str
    identifier: str


class SignatureVerificationResult(BaseModel):
    """Outcome of verifying one signed attestation record."""

    model_config = _WIRE_CONFIG

    is_valid: bool
    public_key_id: str
    timestamp: str
    identity: VerificationIdentity
    error: str | None = None
    details: VerificationDetails | None = None

    def to_wire(self) -> dict[str, Any]:
        """Return the camelCase JSON-ready form, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


__all__ = [
    "AttestationPackage",
    "CanonicalAttestationData",
    "DocumentHashes",
    "ExclusionZone",
    "HashBlock",
    "Identity",
    "IdentityBlock",
    "KeyAlgorithm",
    "PerceptualHashes",
    "ServiceBlock",
    "SignatureVerificationResult",
    "SigningKey",
    "SigningResponse",
    "VerificationDetails",
    "VerificationIdentity",
    "ZoneBlock",
]
