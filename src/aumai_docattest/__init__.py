"""aumai-docattest: Signed, verifiable attestations for documents."""

from aumai_docattest.canonical import attach_signature, canonical_bytes, encode
from aumai_docattest.config import AttestationSettings
from aumai_docattest.core import AttestationSigner, AttestationVerifier
from aumai_docattest.errors import (
    AmbiguousActiveKeyError,
    AttestationError,
    InvalidGeometryError,
    KeyRepositoryError,
    NoActiveKeyError,
    UnknownProviderError,
)
from aumai_docattest.keystore import (
    InMemoryKeyRepository,
    JsonKeyRepository,
    KeyManager,
    KeyRepository,
)
from aumai_docattest.models import (
    AttestationPackage,
    CanonicalAttestationData,
    SignatureVerificationResult,
    SigningKey,
    SigningResponse,
)
from aumai_docattest.providers import IdentityProvider
from aumai_docattest.service import AttestationService

__version__ = "0.1.0"

__all__ = [
    "AmbiguousActiveKeyError",
    "AttestationError",
    "AttestationPackage",
    "AttestationService",
    "AttestationSettings",
    "AttestationSigner",
    "AttestationVerifier",
    "CanonicalAttestationData",
    "IdentityProvider",
    "InMemoryKeyRepository",
    "InvalidGeometryError",
    "JsonKeyRepository",
    "KeyManager",
    "KeyRepository",
    "KeyRepositoryError",
    "NoActiveKeyError",
    "SignatureVerificationResult",
    "SigningKey",
    "SigningResponse",
    "UnknownProviderError",
    "attach_signature",
    "canonical_bytes",
    "encode",
]
