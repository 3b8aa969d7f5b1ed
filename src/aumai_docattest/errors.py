"""Exception hierarchy for aumai-docattest."""

from __future__ import annotations


class AttestationError(Exception):
    """Base class for every error raised by aumai-docattest."""


# ---------------------------------------------------------------------------
# Input errors
# ---------------------------------------------------------------------------


class InputError(AttestationError, ValueError):
    """Caller-supplied data was rejected before any key or crypto work."""


class UnknownProviderError(InputError):
    """The identity provider (or compact code) is not in the registry."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"Unknown provider: {provider}")
        self.provider = provider


class InvalidGeometryError(InputError):
    """An exclusion-zone value is not a finite non-negative number."""


class InvalidRecordError(InputError):
    """A signed attestation record could not be parsed."""


# ---------------------------------------------------------------------------
# Repository errors
# ---------------------------------------------------------------------------


class KeyRepositoryError(AttestationError):
    """A key lookup failed."""


class NoActiveKeyError(KeyRepositoryError):
    """No usable active signing key exists for the requested purpose."""


class AmbiguousActiveKeyError(KeyRepositoryError):
    """More than one key is marked active for the same purpose."""

    def __init__(self, purpose: str, key_ids: list[str]) -> None:
        super().__init__(
            f"Multiple active signing keys for purpose '{purpose}': "
            + ", ".join(key_ids)
        )
        self.purpose = purpose
        self.key_ids = key_ids


class KeyRepositoryUnavailableError(KeyRepositoryError):
    """The key repository could not be reached at all."""


# ---------------------------------------------------------------------------
# Everything else
# ---------------------------------------------------------------------------


class SigningError(AttestationError):
    """Private-key import or the signing operation itself failed."""


class ConfigurationError(AttestationError):
    """Required configuration is missing or malformed."""


__all__ = [
    "AmbiguousActiveKeyError",
    "AttestationError",
    "ConfigurationError",
    "InputError",
    "InvalidGeometryError",
    "InvalidRecordError",
    "KeyRepositoryError",
    "KeyRepositoryUnavailableError",
    "NoActiveKeyError",
    "SigningError",
    "UnknownProviderError",
]
