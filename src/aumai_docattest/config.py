"""Runtime configuration for aumai-docattest."""

from __future__ import annotations

from datetime import timedelta

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from aumai_docattest.errors import ConfigurationError

ENV_PREFIX = "DOCATTEST_"


class AttestationSettings(BaseSettings):
    """Settings shared by the signer, the verifier and the CLI.

    Every field can be set through a ``DOCATTEST_``-prefixed environment
    variable; the key store path is read from ``DOCATTEST_KEY_STORE``.
    """

    service_name: str = Field(default="sc", min_length=1)
    key_purpose: str = Field(default="attestation", min_length=1)
    # Seconds of slack on both ends of a key's validity window.
    clock_skew_tolerance: float = Field(default=0.0, ge=0)
    key_store_path: str | None = Field(
        default=None, validation_alias=f"{ENV_PREFIX}KEY_STORE"
    )

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    @property
    def clock_skew(self) -> timedelta:
        return timedelta(seconds=self.clock_skew_tolerance)

    @classmethod
    def from_env(cls) -> AttestationSettings:
        """Build settings from the process environment.

        Raises:
            ConfigurationError: if a variable holds an invalid value.
        """
        try:
            return cls()
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    def require_key_store(self) -> str:
        """Return the key store path.

        Raises:
            ConfigurationError: if no key store is configured.
        """
        if not self.key_store_path:
            raise ConfigurationError(
                f"No key store configured; set {ENV_PREFIX}KEY_STORE or pass --store"
            )
        return self.key_store_path


__all__ = ["ENV_PREFIX", "AttestationSettings"]
