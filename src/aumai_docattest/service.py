"""Transport-independent request handlers for signing and verification.

Each handler takes a decoded JSON body and returns ``(status, body)`` using
HTTP-style status codes, so any web framework can sit in front of it.  A
verification that comes out negative is still a 200; 5xx bodies mean the
outcome is unknown, not that the attestation is forged.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from aumai_docattest.core import AttestationSigner, AttestationVerifier
from aumai_docattest.errors import (
    AttestationError,
    InputError,
    KeyRepositoryUnavailableError,
)
from aumai_docattest.models import AttestationPackage

logger = logging.getLogger(__name__)

Response = tuple[int, dict[str, Any]]


class AttestationService:
    """Boundary for the sign and verify operations."""

    def __init__(self, signer: AttestationSigner, verifier: AttestationVerifier) -> None:
        self._signer = signer
        self._verifier = verifier

    def handle_sign(self, body: Any) -> Response:
        """Handle a sign request whose body is an ``AttestationPackage``."""
        try:
            package = AttestationPackage.model_validate(body)
        except ValidationError as exc:
            return 400, {"error": f"Invalid attestation package: {exc}"}

        try:
            response = self._signer.sign(package)
        except InputError as exc:
            return 400, {"error": str(exc)}
        except AttestationError as exc:
            return 500, {"error": f"Signing failed: {exc}"}
        except Exception as exc:
            logger.exception("Unexpected error while signing")
            return 500, {"error": f"Signing failed: {exc}"}

        return 200, response.model_dump(by_alias=True)

    def handle_verify(self, body: Any) -> Response:
        """Handle a verify request of the form ``{"attestationData": {...}}``."""
        if not isinstance(body, dict) or not isinstance(body.get("attestationData"), dict):
            return 400, {"error": "Request must contain an attestationData object"}

        try:
            result = self._verifier.verify(body["attestationData"])
        except InputError as exc:
            return 400, {"error": str(exc)}
        except KeyRepositoryUnavailableError as exc:
            return 503, {"error": f"Verification failed: {exc}"}
        except Exception as exc:
            logger.exception("Unexpected error while verifying")
            return 500, {"error": f"Verification failed: {exc}"}

        return 200, result.to_wire()


__all__ = ["AttestationService", "Response"]
