"""Identity provider registry: long provider ids <-> compact codes."""

from __future__ import annotations

from enum import Enum

from aumai_docattest.errors import UnknownProviderError


class IdentityProvider(str, Enum):
    """Closed set of identity providers an attestation may name."""

    google = "google"
    github = "github"
    twitter = "twitter"
    facebook = "facebook"
    microsoft = "microsoft"
    apple = "apple"
    linkedin = "linkedin"
    tiktok = "tiktok"
    wechat = "wechat"
    alipay = "alipay"
    paypal = "paypal"
    line = "line"


_COMPACT_CODES: dict[IdentityProvider, str] = {
    IdentityProvider.google: "g",
    IdentityProvider.github: "gh",
    IdentityProvider.twitter: "t",
    IdentityProvider.facebook: "f",
    IdentityProvider.microsoft: "m",
    IdentityProvider.apple: "a",
    IdentityProvider.linkedin: "li",
    IdentityProvider.tiktok: "tk",
    IdentityProvider.wechat: "w",
    IdentityProvider.alipay: "ap",
    IdentityProvider.paypal: "pp",
    IdentityProvider.line: "l",
}

_PROVIDERS_BY_CODE: dict[str, IdentityProvider] = {
    code: provider for provider, code in _COMPACT_CODES.items()
}


def compact(provider_id: str | IdentityProvider) -> str:
    """Return the compact code for *provider_id*.

    Raises:
        UnknownProviderError: if *provider_id* is not a registered provider.
    """
    try:
        provider = IdentityProvider(provider_id)
    except ValueError:
        raise UnknownProviderError(str(provider_id)) from None
    return _COMPACT_CODES[provider]


def full(code: str) -> str:
    """Return the long provider id for a compact *code*.

    Raises:
        UnknownProviderError: if *code* is not a registered compact code.
    """
    provider = _PROVIDERS_BY_CODE.get(code)
    if provider is None:
        raise UnknownProviderError(code)
    return provider.value


def is_known_code(code: str) -> bool:
    return code in _PROVIDERS_BY_CODE


__all__ = ["IdentityProvider", "compact", "full", "is_known_code"]
