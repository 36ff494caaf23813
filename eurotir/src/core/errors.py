"""
Eurotir Assist - Provider Errors
================================
Typed failures for the two upstream calls (embedding, generation).

The engine never retries; callers decide.  A ``ProviderError`` is a hard
failure and is never cached, as opposed to a reply with no knowledge-base
matches, which is a normal outcome.

Hierarchy::

    ProviderError
    ├── QuotaExhaustedError      (billing / quota used up — retrying won't help soon)
    ├── RateLimitedError         (too many requests — retry after a pause)
    └── ProviderUnavailableError (anything else: network, 5xx, timeout, bad response)
"""

from __future__ import annotations

import asyncio
from typing import Literal

Provider = Literal["embedding", "generation"]

_QUOTA_MARKERS = ("insufficient_quota", "quota", "billing", "resource_exhausted", "resource has been exhausted")
_RATE_LIMIT_MARKERS = ("rate limit", "rate_limit", "ratelimit", "too many requests")


class ProviderError(Exception):
    """Base class for upstream provider failures."""

    kind: str = "unavailable"

    def __init__(self, provider: Provider, message: str) -> None:
        super().__init__(f"{provider} provider: {message}")
        self.provider: Provider = provider


class QuotaExhaustedError(ProviderError):
    kind = "quota_exhausted"


class RateLimitedError(ProviderError):
    kind = "rate_limited"


class ProviderUnavailableError(ProviderError):
    kind = "unavailable"


def _status_code(exc: BaseException) -> int | None:
    for attr in ("status_code", "code", "http_status"):
        value = getattr(exc, attr, None)
        if callable(value):
            try:
                value = value()
            except TypeError:
                continue
        if isinstance(value, int):
            return value
        # google.api_core codes are enums carrying the HTTP status as ``value``
        inner = getattr(value, "value", None)
        if isinstance(inner, tuple) and inner and isinstance(inner[0], int):
            return inner[0]
        if isinstance(inner, int):
            return inner
    return None


def classify_provider_error(exc: BaseException, provider: Provider) -> ProviderError:
    """
    Map an arbitrary SDK exception onto the ``ProviderError`` hierarchy.

    Classification order: explicit quota language → HTTP 429 or
    rate-limit language → everything else is "unavailable".
    """
    if isinstance(exc, ProviderError):
        return exc
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return ProviderUnavailableError(provider, "request timed out")

    text = f"{type(exc).__name__}: {exc}".lower()
    status = _status_code(exc)

    if any(marker in text for marker in _QUOTA_MARKERS):
        return QuotaExhaustedError(provider, str(exc) or type(exc).__name__)
    if status == 429 or any(marker in text for marker in _RATE_LIMIT_MARKERS):
        return RateLimitedError(provider, str(exc) or type(exc).__name__)
    return ProviderUnavailableError(provider, str(exc) or type(exc).__name__)
