"""
Tests for provider error classification.
"""

import asyncio

import pytest

from eurotir.src.core.errors import ProviderError, ProviderUnavailableError, QuotaExhaustedError, RateLimitedError, classify_provider_error


class HTTPError(Exception):

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class TestClassification:

    @pytest.mark.parametrize("message", ["You exceeded your current quota", "insufficient_quota", "429 Resource has been exhausted (e.g. check quota)."])
    def test_quota(self, message):
        error = classify_provider_error(Exception(message), "generation")
        assert isinstance(error, QuotaExhaustedError)
        assert error.kind == "quota_exhausted"
        assert error.provider == "generation"

    def test_rate_limit_by_status(self):
        error = classify_provider_error(HTTPError("slow down", status_code=429), "embedding")
        assert isinstance(error, RateLimitedError)
        assert error.kind == "rate_limited"

    def test_rate_limit_by_message(self):
        assert isinstance(classify_provider_error(Exception("Too Many Requests"), "embedding"), RateLimitedError)

    def test_timeout_is_unavailable(self):
        error = classify_provider_error(asyncio.TimeoutError(), "embedding")
        assert isinstance(error, ProviderUnavailableError)
        assert "timed out" in str(error)

    def test_other_failures_are_unavailable(self):
        error = classify_provider_error(HTTPError("bad gateway", status_code=502), "generation")
        assert isinstance(error, ProviderUnavailableError)
        assert error.kind == "unavailable"

    def test_connection_error_is_unavailable(self):
        assert isinstance(classify_provider_error(ConnectionError("refused"), "embedding"), ProviderUnavailableError)

    def test_provider_error_passes_through(self):
        original = RateLimitedError("embedding", "busy")
        assert classify_provider_error(original, "generation") is original

    def test_all_are_provider_errors(self):
        for cls in (QuotaExhaustedError, RateLimitedError, ProviderUnavailableError):
            assert issubclass(cls, ProviderError)
