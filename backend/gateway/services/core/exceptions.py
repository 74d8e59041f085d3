"""
Gateway Exceptions

Error taxonomy for the request pipeline. Every error that can reach a caller
carries a stable ``kind`` and an HTTP status so the front can serialize it
without knowing the concrete type.
"""
import math
from enum import Enum
from typing import Optional, Sequence

from gateway.services.core.types import UnitFailure, UnitResult


class GatewayError(Exception):
    """Base exception for gateway errors"""
    kind = "gateway_error"
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind.replace("_", " "))
        self.message = message or self.kind.replace("_", " ")

    @property
    def headers(self) -> Optional[dict]:
        return None

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class UnauthorizedError(GatewayError):
    """Raised when no bearer credential is present"""
    kind = "unauthorized"
    status_code = 401

    @property
    def headers(self) -> Optional[dict]:
        return {"WWW-Authenticate": "Bearer"}


class ForbiddenError(GatewayError):
    """Raised when the credential does not resolve (or the store times out)"""
    kind = "forbidden"
    status_code = 403


class RateLimitedError(GatewayError):
    """Raised when an identity exceeds its request window"""
    kind = "rate_limited"
    status_code = 429

    def __init__(self, retry_after_ms: int, limit: int = 0):
        super().__init__(f"Rate limit exceeded, retry after {retry_after_ms} ms")
        self.retry_after_ms = max(0, int(retry_after_ms))
        self.limit = limit

    @property
    def headers(self) -> Optional[dict]:
        return {
            "Retry-After": str(max(1, math.ceil(self.retry_after_ms / 1000))),
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": "0",
        }

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["retry_after_ms"] = self.retry_after_ms
        return data


class InvalidRequestError(GatewayError):
    """Raised when a request field fails validation"""
    kind = "validation_error"
    status_code = 422

    def __init__(self, field: str, reason: str):
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({"field": self.field, "reason": self.reason})
        return data


class ProviderErrorKind(str, Enum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"


class ProviderError(GatewayError):
    """Raised by provider adapters. Transient errors are retryable."""
    kind = "provider_error"
    status_code = 502

    def __init__(
        self,
        message: str,
        error_kind: ProviderErrorKind = ProviderErrorKind.PERMANENT,
        provider_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.error_kind = error_kind
        self.provider_id = provider_id

    @property
    def retryable(self) -> bool:
        return self.error_kind is ProviderErrorKind.TRANSIENT

    @classmethod
    def transient(cls, message: str, provider_id: Optional[str] = None) -> "ProviderError":
        return cls(message, ProviderErrorKind.TRANSIENT, provider_id)

    @classmethod
    def permanent(cls, message: str, provider_id: Optional[str] = None) -> "ProviderError":
        return cls(message, ProviderErrorKind.PERMANENT, provider_id)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({"error_kind": self.error_kind.value, "retryable": self.retryable})
        return data


class _BatchFailure(GatewayError):
    status_code = 502

    def __init__(
        self,
        message: str,
        successes: Sequence[UnitResult],
        failures: Sequence[UnitFailure],
        size: int,
    ):
        super().__init__(message)
        self.successes = list(successes)
        self.failures = sorted(failures, key=lambda f: f.index)
        self.size = size

    @property
    def failed_indices(self) -> list[int]:
        return [failure.index for failure in self.failures]

    def to_dict(self) -> dict:
        translations: list[Optional[dict]] = [None] * self.size
        for result in self.successes:
            item = {"text": result.text}
            if result.detected_source:
                item["detected_source"] = result.detected_source
            translations[result.index] = item
        data = super().to_dict()
        data.update({
            "translations": translations,
            "failures": [failure.to_dict() for failure in self.failures],
        })
        return data


class PartialFailureError(_BatchFailure):
    """Raised when some units of a batch failed and others succeeded"""
    kind = "partial_failure"


class TotalFailureError(_BatchFailure):
    """Raised when every provider-bound unit of a batch failed"""
    kind = "total_failure"

    def __init__(self, reason: str, failures: Sequence[UnitFailure], size: int):
        super().__init__(reason, (), failures, size)
        self.reason = reason


class RequestTimeoutError(GatewayError):
    """Raised when a request exceeds its overall deadline"""
    kind = "timeout"
    status_code = 504


class ServiceUnavailableError(GatewayError):
    """Raised when a delegated capability is not configured"""
    kind = "unavailable"
    status_code = 503


class CacheUnavailableError(GatewayError):
    """Raised by cache backends when the store cannot be reached"""
    kind = "cache_unavailable"
    status_code = 503


class CredentialStoreError(GatewayError):
    """Raised by credential stores when the backing store fails"""
    kind = "credential_store_error"
    status_code = 503
