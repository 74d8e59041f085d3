"""
Core Module

Shared data types, error taxonomy and cache fingerprints used by every
pipeline component.
"""
from .types import (
    TranslationUnit,
    TranslationOptions,
    BatchRequest,
    BatchResult,
    ProviderResult,
    CacheEntry,
    Identity,
    RateLimitDecision,
    UnitResult,
    UnitFailure,
    DetectionResult,
    LanguageInfo,
)
from .exceptions import (
    GatewayError,
    UnauthorizedError,
    ForbiddenError,
    RateLimitedError,
    InvalidRequestError,
    ProviderError,
    ProviderErrorKind,
    PartialFailureError,
    TotalFailureError,
    RequestTimeoutError,
    ServiceUnavailableError,
    CacheUnavailableError,
    CredentialStoreError,
)
from .fingerprint import cache_key

__all__ = [
    "TranslationUnit",
    "TranslationOptions",
    "BatchRequest",
    "BatchResult",
    "ProviderResult",
    "CacheEntry",
    "Identity",
    "RateLimitDecision",
    "UnitResult",
    "UnitFailure",
    "DetectionResult",
    "LanguageInfo",
    "GatewayError",
    "UnauthorizedError",
    "ForbiddenError",
    "RateLimitedError",
    "InvalidRequestError",
    "ProviderError",
    "ProviderErrorKind",
    "PartialFailureError",
    "TotalFailureError",
    "RequestTimeoutError",
    "ServiceUnavailableError",
    "CacheUnavailableError",
    "CredentialStoreError",
    "cache_key",
]
