import asyncio
import time
from typing import Dict, List, Optional, Sequence, Tuple

from gateway.config.settings import Settings
from gateway.services.core.exceptions import CacheUnavailableError, ProviderError
from gateway.services.core.types import (
    DetectionResult,
    ProviderResult,
    TranslationOptions,
    TranslationUnit,
)
from gateway.services.providers.base import TranslationProvider
from gateway.services.translation import BatchCoordinator, ProviderDispatcher, RetryPolicy


class StubProvider(TranslationProvider):
    """Scriptable provider.

    - ``translations`` maps input text to output (default "[target] text")
    - ``failures`` are raised by successive calls before calls succeed
    - ``fail_texts`` raise their error whenever a call contains that text
    """

    def __init__(
        self,
        provider_id: str = "stub",
        translations: Optional[Dict[str, str]] = None,
        detected_source: Optional[str] = None,
        failures: Optional[Sequence[ProviderError]] = None,
        fail_texts: Optional[Dict[str, ProviderError]] = None,
        delay: float = 0.0,
        languages: Optional[List[Tuple[str, str]]] = None,
        detection: Optional[DetectionResult] = None,
    ):
        self.provider_id = provider_id
        self.translations = translations or {}
        self.detected_source = detected_source
        self.failures = list(failures or [])
        self.fail_texts = fail_texts or {}
        self.delay = delay
        self.languages = languages if languages is not None else [("en", "English"), ("es", "Spanish")]
        self.detection = detection
        self.calls: List[List[str]] = []
        self.closed = False

    async def translate_batch(self, units: Sequence[TranslationUnit], options: TranslationOptions):
        self.calls.append([unit.text for unit in units])
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failures:
            raise self.failures.pop(0)
        for unit in units:
            if unit.text in self.fail_texts:
                raise self.fail_texts[unit.text]
        return [
            ProviderResult(
                text=self.translations.get(unit.text, f"[{unit.target_lang}] {unit.text}"),
                provider_id=self.provider_id,
                latency_ms=0.0,
                detected_source=self.detected_source if unit.is_auto else None,
            )
            for unit in units
        ]

    async def detect(self, text: str) -> DetectionResult:
        self.calls.append([text])
        if self.failures:
            raise self.failures.pop(0)
        return self.detection or DetectionResult(language="en", confidence=0.9, provider_id=self.provider_id)

    async def supported_languages(self):
        if self.failures:
            raise self.failures.pop(0)
        return list(self.languages)

    async def close(self):
        self.closed = True


class StubSpeech:
    def __init__(self, transcript: str = "hello world", audio: bytes = b"RIFF0000WAVEfmt "):
        self.transcript = transcript
        self.audio = audio
        self.transcribed: List[Tuple[bytes, str]] = []
        self.synthesized: List[Tuple[str, str, Optional[str]]] = []

    async def transcribe(self, audio_data: bytes, language_code: str) -> str:
        self.transcribed.append((audio_data, language_code))
        return self.transcript

    async def synthesize(self, text: str, language_code: str, voice: Optional[str] = None) -> bytes:
        self.synthesized.append((text, language_code, voice))
        return self.audio

    async def close(self):
        return None


class BrokenCache:
    """Translation memory whose backend is always down."""

    async def lookup(self, key):
        raise CacheUnavailableError("connection refused")

    async def store(self, key, result_text, *, detected_source=None, ttl_seconds, sequence):
        raise CacheUnavailableError("connection refused")

    async def evict(self, key):
        raise CacheUnavailableError("connection refused")

    async def clear(self):
        raise CacheUnavailableError("connection refused")

    def get_stats(self):
        return {"backend": "broken"}


class RecordingSleep:
    """Replacement for asyncio.sleep that records delays and returns at once."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float):
        self.delays.append(delay)


def make_dispatcher(
    providers: Sequence[TranslationProvider],
    max_attempts: int = 3,
    timeout_ms: int = 10000,
    sleep=None,
    sequence_clock=time.time_ns,
) -> ProviderDispatcher:
    return ProviderDispatcher(
        providers,
        RetryPolicy(max_attempts=max_attempts, base_delay_ms=100, max_delay_ms=1000),
        timeout_ms=timeout_ms,
        sleep=sleep or RecordingSleep(),
        sequence_clock=sequence_clock,
    )


def make_coordinator(
    providers: Sequence[TranslationProvider],
    cache,
    max_attempts: int = 3,
    max_units_per_call: int = 50,
    request_timeout_ms: int = 30000,
    provider_timeout_ms: int = 10000,
    cache_ttl_seconds: int = 3600,
    sequence_clock=time.time_ns,
) -> BatchCoordinator:
    return BatchCoordinator(
        make_dispatcher(
            providers,
            max_attempts=max_attempts,
            timeout_ms=provider_timeout_ms,
            sequence_clock=sequence_clock,
        ),
        cache,
        cache_ttl_seconds=cache_ttl_seconds,
        max_units_per_call=max_units_per_call,
        request_timeout_ms=request_timeout_ms,
    )


def make_settings(**overrides) -> Settings:
    values = {
        "AUTH_BACKEND": "static",
        "STATIC_API_KEYS": "test-key,other-key",
        "PROVIDERS": "self_hosted",
        "CACHE_BACKEND": "memory",
        "RATE_LIMIT_BACKEND": "memory",
        "RATE_LIMIT_MAX_REQUESTS": 100,
        "SPEECH_BACKEND": "none",
        "METRICS_ENABLED": False,
        "PROVIDER_RETRY_BASE_DELAY_MS": 0,
        "PROVIDER_RETRY_MAX_DELAY_MS": 0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)
