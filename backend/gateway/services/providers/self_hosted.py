"""
Self-Hosted Provider - LibreTranslate-compatible HTTP server.

Endpoints used:
- POST /translate  {"q": [...], "source", "target", "format", "api_key"?}
- POST /detect     {"q": text}
- GET  /languages
"""
import logging
import time
from typing import List, Optional, Sequence, Tuple

import httpx

from gateway.config.constants import AUTO_LANGUAGE, SELF_HOSTED_MAX_TEXTS_PER_CALL
from gateway.services.core.exceptions import ProviderError
from gateway.services.core.types import (
    DetectionResult,
    ProviderResult,
    TranslationOptions,
    TranslationUnit,
)
from gateway.services.providers.base import TranslationProvider, split_calls

logger = logging.getLogger(__name__)


class SelfHostedProvider(TranslationProvider):
    """Translation through a self-hosted LibreTranslate instance."""

    provider_id = "self_hosted"
    max_units_per_call = SELF_HOSTED_MAX_TEXTS_PER_CALL

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout_s: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_s = timeout_s
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create a persistent HTTP client with connection pooling"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=20),
                timeout=httpx.Timeout(self.timeout_s),
            )
        return self._client

    async def close(self):
        """Close the HTTP client"""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _with_key(self, payload: dict) -> dict:
        if self.api_key:
            payload["api_key"] = self.api_key
        return payload

    async def _request(self, method: str, path: str, payload: Optional[dict] = None):
        client = await self._get_client()
        try:
            response = await client.request(method, path, json=payload)
        except httpx.TimeoutException as e:
            raise ProviderError.transient(f"LibreTranslate timed out: {e}", self.provider_id) from e
        except httpx.TransportError as e:
            raise ProviderError.transient(f"LibreTranslate unreachable: {e}", self.provider_id) from e

        if response.status_code >= 500 or response.status_code == 429:
            raise ProviderError.transient(
                f"LibreTranslate returned {response.status_code}", self.provider_id
            )
        if response.status_code >= 400:
            try:
                detail = response.json().get("error", response.text)
            except ValueError:
                detail = response.text
            raise ProviderError.permanent(
                f"LibreTranslate rejected the request ({response.status_code}): {detail}",
                self.provider_id,
            )
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError.transient("LibreTranslate returned invalid JSON", self.provider_id) from e

    async def translate_batch(
        self,
        units: Sequence[TranslationUnit],
        options: TranslationOptions,
    ) -> List[ProviderResult]:
        if options.glossary_id:
            raise ProviderError.permanent("Glossaries are not supported by LibreTranslate", self.provider_id)

        results: List[Optional[ProviderResult]] = [None] * len(units)
        for call in split_calls(units, self.max_units_per_call):
            payload = self._with_key({
                "q": list(call.texts),
                "source": call.source_lang,
                "target": call.target_lang,
                "format": call.format,
            })
            started = time.perf_counter()
            data = await self._request("POST", "/translate", payload)
            latency_ms = (time.perf_counter() - started) * 1000

            translated = data.get("translatedText")
            if isinstance(translated, str):
                translated = [translated]
            if not isinstance(translated, list) or len(translated) != len(call.texts):
                raise ProviderError.transient("LibreTranslate returned a mismatched batch", self.provider_id)

            detected = data.get("detectedLanguage") or []
            if isinstance(detected, dict):
                detected = [detected]

            for position, index in enumerate(call.indices):
                detected_source = None
                if call.source_lang == AUTO_LANGUAGE and position < len(detected):
                    detected_source = detected[position].get("language")
                results[index] = ProviderResult(
                    text=translated[position],
                    provider_id=self.provider_id,
                    latency_ms=latency_ms,
                    detected_source=detected_source,
                )
        return results

    async def detect(self, text: str) -> DetectionResult:
        data = await self._request("POST", "/detect", self._with_key({"q": text}))
        if not data:
            raise ProviderError.permanent("LibreTranslate could not detect a language", self.provider_id)
        best = max(data, key=lambda item: item.get("confidence", 0))
        # LibreTranslate reports confidence as a percentage
        confidence = float(best.get("confidence", 0)) / 100.0
        return DetectionResult(
            language=best["language"],
            confidence=min(1.0, max(0.0, confidence)),
            provider_id=self.provider_id,
        )

    async def supported_languages(self) -> List[Tuple[str, str]]:
        data = await self._request("GET", "/languages")
        return [(item["code"], item.get("name", item["code"])) for item in data]
