"""
Cloud Provider - Google Cloud Translation (v3)

The SDK client is synchronous; every call runs in the default executor so the
event loop is never blocked. The client is created on first use, so a
gateway configured with this provider starts even before credentials are
mounted and fails per request instead.
"""
import asyncio
import functools
import logging
import threading
import time
from typing import List, Optional, Sequence, Tuple

from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import translate

from gateway.config.constants import AUTO_LANGUAGE, GCP_MAX_CONTENTS_PER_CALL
from gateway.config.google import ensure_google_credentials
from gateway.services.core.exceptions import ProviderError
from gateway.services.core.types import (
    DetectionResult,
    ProviderResult,
    TranslationOptions,
    TranslationUnit,
)
from gateway.services.providers.base import ProviderCall, TranslationProvider, split_calls
from gateway.services.providers.entities import shield_entities, unshield_entities

logger = logging.getLogger(__name__)

TRANSIENT_GOOGLE_ERRORS = (
    google_exceptions.ServiceUnavailable,
    google_exceptions.DeadlineExceeded,
    google_exceptions.InternalServerError,
    google_exceptions.GatewayTimeout,
    google_exceptions.BadGateway,
    google_exceptions.Aborted,
    google_exceptions.RetryError,
)

# Everything a client call may raise that maps to a ProviderError
GOOGLE_CALL_ERRORS = (google_exceptions.GoogleAPIError, ConnectionError, TimeoutError)


def classify_google_error(exc: Exception, provider_id: str) -> ProviderError:
    """Map a google.api_core / transport exception to a ProviderError."""
    if isinstance(exc, TRANSIENT_GOOGLE_ERRORS) or isinstance(exc, (ConnectionError, TimeoutError)):
        return ProviderError.transient(f"Google Translation unavailable: {exc}", provider_id)
    if isinstance(exc, google_exceptions.ResourceExhausted):
        return ProviderError.permanent(f"Google Translation quota exceeded: {exc}", provider_id)
    if isinstance(exc, google_exceptions.InvalidArgument):
        return ProviderError.permanent(f"Google Translation rejected the request: {exc}", provider_id)
    return ProviderError.permanent(f"Google Translation error: {exc}", provider_id)


class CloudProvider(TranslationProvider):
    """Translation through Google Cloud Translation v3."""

    provider_id = "cloud"
    max_units_per_call = GCP_MAX_CONTENTS_PER_CALL

    def __init__(
        self,
        project_id: Optional[str],
        location: str = "global",
        credentials_path: Optional[str] = None,
        timeout_s: float = 10.0,
        client=None,
    ):
        self.project_id = project_id
        self.location = location
        self.timeout_s = timeout_s
        self._credentials_path = credentials_path
        self._client = client
        self._client_lock = threading.Lock()

    @property
    def parent(self) -> str:
        return f"projects/{self.project_id}/locations/{self.location}"

    def _get_client(self):
        if not self.project_id:
            raise ProviderError.permanent(
                "GOOGLE_PROJECT_ID is not set. Please update backend/.env accordingly.",
                self.provider_id,
            )
        with self._client_lock:
            if self._client is None:
                ensure_google_credentials(self._credentials_path)
                try:
                    self._client = translate.TranslationServiceClient()
                except auth_exceptions.DefaultCredentialsError as e:
                    raise ProviderError.permanent(f"Google credentials not found: {e}", self.provider_id) from e
            return self._client

    async def _run(self, fn, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))

    def _translate_call(self, call: ProviderCall, options: TranslationOptions) -> List[Tuple[str, Optional[str]]]:
        client = self._get_client()
        shield = options.preserve_entities and call.format == "text"
        contents = [shield_entities(text) for text in call.texts] if shield else list(call.texts)
        mime_type = "text/html" if (shield or call.format == "html") else "text/plain"

        request = {
            "parent": self.parent,
            "contents": contents,
            "mime_type": mime_type,
            "target_language_code": call.target_lang,
        }
        if call.source_lang != AUTO_LANGUAGE:
            request["source_language_code"] = call.source_lang
        if options.glossary_id:
            if self.location == "global":
                raise ProviderError.permanent(
                    "Glossaries require a regional GOOGLE_LOCATION (e.g. us-central1)",
                    self.provider_id,
                )
            request["glossary_config"] = {"glossary": f"{self.parent}/glossaries/{options.glossary_id}"}
        if options.formality:
            logger.debug(f"Formality '{options.formality}' is not supported by {self.provider_id}, ignoring")

        try:
            response = client.translate_text(request=request, timeout=self.timeout_s)
        except GOOGLE_CALL_ERRORS as e:
            raise classify_google_error(e, self.provider_id) from e

        translations = response.glossary_translations if options.glossary_id else response.translations
        if len(translations) != len(contents):
            raise ProviderError.transient(
                f"Google Translation returned {len(translations)} results for {len(contents)} texts",
                self.provider_id,
            )

        results = []
        for translation in translations:
            text = translation.translated_text
            if shield:
                text = unshield_entities(text)
            results.append((text, translation.detected_language_code or None))
        return results

    async def translate_batch(
        self,
        units: Sequence[TranslationUnit],
        options: TranslationOptions,
    ) -> List[ProviderResult]:
        results: List[Optional[ProviderResult]] = [None] * len(units)
        for call in split_calls(units, self.max_units_per_call):
            started = time.perf_counter()
            translated = await self._run(self._translate_call, call, options)
            latency_ms = (time.perf_counter() - started) * 1000
            for index, (text, detected) in zip(call.indices, translated):
                results[index] = ProviderResult(
                    text=text,
                    provider_id=self.provider_id,
                    latency_ms=latency_ms,
                    detected_source=detected if units[index].is_auto else None,
                )
        return results

    def _detect_call(self, text: str) -> DetectionResult:
        client = self._get_client()
        try:
            response = client.detect_language(
                request={"parent": self.parent, "content": text, "mime_type": "text/plain"},
                timeout=self.timeout_s,
            )
        except GOOGLE_CALL_ERRORS as e:
            raise classify_google_error(e, self.provider_id) from e

        if not response.languages:
            raise ProviderError.permanent("Google Translation could not detect a language", self.provider_id)
        best = max(response.languages, key=lambda lang: lang.confidence)
        return DetectionResult(
            language=best.language_code,
            confidence=float(best.confidence),
            provider_id=self.provider_id,
        )

    async def detect(self, text: str) -> DetectionResult:
        return await self._run(self._detect_call, text)

    def _languages_call(self) -> List[Tuple[str, str]]:
        client = self._get_client()
        try:
            response = client.get_supported_languages(
                request={"parent": self.parent, "display_language_code": "en"},
                timeout=self.timeout_s,
            )
        except GOOGLE_CALL_ERRORS as e:
            raise classify_google_error(e, self.provider_id) from e
        return [(lang.language_code, lang.display_name) for lang in response.languages]

    async def supported_languages(self) -> List[Tuple[str, str]]:
        return await self._run(self._languages_call)
