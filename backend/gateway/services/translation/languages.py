"""
Language Service - detection and the language catalog.

Both operations go through the provider dispatcher, so they get the same
retry and fallback behavior as translation.
"""
import logging
from typing import Dict, List, Optional

from gateway.config.constants import LANGUAGE_NAMES, RTL_LANGUAGES, TRANSLITERATION_LANGUAGES
from gateway.services.core.exceptions import InvalidRequestError
from gateway.services.core.types import DetectionResult, LanguageInfo, primary_subtag
from gateway.services.translation.dispatcher import ProviderDispatcher

logger = logging.getLogger(__name__)


def describe_language(code: str, name: Optional[str] = None) -> LanguageInfo:
    """Build catalog metadata for a language code."""
    primary = primary_subtag(code)
    return LanguageInfo(
        code=code,
        name=name or LANGUAGE_NAMES.get(primary, code),
        direction="rtl" if primary in RTL_LANGUAGES else "ltr",
        supports_transliteration=primary in TRANSLITERATION_LANGUAGES,
    )


class LanguageService:
    """Language detection and supported-language listing."""

    def __init__(self, dispatcher: ProviderDispatcher):
        self.dispatcher = dispatcher

    async def detect(self, text: str) -> DetectionResult:
        if not text or not text.strip():
            raise InvalidRequestError("text", "must not be empty")

        dispatched = await self.dispatcher.call("detect", lambda provider: provider.detect(text))
        result = dispatched.value
        return DetectionResult(
            language=result.language,
            confidence=min(1.0, max(0.0, float(result.confidence))),
            provider_id=dispatched.provider_id,
        )

    async def list_languages(self) -> List[LanguageInfo]:
        """Languages of the first provider that answers, sorted by code."""
        dispatched = await self.dispatcher.call(
            "languages", lambda provider: provider.supported_languages()
        )
        catalog: Dict[str, LanguageInfo] = {}
        for code, name in dispatched.value:
            if code not in catalog:
                catalog[code] = describe_language(code, name)
        logger.debug(f"{dispatched.provider_id} reports {len(catalog)} languages")
        return [catalog[code] for code in sorted(catalog)]
