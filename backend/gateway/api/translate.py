"""
Translation API - Endpoints for text translation

Implements:
- Batch translation
- Language detection
- Supported languages listing
"""
from typing import List
from fastapi import APIRouter, Depends
import logging

from gateway.api.deps import admit_request, get_gateway
from gateway.schemas.translate import (
    DetectRequest,
    DetectResponse,
    LanguageItem,
    TranslateRequest,
    TranslateResponse,
    TranslationItem,
)
from gateway.services.container import Gateway
from gateway.services.core.types import Identity

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/translate", response_model=TranslateResponse, response_model_exclude_none=True)
async def translate(
    payload: TranslateRequest,
    identity: Identity = Depends(admit_request),
    gateway: Gateway = Depends(get_gateway),
):
    """
    Translate a batch of texts.

    Translations are index-aligned with ``texts``. When some units fail the
    response is a 502 whose body lists the failed indices.
    """
    result = await gateway.coordinator.translate(payload.to_batch())
    logger.info(
        f"Translated {len(result)} texts for {identity.subject} "
        f"(cache hits: {result.cache_hits}, provider calls: {result.provider_calls})"
    )
    return TranslateResponse(
        translations=[
            TranslationItem(text=item.text, detected_source=item.detected_source)
            for item in result.results
        ]
    )


@router.post("/detect", response_model=DetectResponse)
async def detect(
    payload: DetectRequest,
    identity: Identity = Depends(admit_request),
    gateway: Gateway = Depends(get_gateway),
):
    result = await gateway.languages.detect(payload.text)
    return DetectResponse(language=result.language, confidence=result.confidence)


@router.get("/languages", response_model=List[LanguageItem])
async def list_languages(
    identity: Identity = Depends(admit_request),
    gateway: Gateway = Depends(get_gateway),
):
    languages = await gateway.languages.list_languages()
    return [
        LanguageItem(
            code=language.code,
            name=language.name,
            direction=language.direction,
            supports_transliteration=language.supports_transliteration,
        )
        for language in languages
    ]
