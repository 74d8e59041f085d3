from .translate import (
    TranslateOptionsIn,
    TranslateRequest,
    TranslationItem,
    TranslateResponse,
    DetectRequest,
    DetectResponse,
    LanguageItem,
)
from .speech import SynthesizeRequest, TranscribeResponse

__all__ = [
    "TranslateOptionsIn",
    "TranslateRequest",
    "TranslationItem",
    "TranslateResponse",
    "DetectRequest",
    "DetectResponse",
    "LanguageItem",
    "SynthesizeRequest",
    "TranscribeResponse",
]
