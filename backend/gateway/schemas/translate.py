from typing import Annotated, List, Literal, Optional
from pydantic import BaseModel, Field

from gateway.config.constants import AUTO_LANGUAGE, MAX_TEXT_LENGTH, MAX_TEXTS_PER_REQUEST
from gateway.services.core.types import BatchRequest, TranslationOptions


class TranslateOptionsIn(BaseModel):
    formality: Optional[str] = None
    preserve_entities: bool = False


class TranslateRequest(BaseModel):
    texts: List[Annotated[str, Field(max_length=MAX_TEXT_LENGTH)]] = Field(
        ..., min_length=1, max_length=MAX_TEXTS_PER_REQUEST
    )
    target: str = Field(..., min_length=1)
    source: str = Field(AUTO_LANGUAGE, min_length=1)
    format: Literal["text", "html"] = "text"
    glossary_id: Optional[str] = None
    options: Optional[TranslateOptionsIn] = None

    def to_batch(self) -> BatchRequest:
        options = self.options or TranslateOptionsIn()
        return BatchRequest.from_texts(
            self.texts,
            target=self.target,
            source=self.source,
            format=self.format,
            options=TranslationOptions(
                glossary_id=self.glossary_id,
                formality=options.formality,
                preserve_entities=options.preserve_entities,
            ),
        )


class TranslationItem(BaseModel):
    text: str
    detected_source: Optional[str] = None


class TranslateResponse(BaseModel):
    translations: List[TranslationItem]


class DetectRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=MAX_TEXT_LENGTH)


class DetectResponse(BaseModel):
    language: str
    confidence: float = Field(..., ge=0.0, le=1.0)


class LanguageItem(BaseModel):
    code: str
    name: str
    direction: Literal["ltr", "rtl"]
    supports_transliteration: bool
