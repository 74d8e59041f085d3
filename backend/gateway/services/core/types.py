"""
Core data types shared across the translation pipeline.

All request-side types are frozen: a unit, once built from the HTTP payload,
travels unchanged through cache lookup, provider dispatch and merge.
"""
from dataclasses import dataclass, field
from typing import Literal, Optional, Sequence, Tuple

from gateway.config.constants import AUTO_LANGUAGE

TextFormat = Literal["text", "html"]
Direction = Literal["ltr", "rtl"]


def primary_subtag(language_code: str) -> str:
    """Return the lowercase primary subtag ("pt-BR" -> "pt", "zh_TW" -> "zh")."""
    return language_code.replace("_", "-").split("-", 1)[0].lower()


def same_language(a: Optional[str], b: Optional[str]) -> bool:
    if not a or not b or AUTO_LANGUAGE in (a, b):
        return False
    return primary_subtag(a) == primary_subtag(b)


@dataclass(frozen=True)
class TranslationUnit:
    """One logical text to translate."""
    text: str
    source_lang: str
    target_lang: str
    format: TextFormat = "text"

    @property
    def is_auto(self) -> bool:
        return self.source_lang == AUTO_LANGUAGE

    @property
    def is_passthrough(self) -> bool:
        """Blank text, or explicit source equal to target: nothing to translate."""
        return not self.text.strip() or same_language(self.source_lang, self.target_lang)


@dataclass(frozen=True)
class TranslationOptions:
    """Options shared by every unit of a batch."""
    glossary_id: Optional[str] = None
    formality: Optional[str] = None
    preserve_entities: bool = False


@dataclass(frozen=True)
class BatchRequest:
    """Ordered units plus shared options. Result order mirrors unit order."""
    units: Tuple[TranslationUnit, ...]
    options: TranslationOptions = field(default_factory=TranslationOptions)

    @classmethod
    def from_texts(
        cls,
        texts: Sequence[str],
        target: str,
        source: str = AUTO_LANGUAGE,
        format: TextFormat = "text",
        options: Optional[TranslationOptions] = None,
    ) -> "BatchRequest":
        units = tuple(TranslationUnit(text, source, target, format) for text in texts)
        return cls(units=units, options=options or TranslationOptions())

    def __len__(self) -> int:
        return len(self.units)


@dataclass(frozen=True)
class ProviderResult:
    """Result of one unit as returned by a provider adapter."""
    text: str
    provider_id: str
    latency_ms: float
    detected_source: Optional[str] = None


@dataclass(frozen=True)
class CacheEntry:
    """Translation memory record. Replaced or evicted, never mutated."""
    key: str
    result_text: str
    detected_source: Optional[str]
    created_at: float
    expires_at: float
    sequence: int

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, scoped to a single request."""
    subject: str
    kind: str = "api_key"
    name: Optional[str] = None


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_after_ms: int


@dataclass(frozen=True)
class UnitResult:
    """Final result for one input position."""
    index: int
    text: str
    detected_source: Optional[str] = None
    provider_id: Optional[str] = None
    cached: bool = False

    def to_dict(self) -> dict:
        data = {"index": self.index, "text": self.text}
        if self.detected_source:
            data["detected_source"] = self.detected_source
        return data


@dataclass(frozen=True)
class UnitFailure:
    """Failure for one input position, with enough structure to decide on retry."""
    index: int
    kind: str
    retryable: bool
    reason: str
    provider_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "kind": self.kind,
            "retryable": self.retryable,
            "reason": self.reason,
        }


@dataclass
class BatchResult:
    """Ordered, index-aligned results of a fully successful batch."""
    results: list[UnitResult]
    cache_hits: int = 0
    provider_calls: int = 0

    def __len__(self) -> int:
        return len(self.results)

    @property
    def texts(self) -> list[str]:
        return [result.text for result in self.results]


@dataclass(frozen=True)
class DetectionResult:
    language: str
    confidence: float
    provider_id: str


@dataclass(frozen=True)
class LanguageInfo:
    code: str
    name: str
    direction: Direction = "ltr"
    supports_transliteration: bool = False
