"""
Base class for translation providers.

Every backend (cloud, self-hosted, on-device) implements this interface so
the Batch Coordinator never needs to know which one it is talking to.

Adapters receive arbitrary batches: units may mix language pairs and the
batch may exceed the backend's physical request limit. ``split_calls`` turns
a batch into backend-sized calls that each share one language pair and
format, keeping the original positions so results can be put back in order.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, List, Sequence, Tuple

from gateway.services.core.types import (
    DetectionResult,
    ProviderResult,
    TranslationOptions,
    TranslationUnit,
)


@dataclass(frozen=True)
class ProviderCall:
    """One physical backend call: positions in the batch plus shared parameters."""
    indices: Tuple[int, ...]
    texts: Tuple[str, ...]
    source_lang: str
    target_lang: str
    format: str


def split_calls(units: Sequence[TranslationUnit], max_per_call: int) -> Iterator[ProviderCall]:
    """
    Group units by (source, target, format) and cut each group to the limit.

    Groups appear in order of first occurrence; within a group the original
    relative order is kept.
    """
    groups: dict[Tuple[str, str, str], List[int]] = {}
    for index, unit in enumerate(units):
        groups.setdefault((unit.source_lang, unit.target_lang, unit.format), []).append(index)

    for (source, target, fmt), indices in groups.items():
        for start in range(0, len(indices), max_per_call):
            chunk = tuple(indices[start:start + max_per_call])
            yield ProviderCall(
                indices=chunk,
                texts=tuple(units[i].text for i in chunk),
                source_lang=source,
                target_lang=target,
                format=fmt,
            )


class TranslationProvider(ABC):
    """Abstract base class for translation providers"""

    provider_id: str = "base"
    max_units_per_call: int = 50

    @abstractmethod
    async def translate_batch(
        self,
        units: Sequence[TranslationUnit],
        options: TranslationOptions,
    ) -> List[ProviderResult]:
        """
        Translate a batch of units.

        Args:
            units: Units to translate (may mix language pairs)
            options: Shared batch options

        Returns:
            One ProviderResult per unit, in input order. For units with an
            ``auto`` source the detected language is set.

        Raises:
            ProviderError: TRANSIENT for timeouts/5xx/connection resets,
                PERMANENT for unsupported pairs, quota, bad glossaries
        """

    @abstractmethod
    async def detect(self, text: str) -> DetectionResult:
        """Detect the language of a text (confidence in [0, 1])."""

    @abstractmethod
    async def supported_languages(self) -> List[Tuple[str, str]]:
        """Return (code, display name) pairs the backend can translate."""

    async def close(self):
        """Release transport resources."""
        return None

    def __repr__(self):
        return f"<{type(self).__name__} {self.provider_id}>"
