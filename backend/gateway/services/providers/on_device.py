"""
On-Device Provider - local MarianMT models via transformers.

One translation pipeline per language pair, loaded on first use in the
thread pool and kept for the life of the process. Language detection for
``auto`` sources uses langdetect.
"""
import asyncio
import functools
import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from langdetect import DetectorFactory, LangDetectException, detect_langs

from gateway.config.constants import AUTO_LANGUAGE, LANGUAGE_NAMES, ON_DEVICE_MAX_TEXTS_PER_CALL
from gateway.services.core.exceptions import ProviderError
from gateway.services.core.types import (
    DetectionResult,
    ProviderResult,
    TranslationOptions,
    TranslationUnit,
    primary_subtag,
)
from gateway.services.providers.base import TranslationProvider, split_calls

logger = logging.getLogger(__name__)

# Deterministic langdetect results
DetectorFactory.seed = 0

PairTranslator = Callable[[List[str]], List[str]]
ModelLoader = Callable[[str, str], PairTranslator]
Detector = Callable[[str], Tuple[str, float]]


def langdetect_detector(text: str) -> Tuple[str, float]:
    """Return (language, probability) for the most likely language."""
    candidates = detect_langs(text)
    best = candidates[0]
    return best.lang, float(best.prob)


class OnDeviceProvider(TranslationProvider):
    """Translation with locally loaded transformer models."""

    provider_id = "on_device"
    max_units_per_call = ON_DEVICE_MAX_TEXTS_PER_CALL

    def __init__(
        self,
        languages: Sequence[str],
        model_template: str = "Helsinki-NLP/opus-mt-{source}-{target}",
        device: str = "cpu",
        loader: Optional[ModelLoader] = None,
        detector: Optional[Detector] = None,
    ):
        self.languages = [primary_subtag(code) for code in languages]
        self.model_template = model_template
        self.device = device
        self._loader = loader or self._load_transformers_pipeline
        self._detector = detector or langdetect_detector
        self._pipelines: Dict[Tuple[str, str], PairTranslator] = {}
        self._pair_locks: Dict[Tuple[str, str], threading.Lock] = {}
        self._lock = threading.Lock()

    def _load_transformers_pipeline(self, source: str, target: str) -> PairTranslator:
        """Load a MarianMT pipeline (runs in thread pool)."""
        from transformers import pipeline

        model_name = self.model_template.format(source=source, target=target)
        logger.info(f"Loading on-device model {model_name} on {self.device}")
        translator = pipeline("translation", model=model_name, device=self.device)

        def run(texts: List[str]) -> List[str]:
            return [item["translation_text"] for item in translator(texts)]

        return run

    def _get_pipeline(self, source: str, target: str) -> PairTranslator:
        pair = (source, target)
        if source not in self.languages or target not in self.languages:
            raise ProviderError.permanent(
                f"Language pair {source}->{target} is not installed on device",
                self.provider_id,
            )
        # Loads are serialized per pair, not across pairs
        with self._lock:
            pair_lock = self._pair_locks.setdefault(pair, threading.Lock())
        with pair_lock:
            if pair not in self._pipelines:
                try:
                    self._pipelines[pair] = self._loader(source, target)
                except (ImportError, OSError) as e:
                    raise ProviderError.permanent(
                        f"No on-device model for {source}->{target}: {e}", self.provider_id
                    ) from e
            return self._pipelines[pair]

    def _detect_sync(self, text: str) -> Tuple[str, float]:
        try:
            return self._detector(text)
        except LangDetectException as e:
            raise ProviderError.permanent(f"Language detection failed: {e}", self.provider_id) from e

    def _translate_sync(self, texts: Sequence[str], source: str, target: str) -> List[Tuple[str, Optional[str]]]:
        detected: List[Optional[str]] = [None] * len(texts)
        if source == AUTO_LANGUAGE:
            detected = [primary_subtag(self._detect_sync(text)[0]) for text in texts]

        outputs: List[Optional[str]] = [None] * len(texts)
        by_source: Dict[str, List[int]] = {}
        for position, text_source in enumerate(detected):
            by_source.setdefault(text_source or primary_subtag(source), []).append(position)

        for text_source, positions in by_source.items():
            if text_source == primary_subtag(target):
                for position in positions:
                    outputs[position] = texts[position]
                continue
            run = self._get_pipeline(text_source, primary_subtag(target))
            try:
                translated = run([texts[position] for position in positions])
            except RuntimeError as e:
                raise ProviderError.transient(f"On-device inference failed: {e}", self.provider_id) from e
            except (IndexError, ValueError, KeyError, TypeError) as e:
                raise ProviderError.permanent(f"On-device inference failed: {e}", self.provider_id) from e
            for position, text in zip(positions, translated):
                outputs[position] = text

        return list(zip(outputs, detected))

    async def translate_batch(
        self,
        units: Sequence[TranslationUnit],
        options: TranslationOptions,
    ) -> List[ProviderResult]:
        if options.glossary_id:
            raise ProviderError.permanent("Glossaries are not supported on device", self.provider_id)

        loop = asyncio.get_running_loop()
        results: List[Optional[ProviderResult]] = [None] * len(units)
        for call in split_calls(units, self.max_units_per_call):
            if call.format == "html":
                raise ProviderError.permanent("HTML input is not supported on device", self.provider_id)
            started = time.perf_counter()
            translated = await loop.run_in_executor(
                None,
                functools.partial(self._translate_sync, call.texts, call.source_lang, call.target_lang),
            )
            latency_ms = (time.perf_counter() - started) * 1000
            for index, (text, detected) in zip(call.indices, translated):
                results[index] = ProviderResult(
                    text=text,
                    provider_id=self.provider_id,
                    latency_ms=latency_ms,
                    detected_source=detected,
                )
        return results

    async def detect(self, text: str) -> DetectionResult:
        loop = asyncio.get_running_loop()
        language, confidence = await loop.run_in_executor(None, self._detect_sync, text)
        return DetectionResult(
            language=primary_subtag(language),
            confidence=min(1.0, max(0.0, confidence)),
            provider_id=self.provider_id,
        )

    async def supported_languages(self) -> List[Tuple[str, str]]:
        return [(code, LANGUAGE_NAMES.get(code, code)) for code in self.languages]
