"""
Batch Coordinator - cache partition, grouping, dispatch and merge.

Flow for one BatchRequest:
1. Same-language units pass through; every other unit is looked up in the
   translation memory (backend errors count as misses)
2. Misses are grouped (PROVIDER_MAX_UNITS_PER_CALL) preserving order
3. Groups are dispatched concurrently under the request deadline
4. Once every group has finished, successes are cached and merged with the
   hits by index

Failures are isolated per group. Nothing is cached for a request that timed
out or was cancelled.
"""
import asyncio
from dataclasses import dataclass
import logging
from typing import Dict, List, Optional, Sequence

from gateway.services import metrics
from gateway.services.cache import TranslationMemory
from gateway.services.core.exceptions import (
    CacheUnavailableError,
    InvalidRequestError,
    PartialFailureError,
    ProviderError,
    RequestTimeoutError,
    TotalFailureError,
)
from gateway.services.core.fingerprint import cache_key
from gateway.services.core.types import (
    BatchRequest,
    BatchResult,
    CacheEntry,
    ProviderResult,
    TranslationOptions,
    TranslationUnit,
    UnitFailure,
    UnitResult,
    same_language,
)
from gateway.services.providers.base import TranslationProvider
from gateway.services.translation.dispatcher import ProviderDispatcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Miss:
    index: int
    unit: TranslationUnit
    key: str


@dataclass
class _GroupOutcome:
    misses: List[_Miss]
    results: Optional[List[ProviderResult]] = None
    provider_id: Optional[str] = None
    sequence: int = 0
    attempts: int = 0
    error: Optional[ProviderError] = None


class BatchCoordinator:
    """Orchestrates one translation batch end to end."""

    def __init__(
        self,
        dispatcher: ProviderDispatcher,
        cache: TranslationMemory,
        cache_ttl_seconds: float,
        max_units_per_call: int,
        request_timeout_ms: int,
    ):
        if max_units_per_call < 1:
            raise ValueError("max_units_per_call must be at least 1")
        self.dispatcher = dispatcher
        self.cache = cache
        self.cache_ttl_seconds = cache_ttl_seconds
        self.max_units_per_call = max_units_per_call
        self._request_timeout = request_timeout_ms / 1000.0

    async def translate(self, request: BatchRequest) -> BatchResult:
        """
        Translate a batch, preserving input order.

        Raises:
            InvalidRequestError: empty batch
            PartialFailureError: some units failed
            TotalFailureError: every unit failed
            RequestTimeoutError: the request deadline passed before all groups finished
        """
        if not request.units:
            raise InvalidRequestError("texts", "at least one text is required")

        resolved: Dict[int, UnitResult] = {}
        misses: List[_Miss] = []

        for index, unit in enumerate(request.units):
            if unit.is_passthrough:
                resolved[index] = UnitResult(index=index, text=unit.text)
                continue
            key = cache_key(unit, request.options)
            entry = await self._lookup(key)
            if entry is None:
                misses.append(_Miss(index, unit, key))
            else:
                resolved[index] = UnitResult(
                    index=index,
                    text=entry.result_text,
                    detected_source=entry.detected_source,
                    cached=True,
                )

        cache_hits = sum(1 for result in resolved.values() if result.cached)
        if not misses:
            return BatchResult(
                results=[resolved[index] for index in range(len(request))],
                cache_hits=cache_hits,
            )

        groups = [
            misses[start:start + self.max_units_per_call]
            for start in range(0, len(misses), self.max_units_per_call)
        ]
        try:
            async with asyncio.timeout(self._request_timeout):
                outcomes = await asyncio.gather(
                    *(self._dispatch_group(group, request.options) for group in groups)
                )
        except TimeoutError as e:
            logger.error(
                f"Batch of {len(request)} units exceeded {int(self._request_timeout * 1000)} ms, "
                f"{len(groups)} group(s) abandoned"
            )
            raise RequestTimeoutError(
                f"Translation did not finish within {int(self._request_timeout * 1000)} ms"
            ) from e

        failures: List[UnitFailure] = []
        provider_calls = 0
        for outcome in outcomes:
            provider_calls += outcome.attempts
            if outcome.error is not None:
                failures.extend(self._group_failures(outcome))
                continue
            for miss, result in zip(outcome.misses, outcome.results):
                text = result.text
                if same_language(result.detected_source, miss.unit.target_lang):
                    text = miss.unit.text
                await self._store(miss.key, text, result.detected_source, outcome.sequence)
                resolved[miss.index] = UnitResult(
                    index=miss.index,
                    text=text,
                    detected_source=result.detected_source,
                    provider_id=result.provider_id,
                )

        if failures:
            successes = sorted(resolved.values(), key=lambda result: result.index)
            if not successes:
                raise TotalFailureError(failures[0].reason, failures, len(request))
            raise PartialFailureError(
                f"{len(failures)} of {len(request)} units failed",
                successes,
                failures,
                len(request),
            )

        return BatchResult(
            results=[resolved[index] for index in range(len(request))],
            cache_hits=cache_hits,
            provider_calls=provider_calls,
        )

    async def _dispatch_group(self, group: List[_Miss], options: TranslationOptions) -> _GroupOutcome:
        units = [miss.unit for miss in group]

        async def invoke(provider: TranslationProvider) -> List[ProviderResult]:
            results = await provider.translate_batch(units, options)
            if len(results) != len(units) or any(result is None for result in results):
                raise ProviderError.transient(
                    f"Provider returned {len(results)} results for {len(units)} units",
                    provider.provider_id,
                )
            return results

        try:
            dispatched = await self.dispatcher.call("translate", invoke)
        except ProviderError as e:
            logger.error(
                f"Group of {len(group)} units (indices {group[0].index}..{group[-1].index}) failed: {e.message}"
            )
            return _GroupOutcome(misses=group, error=e)
        return _GroupOutcome(
            misses=group,
            results=dispatched.value,
            provider_id=dispatched.provider_id,
            sequence=dispatched.sequence,
            attempts=dispatched.attempts,
        )

    @staticmethod
    def _group_failures(outcome: _GroupOutcome) -> Sequence[UnitFailure]:
        error = outcome.error
        return [
            UnitFailure(
                index=miss.index,
                kind=error.error_kind.value,
                retryable=error.retryable,
                reason=error.message,
                provider_id=error.provider_id,
            )
            for miss in outcome.misses
        ]

    async def _lookup(self, key: str) -> Optional[CacheEntry]:
        try:
            entry = await self.cache.lookup(key)
        except CacheUnavailableError as e:
            metrics.cache_errors.labels("lookup").inc()
            logger.warning(f"Translation memory lookup failed, treating as miss: {e}")
            return None
        metrics.cache_lookups.labels("hit" if entry else "miss").inc()
        return entry

    async def _store(self, key: str, text: str, detected_source: Optional[str], sequence: int):
        try:
            stored = await self.cache.store(
                key,
                text,
                detected_source=detected_source,
                ttl_seconds=self.cache_ttl_seconds,
                sequence=sequence,
            )
        except CacheUnavailableError as e:
            metrics.cache_errors.labels("store").inc()
            logger.warning(f"Translation memory write skipped: {e}")
            return
        if not stored:
            logger.debug(f"Translation memory kept newer entry for key {key[:19]}")
