"""
Provider Dispatcher - retry and fallback around provider calls.

For each provider in the configured chain (primary first):
- run the call with a per-attempt timeout (timeout counts as transient)
- on a transient error, back off and retry up to ``max_attempts``
- on a permanent error or exhausted retries, move to the next provider

Only when every provider has failed is the last error raised.
"""
import asyncio
from dataclasses import dataclass
import logging
import random
import time
from typing import Awaitable, Callable, Generic, Optional, Sequence, TypeVar

from gateway.services import metrics
from gateway.services.core.exceptions import ProviderError
from gateway.services.providers.base import TranslationProvider
from gateway.services.translation.retry import RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Dispatched(Generic[T]):
    """Successful provider call.

    Attributes:
        value: Provider return value
        provider_id: Provider that answered
        attempts: Total attempts spent across the chain
        sequence: Write stamp taken when the successful attempt started
    """
    value: T
    provider_id: str
    attempts: int
    sequence: int


class ProviderDispatcher:
    """Runs provider operations with bounded retry and ordered fallback."""

    def __init__(
        self,
        providers: Sequence[TranslationProvider],
        retry_policy: RetryPolicy,
        timeout_ms: int,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        sequence_clock: Callable[[], int] = time.time_ns,
        rng: Optional[random.Random] = None,
    ):
        if not providers:
            raise ValueError("At least one translation provider is required")
        self.providers = list(providers)
        self.retry_policy = retry_policy
        self._timeout = timeout_ms / 1000.0
        self._sleep = sleep
        self._sequence_clock = sequence_clock
        self._rng = rng or random.Random()

    async def call(
        self,
        operation: str,
        invoke: Callable[[TranslationProvider], Awaitable[T]],
    ) -> Dispatched[T]:
        """
        Run ``invoke(provider)`` until one provider succeeds.

        Args:
            operation: Label for logs and metrics (translate, detect, languages)
            invoke: Coroutine factory taking the provider to call

        Returns:
            Dispatched wrapper with the value and provenance

        Raises:
            ProviderError: the last error once every provider has failed
        """
        last_error: Optional[ProviderError] = None
        total_attempts = 0

        for provider in self.providers:
            for attempt in range(1, self.retry_policy.max_attempts + 1):
                total_attempts += 1
                sequence = self._sequence_clock()
                started = time.perf_counter()
                try:
                    value = await asyncio.wait_for(invoke(provider), timeout=self._timeout)
                except asyncio.TimeoutError:
                    error = ProviderError.transient(
                        f"{operation} timed out after {int(self._timeout * 1000)} ms",
                        provider.provider_id,
                    )
                except ProviderError as e:
                    error = e
                except Exception as e:
                    logger.warning(
                        f"{provider.provider_id} {operation} raised {type(e).__name__}", exc_info=True
                    )
                    error = ProviderError.permanent(
                        f"{operation} failed: {type(e).__name__}: {e}", provider.provider_id
                    )
                else:
                    metrics.provider_latency.labels(provider.provider_id, operation).observe(
                        time.perf_counter() - started
                    )
                    metrics.provider_calls.labels(provider.provider_id, operation, "success").inc()
                    return Dispatched(value, provider.provider_id, total_attempts, sequence)

                if error.provider_id is None:
                    error.provider_id = provider.provider_id
                metrics.provider_calls.labels(provider.provider_id, operation, error.error_kind.value).inc()
                last_error = error

                if not error.retryable:
                    logger.warning(f"{provider.provider_id} {operation} failed permanently: {error.message}")
                    break
                if attempt < self.retry_policy.max_attempts:
                    delay = self.retry_policy.delay_for(attempt, self._rng)
                    logger.warning(
                        f"{provider.provider_id} {operation} attempt {attempt} failed ({error.message}), "
                        f"retrying in {delay:.3f}s"
                    )
                    await self._sleep(delay)
            else:
                logger.error(
                    f"{provider.provider_id} {operation} exhausted {self.retry_policy.max_attempts} attempts"
                )

        assert last_error is not None
        raise last_error
