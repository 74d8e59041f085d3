"""Retry policy for provider calls: bounded attempts, exponential jittered backoff."""
from dataclasses import dataclass
import random

from gateway.config.constants import RETRY_JITTER_RATIO


@dataclass(frozen=True)
class RetryPolicy:
    """
    Attributes:
        max_attempts: Attempts per provider, including the first one
        base_delay_ms: Delay before the second attempt
        max_delay_ms: Upper bound for any single delay
        jitter: Fraction of the delay that is randomized (0..1)
    """
    max_attempts: int = 3
    base_delay_ms: int = 200
    max_delay_ms: int = 5000
    jitter: float = RETRY_JITTER_RATIO

    def delay_for(self, attempt: int, rng: random.Random = random) -> float:
        """
        Seconds to wait after failed attempt number ``attempt`` (1-based).

        The nominal delay doubles per attempt and is capped at max_delay_ms;
        the returned value lies in [nominal * (1 - jitter), nominal].
        """
        nominal_ms = min(self.max_delay_ms, self.base_delay_ms * (2 ** max(0, attempt - 1)))
        low_ms = nominal_ms * (1.0 - self.jitter)
        return rng.uniform(low_ms, nominal_ms) / 1000.0
