"""Prometheus metrics instrumentation for the translation gateway.

Exposes emission hooks for request outcomes, authentication, rate limiting,
translation memory and provider calls. Metrics are served via HTTP on a
separate port (configurable) when METRICS_ENABLED is set.

Metrics exported:
- gateway_requests_total: Counter of HTTP requests by endpoint and status
- gateway_auth_total: Counter of authentication outcomes
- gateway_rate_limited_total: Counter of rejected admissions
- gateway_cache_lookups_total: Counter of translation memory hits/misses
- gateway_cache_errors_total: Counter of degraded cache operations
- gateway_provider_calls_total: Counter of provider attempts by outcome
- gateway_provider_latency_seconds: Histogram of provider attempt latency

Usage:
    from gateway.services.metrics import start_metrics_server, cache_lookups

    start_metrics_server(port=8001)
    cache_lookups.labels(result='hit').inc()
"""

from prometheus_client import Histogram, Counter, start_http_server
import logging

logger = logging.getLogger(__name__)

requests_total = Counter(
    'gateway_requests_total',
    'HTTP requests handled by the gateway',
    labelnames=['endpoint', 'status']
)

auth_outcomes = Counter(
    'gateway_auth_total',
    'Authentication attempts',
    labelnames=['outcome']  # outcome: ok, missing, invalid, timeout, error
)

rate_limited = Counter(
    'gateway_rate_limited_total',
    'Requests rejected by the rate limiter'
)

cache_lookups = Counter(
    'gateway_cache_lookups_total',
    'Translation memory lookups',
    labelnames=['result']  # result: hit, miss, expired
)

cache_errors = Counter(
    'gateway_cache_errors_total',
    'Translation memory operations degraded because the backend failed',
    labelnames=['operation']  # operation: lookup, store
)

provider_calls = Counter(
    'gateway_provider_calls_total',
    'Provider attempts',
    labelnames=['provider', 'operation', 'outcome']  # outcome: success, transient, permanent
)

provider_latency = Histogram(
    'gateway_provider_latency_seconds',
    'Time spent in a single provider attempt',
    labelnames=['provider', 'operation']
)


def start_metrics_server(port: int = 8001):
    """Start Prometheus metrics HTTP server."""
    try:
        start_http_server(port)
        logger.info(f"✅ Metrics server started on port {port}")
    except OSError as e:
        logger.error(f"❌ Failed to start metrics server: {e}")
