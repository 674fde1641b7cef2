"""Метрики Prometheus (локальный registry)."""

from prometheus_client import CollectorRegistry, Counter, Histogram

registry = CollectorRegistry()

calls_total = Counter(
    "ai_calls_total",
    "Total number of AI client calls",
    ["kind", "provider", "status"],
    registry=registry,
)

call_latency_seconds = Histogram(
    "ai_call_latency_seconds",
    "AI client call latency in seconds",
    ["kind", "provider"],
    registry=registry,
)

stream_fallbacks_total = Counter(
    "ai_stream_fallbacks_total",
    "Streaming attempts that fell back to a non-streaming request",
    ["kind", "provider"],
    registry=registry,
)
