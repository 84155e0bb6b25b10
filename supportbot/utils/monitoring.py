"""Monitoring utilities leveraging Prometheus client."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

http_requests_total = Counter(
    "supportbot_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_latency_seconds = Histogram(
    "supportbot_http_request_latency_seconds",
    "HTTP request latency",
    ["method", "path"],
)

chat_turns_total = Counter(
    "supportbot_chat_turns_total",
    "Chat turns by delivery mode and outcome",
    ["mode", "outcome"],
)

provider_latency_seconds = Histogram(
    "supportbot_provider_latency_seconds",
    "Language-model call latency",
    ["mode"],
)


def observe_request(method: str, path: str, status: int, duration_seconds: float) -> None:
    http_requests_total.labels(method=method, path=path, status=str(status)).inc()
    http_request_latency_seconds.labels(method=method, path=path).observe(duration_seconds)


def record_chat_turn(mode: str, outcome: str, duration_seconds: float | None = None) -> None:
    chat_turns_total.labels(mode=mode, outcome=outcome).inc()
    if duration_seconds is not None:
        provider_latency_seconds.labels(mode=mode).observe(duration_seconds)
