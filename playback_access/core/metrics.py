from __future__ import annotations

"""Prometheus metrics for the access engine and its dependencies."""

from prometheus_client import Counter, Histogram

access_decisions_total = Counter(
    "playback_access_decisions_total",
    "Authorization decisions by outcome",
    labelnames=("outcome", "reason"),
)
metadata_lookups_total = Counter(
    "playback_metadata_lookups_total",
    "Video metadata lookups by cache result",
    labelnames=("result",),  # hit | miss | fill | fill_failed
)
nonces_total = Counter(
    "playback_nonces_total",
    "Replay guard outcomes",
    labelnames=("result",),  # consumed | already_used
)
share_links_total = Counter(
    "playback_share_links_total",
    "Share-link issuance attempts",
    labelnames=("result",),
)
share_link_latency = Histogram(
    "playback_share_link_seconds",
    "Latency for share-link issuance",
    labelnames=("result",),
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)
dependency_errors_total = Counter(
    "playback_dependency_errors_total",
    "Errors raised by external dependencies",
    labelnames=("component",),
)


def inc_decision(outcome: str, reason: str) -> None:
    access_decisions_total.labels(outcome=outcome, reason=reason).inc()


def inc_metadata_lookup(result: str) -> None:
    metadata_lookups_total.labels(result=result).inc()


def inc_nonce(result: str) -> None:
    nonces_total.labels(result=result).inc()


def observe_share_link(result: str, seconds: float) -> None:
    share_links_total.labels(result=result).inc()
    share_link_latency.labels(result=result).observe(seconds)


def inc_dependency_error(component: str) -> None:
    dependency_errors_total.labels(component=component).inc()
