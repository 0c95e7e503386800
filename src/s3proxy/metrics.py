"""Prometheus metrics definitions for s3proxy.

All custom metrics use the ``s3proxy_`` prefix. These are gateway-level
counters; ``prometheus-fastapi-instrumentator`` provides the HTTP-level
metrics (request count, duration, sizes).

Metrics are opt-in. Until ``init_metrics()`` runs the module-level
references stay ``None`` and callers skip recording.
"""

from __future__ import annotations

from prometheus_client import Counter

_initialized: bool = False

# Store fetches by outcome ("ok" / "error")
fetches_total: Counter | None = None

# Symlink descriptors followed
symlinks_resolved_total: Counter | None = None

# Object bytes streamed to clients
bytes_sent_total: Counter | None = None


def init_metrics() -> None:
    """Create and register all Prometheus metrics.

    Safe to call more than once; collectors are registered in the global
    registry only on the first call.
    """
    global _initialized
    global fetches_total, symlinks_resolved_total, bytes_sent_total

    if _initialized:
        return

    fetches_total = Counter(
        "s3proxy_fetches_total",
        "Total object store fetches by outcome",
        ["outcome"],
    )

    symlinks_resolved_total = Counter(
        "s3proxy_symlinks_resolved_total",
        "Total symlink descriptors followed",
    )

    bytes_sent_total = Counter(
        "s3proxy_bytes_sent_total",
        "Total object bytes streamed to clients",
    )

    _initialized = True


def record_fetch(outcome: str) -> None:
    if fetches_total is not None:
        fetches_total.labels(outcome=outcome).inc()


def record_symlink() -> None:
    if symlinks_resolved_total is not None:
        symlinks_resolved_total.inc()


def record_bytes_sent(count: int) -> None:
    if bytes_sent_total is not None and count > 0:
        bytes_sent_total.inc(count)
