"""
Prometheus metrics for the checkpoint store.

Exposes store activity via HTTP /metrics endpoint for Prometheus scraping.

Environment Variables:
    CKPT_METRICS_ENABLED: Enable metrics server (true/false) - default: false
    CKPT_METRICS_PORT: HTTP port for /metrics endpoint - default: 9108

Usage:
    from checkpointing.metrics import start_metrics_server, track_status_update

    start_metrics_server(enabled=True, port=9108)
    track_status_update("CONFIRMED")
"""

import logging
import os
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from prometheus_client import Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)

# Metrics registry (module-level, populated by init_metrics)
RECORDS_CREATED: Optional[Counter] = None
STATUS_UPDATES: Optional[Counter] = None
IDENTITY_MISMATCHES: Optional[Counter] = None
SCAN_DURATION: Optional[Histogram] = None

_metrics_initialized = False
_metrics_lock = threading.Lock()


def init_metrics() -> None:
    """
    Initialize Prometheus metrics (safe to call more than once).

    Thread-safe via module-level lock.
    """
    global RECORDS_CREATED, STATUS_UPDATES, IDENTITY_MISMATCHES, SCAN_DURATION
    global _metrics_initialized

    with _metrics_lock:
        if _metrics_initialized:
            return

        RECORDS_CREATED = Counter(
            "ckpt_records_created_total",
            "Total number of checkpoint records created",
        )

        STATUS_UPDATES = Counter(
            "ckpt_status_updates_total",
            "Total number of committed checkpoint status transitions",
            labelnames=["status"],
        )

        IDENTITY_MISMATCHES = Counter(
            "ckpt_identity_mismatches_total",
            "Total number of status updates rejected for digest mismatch",
        )

        SCAN_DURATION = Histogram(
            "ckpt_scan_duration_seconds",
            "Duration of status-filtered reverse scans in seconds",
            labelnames=["status"],
            buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
        )

        _metrics_initialized = True
        logger.info("Prometheus metrics initialized")


def metrics_enabled_from_env() -> bool:
    return os.getenv("CKPT_METRICS_ENABLED", "false").lower() == "true"


def metrics_port_from_env() -> int:
    return int(os.getenv("CKPT_METRICS_PORT", "9108"))


def start_metrics_server(enabled: bool, port: int) -> None:
    """
    Start Prometheus metrics HTTP server in background thread.

    Args:
        enabled: Whether to start metrics server (from CKPT_METRICS_ENABLED)
        port: HTTP port for /metrics endpoint (from CKPT_METRICS_PORT)
    """
    if not enabled:
        logger.info("Metrics server disabled (CKPT_METRICS_ENABLED=false)")
        return

    init_metrics()

    try:
        start_http_server(port, addr="0.0.0.0")
        logger.info("Metrics server started on http://0.0.0.0:%d/metrics", port)
    except OSError as e:
        logger.error("Failed to start metrics server: %s", e)


def track_record_created() -> None:
    if RECORDS_CREATED is not None:
        RECORDS_CREATED.inc()


def track_status_update(status: str) -> None:
    if STATUS_UPDATES is not None:
        STATUS_UPDATES.labels(status=status).inc()


def track_identity_mismatch() -> None:
    if IDENTITY_MISMATCHES is not None:
        IDENTITY_MISMATCHES.inc()


@contextmanager
def track_scan_duration(status: str) -> Iterator[None]:
    """
    Context manager for timing a reverse scan.

    Usage:
        with track_scan_duration("CONFIRMED"):
            store.scan_by_status(...)
    """
    if SCAN_DURATION is None:
        yield
        return

    with SCAN_DURATION.labels(status=status).time():
        yield
