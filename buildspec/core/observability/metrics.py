from __future__ import annotations

from collections import Counter
from typing import Dict

from prometheus_client import Counter as PromCounter

# Named counters (custom)
_NAMED = Counter()

_PROM_HTTP = PromCounter(
    "buildspec_http_requests_total",
    "HTTP requests served by the API",
    ["method", "status"],
)

_PROM_LOADS = PromCounter(
    "buildspec_descriptor_loads_total",
    "Descriptor load attempts",
    ["outcome"],
)

_PROM_STAGE_FAILURES = PromCounter(
    "buildspec_stage_failures_total",
    "Build failures by stage",
    ["stage"],
)


def reset_metrics() -> None:
    """
    Test helper: clears named counters to avoid cross-test leakage.
    Prometheus counters are process-wide and are not reset.
    """
    _NAMED.clear()


def inc_named(name: str, value: int = 1) -> None:
    if not name:
        return
    _NAMED[name] += int(value)


def record_http(method: str, status: int | None) -> None:
    m = (method or "UNKNOWN").upper()
    s = str(status) if status is not None else "unknown"
    inc_named("requests_total")
    _PROM_HTTP.labels(method=m, status=s).inc()


def record_load(ok: bool) -> None:
    outcome = "ok" if ok else "error"
    inc_named(f"descriptor_loads_{outcome}")
    _PROM_LOADS.labels(outcome=outcome).inc()


def record_stage_failure(stage: str | None) -> None:
    s = stage or "unknown"
    inc_named(f"stage_failures_{s}")
    _PROM_STAGE_FAILURES.labels(stage=s).inc()


def snapshot_named() -> Dict[str, int]:
    return dict(_NAMED)
