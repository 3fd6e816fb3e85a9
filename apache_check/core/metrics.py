from __future__ import annotations

from pathlib import Path

from prometheus_client import CollectorRegistry, Gauge, write_to_textfile

from apache_check.status.scoreboard import WORKER_STATES
from apache_check.thresholds.engine import STATUS_RANK, Verdict


def build_registry(verdict: Verdict) -> CollectorRegistry:
    registry = CollectorRegistry()
    status = Gauge(
        "apache_check_status",
        "Check status (0 OK, 1 WARNING, 2 CRITICAL, 3 UNKNOWN)",
        registry=registry,
    )
    metric = Gauge(
        "apache_check_metric",
        "Derived metrics and raw counters of the last check",
        ["metric"],
        registry=registry,
    )
    workers = Gauge(
        "apache_check_workers",
        "Worker slots per scoreboard state",
        ["state"],
        registry=registry,
    )

    status.set(STATUS_RANK[verdict.status])
    states = set(WORKER_STATES.values())
    for key, value in verdict.metrics.items():
        if key in states:
            workers.labels(state=key).set(value)
        else:
            metric.labels(metric=key).set(value)
    return registry


def write_textfile(verdict: Verdict, path: Path) -> None:
    write_to_textfile(str(path), build_registry(verdict))
