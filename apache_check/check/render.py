from __future__ import annotations

import json
from typing import Any

from apache_check.thresholds.engine import STATUS_RANK, Verdict
from apache_check.thresholds.rules import MetricSpec, declared_metrics


EXIT_CODES = dict(STATUS_RANK)
OUTPUT_PREFIX = "APACHE"


def exit_code(status: str) -> int:
    return EXIT_CODES.get(status, EXIT_CODES["UNKNOWN"])


def _perf_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.3f}"
    return str(value)


def performance_data(stats: dict[str, Any], specs: tuple[MetricSpec, ...] | None = None) -> str:
    units = {spec.key: spec.unit for spec in specs or declared_metrics()}
    items = []
    for key, value in stats.items():
        uom = "B" if units.get(key) == "bytes" else ""
        items.append(f"{key}={_perf_value(value)}{uom}")
    return " ".join(items)


def render_text(verdict: Verdict) -> str:
    line = f"{OUTPUT_PREFIX} {verdict.status} - {verdict.message}"
    if verdict.metrics:
        line += f" | {performance_data(verdict.metrics)}"
    return line


def render_json(verdict: Verdict) -> str:
    return json.dumps(
        {
            "status": verdict.status,
            "message": verdict.message,
            "stats": verdict.metrics,
            "tags": ",".join(verdict.tags),
        }
    )


def render(verdict: Verdict, output: str = "text") -> str:
    if output == "json":
        return render_json(verdict)
    return render_text(verdict)
