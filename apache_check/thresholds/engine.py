from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from apache_check.thresholds.rules import (
    CRITICAL,
    WARNING,
    MetricSpec,
    ThresholdRule,
    declared_metrics,
)
from apache_check.utils.errors import ThresholdConfigError


OK = "OK"
UNKNOWN = "UNKNOWN"

STATUS_RANK = {OK: 0, WARNING: 1, CRITICAL: 2, UNKNOWN: 3}
SUMMARY_SEPARATOR = ", "

_BYTE_SUFFIXES = ("B", "KB", "MB", "GB", "TB")


@dataclass(frozen=True)
class MetricResult:
    key: str
    value: float
    status: str
    rule: ThresholdRule | None = None


@dataclass(frozen=True)
class Verdict:
    status: str
    summary: tuple[str, ...]
    metrics: dict[str, Any] = field(default_factory=dict)
    tags: tuple[str, ...] = ()
    notices: tuple[str, ...] = ()
    results: tuple[MetricResult, ...] = ()

    @property
    def message(self) -> str:
        return SUMMARY_SEPARATOR.join(self.summary + self.notices)


def worst_status(statuses: Sequence[str]) -> str:
    return max(statuses, key=STATUS_RANK.__getitem__, default=OK)


def format_bytes(value: float) -> str:
    scaled = float(value)
    for suffix in _BYTE_SUFFIXES[:-1]:
        if abs(scaled) < 1024:
            return f"{scaled:.3f}{suffix}"
        scaled /= 1024
    return f"{scaled:.3f}{_BYTE_SUFFIXES[-1]}"


def format_value(value: float, unit: str | None = None) -> str:
    if unit == "bytes":
        return format_bytes(value)
    if isinstance(value, int):
        return str(value)
    return f"{value:.3f}"


def _evaluate_metric(key: str, value: float, rules: Sequence[ThresholdRule]) -> MetricResult:
    for severity in (CRITICAL, WARNING):
        for rule in rules:
            if rule.metric_key == key and rule.severity == severity and rule.matches(value):
                return MetricResult(key=key, value=value, status=severity, rule=rule)
    return MetricResult(key=key, value=value, status=OK)


def _describe(result: MetricResult, unit: str | None) -> str:
    text = f"{result.key}: {format_value(result.value, unit)}"
    if result.rule is not None:
        text += f" [{result.status} {result.rule.describe()}]"
    return text


def evaluate(
    metrics: Mapping[str, float],
    rules: Sequence[ThresholdRule],
    display_order: Sequence[str] | None = None,
    specs: Sequence[MetricSpec] | None = None,
) -> Verdict:
    """Classify ``metrics`` against ``rules``.

    Every metric named in ``display_order`` is reported, tripped or not, in that
    order. Per metric a matching CRITICAL rule takes precedence over a matching
    WARNING rule; the overall status is the worst per-metric status. The result
    is never UNKNOWN.
    """
    specs = tuple(specs) if specs is not None else declared_metrics()
    units = {spec.key: spec.unit for spec in specs}
    if display_order is None:
        display_order = [spec.key for spec in specs]

    results: list[MetricResult] = []
    for key in display_order:
        if key not in metrics:
            raise ThresholdConfigError(f"no value for metric '{key}'")
        results.append(_evaluate_metric(key, metrics[key], rules))

    return Verdict(
        status=worst_status([result.status for result in results]),
        summary=tuple(_describe(result, units.get(result.key)) for result in results),
        metrics=dict(metrics),
        results=tuple(results),
    )
