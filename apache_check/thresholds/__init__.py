from __future__ import annotations

from apache_check.thresholds.engine import (
    OK,
    UNKNOWN,
    MetricResult,
    Verdict,
    evaluate,
    worst_status,
)
from apache_check.thresholds.rules import (
    CRITICAL,
    WARNING,
    MetricSpec,
    ThresholdRule,
    declared_metrics,
    parse_rule,
    parse_rules,
)

__all__ = [
    "CRITICAL",
    "OK",
    "UNKNOWN",
    "WARNING",
    "MetricResult",
    "MetricSpec",
    "ThresholdRule",
    "Verdict",
    "declared_metrics",
    "evaluate",
    "parse_rule",
    "parse_rules",
    "worst_status",
]
