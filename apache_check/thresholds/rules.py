from __future__ import annotations

import math
import operator
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from apache_check.utils.errors import ThresholdConfigError


WARNING = "WARNING"
CRITICAL = "CRITICAL"

METRIC_DECLARATIONS = ("idleworker", "reqpersec", "bytperreq{bytes}", "bytpersec{bytes}")

DEFAULT_WARNING_RULES = ("idleworker:lt:10",)
DEFAULT_CRITICAL_RULES = ("idleworker:lt:3",)

OPERATORS: dict[str, Callable[[float, float], bool]] = {
    "lt": operator.lt,
    "le": operator.le,
    "eq": operator.eq,
    "ne": operator.ne,
    "ge": operator.ge,
    "gt": operator.gt,
}

_DECLARATION_PATTERN = re.compile(r"^([a-z][a-z0-9_]*)(?:\{([a-z]+)\})?$")


@dataclass(frozen=True)
class MetricSpec:
    key: str
    unit: str | None = None


@dataclass(frozen=True)
class ThresholdRule:
    metric_key: str
    operator: str
    bound: float
    severity: str

    def matches(self, value: float) -> bool:
        return OPERATORS[self.operator](value, self.bound)

    def describe(self) -> str:
        return f"{self.metric_key}:{self.operator}:{_format_bound(self.bound)}"


def _format_bound(bound: float) -> str:
    if bound.is_integer():
        return str(int(bound))
    return str(bound)


def parse_metric_declaration(declaration: str) -> MetricSpec:
    match = _DECLARATION_PATTERN.match(declaration.strip())
    if match is None:
        raise ThresholdConfigError(f"invalid metric declaration '{declaration}'")
    return MetricSpec(key=match.group(1), unit=match.group(2))


def declared_metrics(
    declarations: Iterable[str] = METRIC_DECLARATIONS,
) -> tuple[MetricSpec, ...]:
    return tuple(parse_metric_declaration(item) for item in declarations)


def parse_rule(text: str, severity: str, metric_keys: Iterable[str]) -> ThresholdRule:
    if severity not in (WARNING, CRITICAL):
        raise ThresholdConfigError(f"invalid severity '{severity}'")
    parts = [part.strip() for part in text.split(":")]
    if len(parts) != 3 or not all(parts):
        raise ThresholdConfigError(
            f"invalid threshold '{text}', expected <metric>:<operator>:<value>"
        )
    metric_key, op, raw_bound = parts
    metric_key = metric_key.lower()
    op = op.lower()
    if metric_key not in set(metric_keys):
        raise ThresholdConfigError(f"unknown metric '{metric_key}' in threshold '{text}'")
    if op not in OPERATORS:
        raise ThresholdConfigError(f"unknown operator '{op}' in threshold '{text}'")
    try:
        bound = float(raw_bound)
    except ValueError:
        raise ThresholdConfigError(f"invalid value '{raw_bound}' in threshold '{text}'") from None
    if not math.isfinite(bound):
        raise ThresholdConfigError(f"invalid value '{raw_bound}' in threshold '{text}'")
    return ThresholdRule(metric_key=metric_key, operator=op, bound=bound, severity=severity)


def parse_rules(
    warning: Sequence[str],
    critical: Sequence[str],
    metrics: Sequence[MetricSpec],
) -> tuple[ThresholdRule, ...]:
    keys = [spec.key for spec in metrics]
    if not warning and not critical:
        warning, critical = DEFAULT_WARNING_RULES, DEFAULT_CRITICAL_RULES
    rules = [parse_rule(item, CRITICAL, keys) for item in critical]
    rules.extend(parse_rule(item, WARNING, keys) for item in warning)
    return tuple(rules)
