from __future__ import annotations

import pytest

from apache_check.thresholds.engine import (
    evaluate,
    format_bytes,
    format_value,
    worst_status,
)
from apache_check.thresholds.rules import CRITICAL, WARNING, ThresholdRule, parse_rules, declared_metrics
from apache_check.utils.errors import ThresholdConfigError


METRICS = {"idleworker": 7, "reqpersec": 5.0, "bytperreq": 512.0, "bytpersec": 1706.667}


def test_evaluate_warning_on_default_idle_threshold() -> None:
    rules = parse_rules([], [], declared_metrics())
    verdict = evaluate(METRICS, rules)
    assert verdict.status == WARNING
    assert verdict.summary == (
        "idleworker: 7 [WARNING idleworker:lt:10]",
        "reqpersec: 5.000",
        "bytperreq: 512.000B",
        "bytpersec: 1.667KB",
    )
    assert verdict.message.startswith("idleworker: 7 [WARNING idleworker:lt:10], reqpersec")


def test_evaluate_critical_wins_for_same_metric() -> None:
    rules = (
        ThresholdRule("idleworker", "lt", 10.0, WARNING),
        ThresholdRule("idleworker", "lt", 8.0, CRITICAL),
    )
    verdict = evaluate(METRICS, rules)
    assert verdict.status == CRITICAL
    assert verdict.results[0].status == CRITICAL
    assert verdict.results[0].rule == rules[1]
    assert verdict.summary[0] == "idleworker: 7 [CRITICAL idleworker:lt:8]"


def test_evaluate_overall_status_is_worst_metric() -> None:
    rules = (
        ThresholdRule("idleworker", "lt", 10.0, WARNING),
        ThresholdRule("reqpersec", "ge", 5.0, CRITICAL),
    )
    verdict = evaluate(METRICS, rules)
    assert verdict.status == CRITICAL
    assert [result.status for result in verdict.results] == [WARNING, CRITICAL, "OK", "OK"]


def test_evaluate_ok_still_lists_every_metric() -> None:
    verdict = evaluate(METRICS, ())
    assert verdict.status == "OK"
    assert len(verdict.summary) == 4
    assert all("[" not in item for item in verdict.summary)


def test_evaluate_follows_display_order() -> None:
    verdict = evaluate(METRICS, (), display_order=["bytpersec", "idleworker"])
    assert verdict.summary == ("bytpersec: 1.667KB", "idleworker: 7")


def test_evaluate_is_reproducible() -> None:
    rules = parse_rules(["reqpersec:gt:1", "idleworker:lt:10"], ["bytpersec:gt:1"], declared_metrics())
    assert evaluate(METRICS, rules) == evaluate(METRICS, rules)


def test_evaluate_missing_metric_value_raises() -> None:
    with pytest.raises(ThresholdConfigError):
        evaluate({"idleworker": 1}, (), display_order=["reqpersec"])


def test_worst_status() -> None:
    assert worst_status([]) == "OK"
    assert worst_status(["OK", WARNING, "OK"]) == WARNING
    assert worst_status([WARNING, CRITICAL, WARNING]) == CRITICAL


def test_format_bytes_scales() -> None:
    assert format_bytes(0) == "0.000B"
    assert format_bytes(1023) == "1023.000B"
    assert format_bytes(1536) == "1.500KB"
    assert format_bytes(3 * 1024**3) == "3.000GB"


def test_format_value() -> None:
    assert format_value(7) == "7"
    assert format_value(0.8333) == "0.833"
    assert format_value(2048.0, "bytes") == "2.000KB"
