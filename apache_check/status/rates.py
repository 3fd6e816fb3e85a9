from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from apache_check.status.scoreboard import RawSample


MIN_DELTA_SECONDS = 1.0
RATE_PRECISION = 3

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredSample:
    captured_at: float
    total_requests: int
    total_bytes: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "captured_at": self.captured_at,
            "total_requests": self.total_requests,
            "total_bytes": self.total_bytes,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> StoredSample:
        return cls(
            captured_at=float(payload["captured_at"]),
            total_requests=int(payload["total_requests"]),
            total_bytes=int(payload["total_bytes"]),
        )


@dataclass(frozen=True)
class DerivedMetrics:
    idle_workers: int
    requests_per_second: float
    bytes_per_second: float
    bytes_per_request: float
    counter_reset: bool = False
    elapsed_seconds: float = MIN_DELTA_SECONDS

    def as_metrics(self) -> dict[str, float]:
        return {
            "idleworker": self.idle_workers,
            "reqpersec": self.requests_per_second,
            "bytperreq": self.bytes_per_request,
            "bytpersec": self.bytes_per_second,
        }


def snapshot(sample: RawSample, captured_at: float) -> StoredSample:
    return StoredSample(
        captured_at=captured_at,
        total_requests=sample.total_requests,
        total_bytes=sample.total_bytes,
    )


def compute_rates(
    prior: StoredSample, current: RawSample, current_time: float
) -> tuple[DerivedMetrics, StoredSample]:
    delta = max(MIN_DELTA_SECONDS, current_time - prior.captured_at)
    reset = prior.total_requests > current.total_requests
    if reset:
        # Service restart zeroed the counters; rate is measured from zero.
        logger.info(
            "counter_reset",
            extra={
                "prior_requests": prior.total_requests,
                "current_requests": current.total_requests,
            },
        )
        base_requests, base_bytes = 0, 0
    else:
        base_requests, base_bytes = prior.total_requests, prior.total_bytes

    if current.total_requests == 0:
        requests_per_second = bytes_per_second = bytes_per_request = 0.0
    else:
        requests_per_second = (current.total_requests - base_requests) / delta
        bytes_per_second = max(0.0, (current.total_bytes - base_bytes) / delta)
        bytes_per_request = current.total_bytes / current.total_requests

    metrics = DerivedMetrics(
        idle_workers=current.idle_workers,
        requests_per_second=round(requests_per_second, RATE_PRECISION),
        bytes_per_second=round(bytes_per_second, RATE_PRECISION),
        bytes_per_request=round(bytes_per_request, RATE_PRECISION),
        counter_reset=reset,
        elapsed_seconds=delta,
    )
    return metrics, snapshot(current, current_time)
