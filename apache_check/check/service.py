from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Any, Callable
from urllib.parse import urlsplit, urlunsplit

from apache_check.check.config import CheckConfig
from apache_check.core.logging import bind_check_context
from apache_check.fetch.client import FetchRequest, fetch_status
from apache_check.status.rates import DerivedMetrics, StoredSample, compute_rates, snapshot
from apache_check.status.scoreboard import RawSample, decode_status
from apache_check.store.samples import SampleStore
from apache_check.thresholds.engine import Verdict, evaluate
from apache_check.utils.errors import CheckError, SampleStoreError


Fetcher = Callable[[FetchRequest], str]

logger = logging.getLogger(__name__)


def build_stats(sample: RawSample, metrics: DerivedMetrics) -> dict[str, Any]:
    stats: dict[str, Any] = dict(metrics.as_metrics())
    stats.update(
        {
            "total_accesses": sample.total_requests,
            "total_bytes": sample.total_bytes,
            "busy_workers": sample.busy_workers,
            "idle_workers": sample.idle_workers,
        }
    )
    stats.update(sample.worker_states)
    return stats


def loggable_url(url: str) -> str:
    parts = urlsplit(url)
    netloc = parts.netloc.rpartition("@")[2]
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


def failure_verdict(exc: CheckError) -> Verdict:
    return Verdict(
        status=exc.detail.status or "UNKNOWN",
        summary=(exc.detail.message,),
        tags=exc.detail.tags,
    )


class CheckRunner:
    def __init__(
        self,
        config: CheckConfig,
        store: SampleStore,
        *,
        fetcher: Fetcher = fetch_status,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
        bootstrap_wait_seconds: float = 1.0,
    ) -> None:
        self._config = config
        self._store = store
        self._fetcher = fetcher
        self._clock = clock
        self._sleep = sleep
        self._bootstrap_wait_seconds = bootstrap_wait_seconds
        self._notices: list[str] = []

    def run(self) -> Verdict:
        self._notices = []
        bind_check_context(check=self._config.identity, url=loggable_url(self._config.url))
        try:
            verdict = self._run()
        except CheckError as exc:
            logger.warning(
                "check_failed",
                extra={"code": exc.detail.code, "detail": exc.detail.message},
            )
            verdict = failure_verdict(exc)
        if self._notices:
            verdict = replace(verdict, notices=tuple(self._notices))
        return verdict

    def _run(self) -> Verdict:
        current, captured_at = self._sample()
        prior = self._load_prior()
        if prior is None:
            prior = snapshot(current, captured_at)
            logger.info("sample_bootstrap", extra={"total_requests": prior.total_requests})
            self._save(prior)
            self._sleep(self._bootstrap_wait_seconds)
            current, captured_at = self._sample()

        metrics, stored = compute_rates(prior, current, captured_at)
        self._save(stored)

        verdict = evaluate(
            metrics.as_metrics(),
            self._config.rules,
            self._config.display_order,
            self._config.metrics,
        )
        return replace(verdict, metrics=build_stats(current, metrics))

    def _sample(self) -> tuple[RawSample, float]:
        body = self._fetcher(self._config.fetch_request)
        sample = decode_status(body)
        return sample, self._clock()

    def _load_prior(self) -> StoredSample | None:
        try:
            return self._store.load(self._config.identity)
        except SampleStoreError as exc:
            logger.error("sample_load_failed", extra={"detail": exc.detail.message})
            self._notice(f"sample not loaded: {exc.detail.message}")
            return None

    def _save(self, sample: StoredSample) -> None:
        try:
            self._store.save(self._config.identity, sample)
        except SampleStoreError as exc:
            logger.error("sample_save_failed", extra={"detail": exc.detail.message})
            self._notice(f"sample not saved: {exc.detail.message}")

    def _notice(self, message: str) -> None:
        if message not in self._notices:
            self._notices.append(message)
