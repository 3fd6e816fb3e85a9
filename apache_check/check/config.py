from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml

from apache_check.core.settings import Settings, get_settings
from apache_check.fetch.client import FetchRequest, with_status_query
from apache_check.store.samples import sample_key
from apache_check.thresholds.rules import MetricSpec, ThresholdRule, declared_metrics, parse_rules
from apache_check.utils.errors import ConfigError


OUTPUT_FORMATS = ("text", "json")


@dataclass(frozen=True)
class CheckConfig:
    url: str
    rules: tuple[ThresholdRule, ...]
    metrics: tuple[MetricSpec, ...] = field(default_factory=declared_metrics)
    username: str | None = None
    password: str | None = None
    prefer_ipv6: bool = False
    address: str | None = None
    verify_tls: bool = True
    timeout_seconds: float = 10.0
    state_dir: Path = Path("/var/lib/apache-check")
    output: str = "text"
    textfile: Path | None = None

    @property
    def fetch_request(self) -> FetchRequest:
        return FetchRequest(
            url=self.url,
            username=self.username,
            password=self.password,
            prefer_ipv6=self.prefer_ipv6,
            address=self.address,
            verify_tls=self.verify_tls,
            timeout_seconds=self.timeout_seconds,
        )

    @property
    def identity(self) -> str:
        return sample_key([self.url, self.username, self.address, self.prefer_ipv6])

    @property
    def display_order(self) -> list[str]:
        return [spec.key for spec in self.metrics]


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [item for item in value.split(",") if item.strip()]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    raise ConfigError("thresholds must be a string or a list of strings")


def _validate_url(url: str) -> str:
    parts = urlsplit(url)
    if parts.scheme not in {"http", "https"} or not parts.hostname:
        raise ConfigError(f"invalid url '{url}'")
    try:
        parts.port
    except ValueError:
        raise ConfigError(f"invalid port in url '{url}'") from None
    return with_status_query(url)


def check_config_from_payload(
    payload: dict[str, Any], settings: Settings | None = None
) -> CheckConfig:
    settings = settings or get_settings()
    metrics = declared_metrics()
    rules = parse_rules(
        _as_list(payload.get("warning")),
        _as_list(payload.get("critical")),
        metrics,
    )
    try:
        timeout = float(payload.get("timeout", settings.default_timeout_seconds))
    except (TypeError, ValueError):
        raise ConfigError("timeout must be a number") from None
    if timeout <= 0:
        raise ConfigError("timeout must be > 0")
    output = str(payload.get("output", "text")).lower()
    if output not in OUTPUT_FORMATS:
        raise ConfigError(f"output must be one of {', '.join(OUTPUT_FORMATS)}")
    textfile = payload.get("textfile")

    return CheckConfig(
        url=_validate_url(str(payload.get("url") or settings.default_url)),
        rules=rules,
        metrics=metrics,
        username=payload.get("username") or None,
        password=payload.get("password") or None,
        prefer_ipv6=bool(payload.get("ipv6", False)),
        address=payload.get("address") or None,
        verify_tls=not bool(payload.get("insecure", False)),
        timeout_seconds=timeout,
        state_dir=Path(payload.get("state_dir") or settings.state_dir),
        output=output,
        textfile=Path(textfile) if textfile else None,
    )


def load_config_payload(path: Path) -> dict[str, Any]:
    try:
        raw = path.read_text()
    except OSError as exc:
        raise ConfigError(f"unable to read config file {path}: {exc.strerror}") from exc
    try:
        if path.suffix.lower() in {".yml", ".yaml"}:
            payload = yaml.safe_load(raw)
        else:
            payload = json.loads(raw)
    except (yaml.YAMLError, ValueError) as exc:
        raise ConfigError(f"unable to parse config file {path}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigError("config file must contain a JSON/YAML object")
    return payload


def load_check_config(path: Path, settings: Settings | None = None) -> CheckConfig:
    return check_config_from_payload(load_config_payload(path), settings)
