from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ErrorDetail:
    code: str
    message: str
    classification: str
    status: str | None
    tags: tuple[str, ...] = ()
    extra: dict[str, Any] | None = None


class CheckError(Exception):
    def __init__(
        self,
        code: str,
        message: str,
        classification: str,
        status: str | None,
        tags: tuple[str, ...] = (),
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.detail = ErrorDetail(
            code=code,
            message=message,
            classification=classification,
            status=status,
            tags=tags,
            extra=extra,
        )


def single_line(text: str) -> str:
    return " ".join(part.strip() for part in text.splitlines() if part.strip())


class FetchTimeout(CheckError):
    def __init__(self, message: str = "request timeout") -> None:
        super().__init__(
            code="fetch_timeout",
            message=single_line(message),
            classification="transient",
            status="CRITICAL",
            tags=("timeout",),
        )


class FetchError(CheckError):
    def __init__(self, message: str) -> None:
        super().__init__(
            code="fetch_error",
            message=single_line(message),
            classification="dependency",
            status="CRITICAL",
        )


class ParseError(CheckError):
    def __init__(self, message: str = "unable to parse content") -> None:
        super().__init__(
            code="parse_error",
            message=message,
            classification="check",
            status="UNKNOWN",
        )


class ThresholdConfigError(CheckError):
    def __init__(self, message: str) -> None:
        super().__init__(
            code="threshold_config",
            message=message,
            classification="config",
            status="UNKNOWN",
        )


class ConfigError(CheckError):
    def __init__(self, message: str) -> None:
        super().__init__(
            code="config_error",
            message=message,
            classification="config",
            status="UNKNOWN",
        )


class SampleStoreError(CheckError):
    def __init__(self, message: str) -> None:
        super().__init__(
            code="sample_store",
            message=single_line(message),
            classification="storage",
            status=None,
        )
