from __future__ import annotations

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


# Attributes every LogRecord carries; anything else on a record came from ``extra``.
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}


@dataclass(frozen=True)
class CheckContext:
    run_id: str
    check: str = ""
    url: str = ""


_check_context: ContextVar[CheckContext | None] = ContextVar("check_context", default=None)


def bind_check_context(
    *, check: str = "", url: str = "", run_id: str | None = None
) -> CheckContext:
    """Describe the running check for every later log record.

    The run id is kept across rebinds so records logged before and after the
    configuration is known share one id.
    """
    current = _check_context.get()
    if run_id is None:
        run_id = current.run_id if current is not None else uuid.uuid4().hex
    context = CheckContext(run_id=run_id, check=check, url=url)
    _check_context.set(context)
    return context


def current_check_context() -> CheckContext | None:
    return _check_context.get()


class CheckContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        context = _check_context.get()
        if context is not None:
            record.run_id = context.run_id
            if context.check:
                record.check = context.check
            if context.url:
                record.url = context.url
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_")
        )
        return json.dumps(payload, default=str)


def configure_logging(level: str) -> None:
    # stdout carries the check result, so log records go to stderr only.
    logging.basicConfig(level=level.upper(), stream=sys.stderr)
    for handler in logging.getLogger().handlers:
        handler.setFormatter(JsonFormatter())
        if not any(isinstance(item, CheckContextFilter) for item in handler.filters):
            handler.addFilter(CheckContextFilter())
