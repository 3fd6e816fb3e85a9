"""Decoder for the machine-readable ``mod_status`` page (``/server-status?auto``)."""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field

from apache_check.utils.errors import ParseError


WORKER_STATES: dict[str, str] = {
    "_": "waiting",
    "S": "startup",
    "R": "reading_request",
    "W": "sending_reply",
    "K": "keep_alive",
    "D": "dns_lookup",
    "C": "closing_connection",
    "L": "logging",
    "G": "graceful_finish",
    "I": "idle_cleanup",
    ".": "open_slot",
}

_COUNTERS_PATTERN = re.compile(
    r"Total\s+Accesses:\s*(\d+)"
    r".*?Total\s+kBytes:\s*(\d+(?:\.\d+)?)"
    r".*?BusyWorkers:\s*(\d+)"
    r".*?IdleWorkers:\s*(\d+)",
    re.IGNORECASE | re.DOTALL,
)
_SCOREBOARD_PATTERN = re.compile(r"Scoreboard:\s*([^\r\n]+)", re.IGNORECASE)
_EXCLUDED_SYMBOLS = {"\n", "\r"}

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawSample:
    total_requests: int
    total_bytes: int
    busy_workers: int
    idle_workers: int
    worker_states: dict[str, int] = field(default_factory=dict)

    @property
    def total_slots(self) -> int:
        return sum(self.worker_states.values())


def count_scoreboard(scoreboard: str) -> Counter[str]:
    """Count every slot symbol, known or not. Line breaks are not slots."""
    return Counter(char for char in scoreboard if char not in _EXCLUDED_SYMBOLS)


def scoreboard_histogram(scoreboard: str) -> dict[str, int]:
    counts = count_scoreboard(scoreboard)
    histogram = {name: counts.get(symbol, 0) for symbol, name in WORKER_STATES.items()}
    unknown = {symbol: count for symbol, count in counts.items() if symbol not in WORKER_STATES}
    if unknown:
        logger.debug("scoreboard_unknown_symbols", extra={"symbols": unknown})
    return histogram


def decode_status(body: str) -> RawSample:
    counters = _COUNTERS_PATTERN.search(body)
    scoreboard = _SCOREBOARD_PATTERN.search(body)
    if counters is None or scoreboard is None:
        raise ParseError()

    accesses, kbytes, busy, idle = counters.groups()
    return RawSample(
        total_requests=int(accesses),
        total_bytes=int(float(kbytes) * 1024),
        busy_workers=int(busy),
        idle_workers=int(idle),
        worker_states=scoreboard_histogram(scoreboard.group(1)),
    )
