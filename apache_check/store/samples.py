from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, Protocol

from apache_check.status.rates import StoredSample
from apache_check.utils.errors import SampleStoreError


logger = logging.getLogger(__name__)


class SampleStore(Protocol):
    def load(self, key: str) -> StoredSample | None: ...

    def save(self, key: str, sample: StoredSample) -> None: ...


def sample_key(parts: Iterable[object]) -> str:
    payload = json.dumps([("" if part is None else str(part)) for part in parts])
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class MemorySampleStore:
    def __init__(self) -> None:
        self._samples: dict[str, StoredSample] = {}

    def load(self, key: str) -> StoredSample | None:
        return self._samples.get(key)

    def save(self, key: str, sample: StoredSample) -> None:
        self._samples[key] = sample


class FileSampleStore:
    """One JSON document per check identity inside ``root``."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, key: str) -> Path:
        return self._root / f"{key}.json"

    def load(self, key: str) -> StoredSample | None:
        path = self.path_for(key)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            raise SampleStoreError(f"unable to read {path}: {exc}") from exc
        try:
            return StoredSample.from_dict(payload)
        except (KeyError, TypeError, ValueError) as exc:
            # A corrupt state file is treated as a cold start.
            logger.warning("sample_discarded", extra={"path": str(path), "detail": str(exc)})
            return None

    def save(self, key: str, sample: StoredSample) -> None:
        path = self.path_for(key)
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._root, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(sample.as_dict(), handle)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise SampleStoreError(f"unable to write {path}: {exc}") from exc
