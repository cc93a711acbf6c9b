"""
File-backed JSON document store for memories and comments.

The whole dataset lives in one JSON document:

    {"memories": [...], "comments": [...]}

Reads and read-modify-write cycles go through a per-file lock so threadpool
workers never interleave writes. Saves are atomic (temp file + replace).
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from tripbook.core.config import settings
from tripbook.core.errors import DataStoreError

logger = logging.getLogger(__name__)


def _empty_document() -> dict[str, list]:
    return {"memories": [], "comments": []}


class JsonStore:
    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.RLock()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            self._write(_empty_document())
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error("Cannot read data file %s: %s", self.path, exc)
            raise DataStoreError(str(self.path)) from exc
        if not isinstance(data, dict):
            logger.error("Data file %s does not hold a JSON object", self.path)
            raise DataStoreError(str(self.path))
        data.setdefault("memories", [])
        data.setdefault("comments", [])
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def load(self) -> dict[str, Any]:
        """Return a snapshot of the document."""
        with self._lock:
            return self._read()

    @contextmanager
    def transaction(self) -> Iterator[dict[str, Any]]:
        """
        Yield the document for mutation and persist it on normal exit.
        Nothing is written when the block raises.
        """
        with self._lock:
            data = self._read()
            yield data
            self._write(data)

    def ping(self) -> bool:
        try:
            self.load()
        except DataStoreError:
            return False
        return True


_stores: dict[Path, JsonStore] = {}
_stores_lock = threading.Lock()


def store_for(path: Path) -> JsonStore:
    """One JsonStore (and therefore one lock) per resolved data file."""
    key = Path(path).resolve()
    with _stores_lock:
        if key not in _stores:
            _stores[key] = JsonStore(key)
        return _stores[key]


def get_store() -> JsonStore:
    """FastAPI dependency returning the configured store."""
    return store_for(settings.data_path)
