"""
storage/json_store.py

Tiny JSON storage layer for demo/MVP.

- One document on disk with the same keys the browser key-value store used:
  ``users``, ``reports``, ``initialized``
- Atomic writes to reduce corruption risk
- Re-reads the file on every operation, so several app processes see each
  other's writes (no cross-process locking though)

NOT for real PHI usage. Use the SQLite backend for encrypted storage.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from storage.repository import DocumentStore, empty_document

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path("data") / "medichain.json"


def _atomic_write_json(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
    tmp.replace(path)


class JsonStore(DocumentStore):
    def __init__(self, path: Path = DEFAULT_DB_PATH):
        super().__init__()
        self.path = Path(path)
        self._ensure_file()

    def _ensure_file(self) -> None:
        if self.path.exists():
            return
        _atomic_write_json(self.path, empty_document())
        logger.info("Created JSON store at %s", self.path)

    def load(self) -> dict:
        return json.loads(self.path.read_text(encoding="utf-8"))

    def save(self, doc: dict) -> None:
        _atomic_write_json(self.path, doc)
