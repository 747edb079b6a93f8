"""Persistence backends for the fan ledger.

A backend stores one snapshot: a JSON-compatible dict keyed by fan address.
``LedgerStore`` calls ``load()`` once at startup and ``save(snapshot)`` after
every mutation, always with the complete document.

``MemoryBackend`` keeps the snapshot in a Python dict and is what the tests
use; ``JsonFileBackend`` is the default for local runs.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

Snapshot = Dict[str, Dict[str, Any]]


class StorageBackend:
    """Interface for ledger persistence."""

    def load(self) -> Snapshot:
        raise NotImplementedError

    def save(self, snapshot: Snapshot) -> None:
        raise NotImplementedError

    def describe(self) -> str:
        return type(self).__name__


class MemoryBackend(StorageBackend):
    def __init__(self, initial: Optional[Snapshot] = None):
        self._snapshot: Snapshot = copy.deepcopy(initial) if initial else {}
        self.save_count = 0

    def load(self) -> Snapshot:
        return copy.deepcopy(self._snapshot)

    def save(self, snapshot: Snapshot) -> None:
        self._snapshot = copy.deepcopy(snapshot)
        self.save_count += 1

    def describe(self) -> str:
        return "memory"


class JsonFileBackend(StorageBackend):
    """Whole-document JSON file.

    Writes go to a temporary file in the same directory which is then renamed
    over the target, so readers never observe a partially written ledger.
    """

    def __init__(self, path: str):
        self.path = os.path.abspath(path)

    def load(self) -> Snapshot:
        if not os.path.exists(self.path):
            logger.info(f"Ledger file {self.path} not found, starting empty")
            return {}

        with open(self.path, "r", encoding="utf-8") as f:
            raw = f.read()
        if not raw.strip():
            return {}

        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"Ledger file {self.path} must contain a JSON object")
        return data

    def save(self, snapshot: Snapshot) -> None:
        directory = os.path.dirname(self.path)
        os.makedirs(directory, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(prefix=".ledger-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def describe(self) -> str:
        return f"json:{self.path}"
