"""
KEY-VALUE STORAGE MODULE
========================

The server-side stand-in for the browser's localStorage. Chat sessions only
ever read and write plain strings under fixed keys (calendar_ai_usage,
global_ai_summary, ...), so the interface is just get / set / delete.

  InMemoryStore - dict-backed; used by tests and throwaway sessions.
  JsonFileStore - one JSON object on disk (database/chat_state/state.json);
                  used by the server so counters survive restarts.

Reads never raise on bad data: a missing or corrupted file is treated as an
empty store and logged. Callers still guard their own parsing of values.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional


logger = logging.getLogger("FitChat")


class KeyValueStore(ABC):
    """Persisted string key-value store."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored string, or None if the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key; no-op if absent."""


class InMemoryStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """
    Keeps all keys in one JSON file. The file is re-read on every get so two
    server processes sharing a directory see each other's writes.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not read chat state file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Chat state file %s is not a JSON object; ignoring it", self.path)
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        tmp_path.replace(self.path)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = str(value)
            self._save(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._save(data)
