"""
Key/value stores holding JSON values.

FileKV survives restarts (the persistent store); MemoryKV lives as long as
the process (the tab-scoped store).
"""

import json
import logging
import os
import tempfile
from typing import Any, Dict

from errors import StoreError

logger = logging.getLogger(__name__)


class MemoryKV:
    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str, default: Any = None) -> Any:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else default

    def set(self, key: str, value: Any) -> None:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StoreError("Could not save data locally") from e

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class FileKV:
    """One JSON file per key inside `directory`."""

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def get(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        if not os.path.exists(path):
            return default
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Storage read error for %s: %s", key, e)
            return default

    def set(self, key: str, value: Any) -> None:
        tmp = None
        try:
            fd, tmp = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f, ensure_ascii=False)
            os.replace(tmp, self._path(key))
        except (OSError, TypeError, ValueError) as e:
            logger.error("Storage write error for %s: %s", key, e)
            if tmp and os.path.exists(tmp):
                os.remove(tmp)
            raise StoreError("Could not save data locally") from e

    def remove(self, key: str) -> None:
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass
