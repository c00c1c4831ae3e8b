"""
Durable key-value storage for session data.

The console keeps its session in a small JSON document on disk so it
survives between invocations. Every write replaces the file atomically.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

from shared.logging import get_logger


class DurableStorage:
    """String key-value store interface used by the session state."""

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_items(self, items: Dict[str, str]) -> None:
        raise NotImplementedError

    def remove_items(self, keys: Iterable[str]) -> None:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        self.set_items({key: value})

    def remove_item(self, key: str) -> None:
        self.remove_items([key])


class MemoryStorage(DurableStorage):
    """In-process storage, used by tests and one-shot scripts."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_items(self, items: Dict[str, str]) -> None:
        self._data.update(items)

    def remove_items(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    def snapshot(self) -> Dict[str, str]:
        return dict(self._data)


class FileStorage(DurableStorage):
    """JSON-file backed storage."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        self.logger = get_logger("console.storage")
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            self.logger.warning("Unreadable session file, ignoring", path=str(self.path), error=str(e))
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".session-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle)
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set_items(self, items: Dict[str, str]) -> None:
        with self._lock:
            data = self._read()
            data.update(items)
            self._write(data)

    def remove_items(self, keys: Iterable[str]) -> None:
        with self._lock:
            data = self._read()
            changed = False
            for key in keys:
                if key in data:
                    del data[key]
                    changed = True
            if not changed:
                return
            if data:
                self._write(data)
            else:
                self.path.unlink(missing_ok=True)
