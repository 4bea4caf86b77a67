from __future__ import annotations

import copy
import json
import logging
import os
import threading

log = logging.getLogger(__name__)


class KeyValueStore:
    """Small JSON-file backed key-value store.

    The whole document is held in memory and rewritten on every ``set``.
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()
        self._data = self._load()

    def _load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except Exception as exc:
            log.warning("Failed to load store %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            log.warning("Ignoring store %s: top level is %s, not an object", self.path, type(data).__name__)
            return {}
        return data

    def has(self, key: str) -> bool:
        return key in self._data

    def get(self, key: str, default=None):
        if key not in self._data:
            return default
        # Callers get a copy so they cannot mutate persisted state behind our back
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value) -> None:
        self._data[key] = copy.deepcopy(value)
        self._save()

    def delete(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._save()

    def _save(self):
        try:
            payload = json.dumps(self._data, indent=4)
        except Exception as exc:
            log.warning("Failed to serialize %s: %s", self.path, exc)
            return

        directory = os.path.dirname(self.path)
        if directory:
            try:
                os.makedirs(directory, exist_ok=True)
            except Exception as exc:
                log.warning("Failed to ensure directory for %s: %s", self.path, exc)
                return
        tmp_path = f"{self.path}.tmp"
        try:
            with self._lock:
                with open(tmp_path, 'w', encoding='utf-8') as handle:
                    handle.write(payload)
                    handle.flush()
                    try:
                        os.fsync(handle.fileno())
                    except OSError:
                        pass
                os.replace(tmp_path, self.path)
        except Exception as exc:
            log.warning("Failed to persist %s: %s", self.path, exc)
            try:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
            except OSError:
                pass
