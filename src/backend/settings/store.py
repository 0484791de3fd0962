from __future__ import annotations

import json
import logging
import threading
from pathlib import Path

from .models import StorageSettings


logger = logging.getLogger(__name__)


class SettingsStore:
    def __init__(self, *, path: Path) -> None:
        self._path = path
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> StorageSettings:
        with self._lock:
            if not self._path.exists():
                return StorageSettings()

            try:
                raw = json.loads(self._path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.warning("Ignoring unreadable settings file %s: %s", self._path, exc)
                return StorageSettings()

            if not isinstance(raw, dict):
                return StorageSettings()

            return StorageSettings.from_persist_dict(raw)

    def save(self, settings: StorageSettings) -> None:
        payload = settings.to_persist_dict()

        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
            tmp_path.replace(self._path)
