# database/manager.py

import json
import logging
import threading
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

from core.exceptions import StoreError

logger = logging.getLogger(__name__)

LAST_OPENED_DATE_KEY = "lastOpenedDate"
ROLLOVER_PROGRESS_KEY = "rolloverProgress"
SESSION_KEY = "session"


class LocalSettings:
    """
    String-keyed settings of this installation, kept in one JSON file.

    Every write goes to disk immediately through a temporary file, so the
    values survive a crash or restart of the process.
    A write that cannot reach the disk raises StoreError and leaves the
    previous value in place.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.RLock()
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            broken = self.path.with_suffix(".corrupted")
            self.path.replace(broken)
            logger.error(f"❌ Settings file unreadable ({e}), moved to {broken}")
            return {}
        if not isinstance(data, dict):
            logger.warning("⚠️ Settings file has an unexpected format, starting empty")
            return {}
        return data

    def _save(self) -> None:
        temp_file = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(exist_ok=True, parents=True)
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(self._data, f, ensure_ascii=False, indent=2)
            temp_file.replace(self.path)
        except OSError as e:
            logger.error(f"❌ Cannot save settings to {self.path}: {e}")
            raise StoreError(f"Cannot save settings to {self.path}: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            previous = dict(self._data)
            self._data[key] = value
            try:
                self._save()
            except StoreError:
                self._data = previous
                raise

    def delete(self, key: str) -> None:
        with self._lock:
            if key not in self._data:
                return
            previous = dict(self._data)
            del self._data[key]
            try:
                self._save()
            except StoreError:
                self._data = previous
                raise

    def get_date(self, key: str) -> Optional[date]:
        raw = self.get(key)
        if not raw:
            return None
        try:
            return date.fromisoformat(raw)
        except (TypeError, ValueError):
            logger.warning(f"⚠️ Ignoring malformed date in setting {key}: {raw!r}")
            return None

    def set_date(self, key: str, value: date) -> None:
        self.set(key, value.isoformat())
