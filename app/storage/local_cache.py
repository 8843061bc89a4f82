"""Pulseboard — Local Fallback Cache.

A small persisted key/value store (string → string, values JSON-encoded)
kept in one file. It is the last fallback tier and a write-through mirror of
whatever the other tiers returned. If the file cannot be read or written the
cache keeps working in memory for the rest of the session.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from app.config import settings
from app.core.logging import get_logger

logger = get_logger("storage.local_cache")

# ── Well-known keys ──
USER_ID_KEY = "userId"
PROFILES_KEY = "socialProfiles"
SUGGESTIONS_KEY = "contentSuggestions"
METRICS_KEY = "socialMetrics"
MOCK_IMPORTED_KEY = "mockDataImported"


class LocalCache:
    """File-backed key/value store; last write wins."""

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or settings.cache_path)
        self.available = True
        self._items: Dict[str, str] = {}
        self._load()

    def _degrade(self, error: Exception) -> None:
        if self.available:
            logger.warning(f"Local cache unavailable, continuing in memory only — {error}")
        self.available = False

    def _load(self) -> None:
        try:
            if not self.path.exists():
                return
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            self._degrade(e)
            return
        try:
            data = json.loads(raw) if raw.strip() else {}
        except ValueError as e:
            logger.warning(f"Discarding corrupt cache file {self.path}: {e}")
            return
        if isinstance(data, dict):
            self._items = {str(k): v if isinstance(v, str) else json.dumps(v) for k, v in data.items()}

    def _persist(self) -> None:
        if not self.available:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_name(self.path.name + ".tmp")
            tmp.write_text(json.dumps(self._items), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            self._degrade(e)

    # ── Raw string interface ──

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value
        self._persist()

    def remove_item(self, key: str) -> None:
        if self._items.pop(key, None) is not None:
            self._persist()

    def clear(self) -> None:
        self._items.clear()
        self._persist()

    # ── JSON helpers ──

    def get_json(self, key: str, default: Any = None) -> Any:
        """Decoded value for ``key``, or ``default`` if absent or unreadable."""
        raw = self.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.warning(f"Error decoding cached {key}: {e}")
            return default

    def set_json(self, key: str, value: Any) -> bool:
        """Store ``value`` as JSON. False when it only reached memory."""
        self.set_item(key, json.dumps(value, default=str))
        return self.available
