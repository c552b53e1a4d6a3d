"""Local key/value storage for session state and offline data."""

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

TOKEN_KEY = "sparkvibe_token"
USER_KEY = "sparkvibe_user"
PENDING_SYNC_KEY = "sparkvibe_pending_sync"
LAST_SYNC_KEY = "sparkvibe_last_sync"


class LocalStorage:
    """
    String key/value store with the semantics of browser local storage.

    Values are strings; structured data goes through ``get_json``/``set_json``.
    When a path is given every mutation is written through to a JSON file so
    session state survives restarts.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else None
        self._items: Dict[str, str] = {}
        if self.path is not None:
            self._load()

    def _load(self):
        """Load items from disk, starting empty on a missing or corrupt file."""
        if not self.path.exists():
            return

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable storage file {self.path}: {e}")
            return

        if isinstance(data, dict):
            self._items = {str(k): str(v) for k, v in data.items()}

    def _save(self):
        if self.path is None:
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(self._items), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str):
        self._items[key] = str(value)
        self._save()

    def remove_item(self, key: str):
        if self._items.pop(key, None) is not None:
            self._save()

    def clear(self):
        self._items.clear()
        self._save()

    def keys(self) -> List[str]:
        return list(self._items.keys())

    def __contains__(self, key: str) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    # JSON helpers

    def get_json(self, key: str, default: Any = None) -> Any:
        """Get a JSON value, returning ``default`` when absent or malformed."""
        raw = self.get_item(key)
        if raw is None:
            return default

        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return default

    def set_json(self, key: str, value: Any):
        self.set_item(key, json.dumps(value))

    # Session

    def get_token(self) -> Optional[str]:
        return self.get_item(TOKEN_KEY)

    def get_user(self) -> Optional[Dict[str, Any]]:
        """Get the stored user, only while a token is also stored."""
        if not self.get_token():
            return None
        user = self.get_json(USER_KEY)
        return user if isinstance(user, dict) else None

    def set_user(self, user: Dict[str, Any]):
        self.set_json(USER_KEY, user)

    def set_session(self, token: str, user: Dict[str, Any]):
        self.set_item(TOKEN_KEY, token)
        self.set_json(USER_KEY, user)

    def clear_session(self):
        self.remove_item(TOKEN_KEY)
        self.remove_item(USER_KEY)

    # Offline outbox

    def pending_items(self) -> List[Dict[str, Any]]:
        items = self.get_json(PENDING_SYNC_KEY, [])
        return items if isinstance(items, list) else []

    def queue_pending(self, method: str, endpoint: str, data: Any) -> Dict[str, Any]:
        """Append a write made while offline for later reconciliation."""
        item = {
            "method": method,
            "endpoint": endpoint,
            "data": data,
            "queuedAt": time.time(),
        }
        items = self.pending_items()
        items.append(item)
        self.set_json(PENDING_SYNC_KEY, items)
        return item

    def replace_pending(self, items: List[Dict[str, Any]]):
        if items:
            self.set_json(PENDING_SYNC_KEY, items)
        else:
            self.remove_item(PENDING_SYNC_KEY)

    def mark_synced(self, timestamp: Optional[float] = None):
        self.set_item(LAST_SYNC_KEY, str(timestamp if timestamp is not None else time.time()))

    def last_synced(self) -> Optional[float]:
        raw = self.get_item(LAST_SYNC_KEY)
        try:
            return float(raw) if raw is not None else None
        except ValueError:
            return None
