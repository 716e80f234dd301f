"""Token persistence outside the store, and cross-session synchronisation.

``TokenStorage`` plays the role of a browser's local storage shared by every
open tab: several ``SessionSync`` instances (one per tab/session) attach to
the same storage. A write notifies every *other* listener, never the writer,
and an unchanged value notifies nobody. ``FileTokenStorage`` persists to a
JSON file so separate processes can share a session; their changes are
picked up by ``poll()``, so consistency is eventual and the last writer wins.
"""
from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from portal.utils import get_logger
from .actions import TOKEN_KEY, get_token, storage_changed
from .store import Store

logger = get_logger(__name__)


@dataclass(frozen=True)
class StorageEvent:
    """``key`` is None when the whole storage was cleared."""
    key: Optional[str]
    old_value: Optional[str]
    new_value: Optional[str]


StorageListener = Callable[[StorageEvent], None]


class TokenStorage:
    def __init__(self):
        self._items: Dict[str, str] = {}
        self._listeners: List[Tuple[StorageListener, Any]] = []

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str, source: Any = None) -> None:
        old = self._items.get(key)
        if old == value:
            return
        self._items[key] = value
        self._changed()
        self._emit(StorageEvent(key, old, value), source)

    def remove_item(self, key: str, source: Any = None) -> None:
        if key not in self._items:
            return
        old = self._items.pop(key)
        self._changed()
        self._emit(StorageEvent(key, old, None), source)

    def clear(self, source: Any = None) -> None:
        if not self._items:
            return
        self._items.clear()
        self._changed()
        self._emit(StorageEvent(None, None, None), source)

    def subscribe(self, listener: StorageListener, owner: Any = None) -> Callable[[], None]:
        """Register ``listener``; writes made with ``source=owner`` skip it."""
        entry = (listener, owner)
        self._listeners.append(entry)

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)
        return unsubscribe

    def _emit(self, event: StorageEvent, source: Any) -> None:
        for listener, owner in list(self._listeners):
            if source is not None and owner is source:
                continue
            listener(event)

    def _changed(self) -> None:
        """Hook for persistent subclasses."""


class FileTokenStorage(TokenStorage):
    def __init__(self, path: str | os.PathLike):
        super().__init__()
        self.path = Path(path)
        self._items = self._read()

    def _read(self) -> Dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError:
            logger.warning("Token storage file is not valid JSON; ignoring it", path=str(self.path))
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _changed(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Write-then-rename so a concurrent reader never sees a partial file
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._items, fh)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def poll(self) -> List[StorageEvent]:
        """Re-read the file and emit events for keys another process changed."""
        current = self._read()
        previous = self._items
        self._items = current

        events: List[StorageEvent] = []
        if previous and not current:
            events.append(StorageEvent(None, None, None))
        else:
            for key in sorted(set(previous) | set(current)):
                old, new = previous.get(key), current.get(key)
                if old != new:
                    events.append(StorageEvent(key, old, new))
        for event in events:
            self._emit(event, source=None)
        return events


class SessionSync:
    """Keeps one store's session token and a shared storage in step."""

    def __init__(self, store: Store, storage: TokenStorage, token_key: str = TOKEN_KEY):
        self.store = store
        self.storage = storage
        self.token_key = token_key
        self._last_token = get_token(store.get_state())
        self._unsubscribe_store = store.subscribe(self._on_store_change)
        self._unsubscribe_storage = storage.subscribe(self._on_storage_event, owner=self)

    def hydrate(self) -> Optional[str]:
        """Load the persisted token (if any) into the store."""
        token = self.storage.get_item(self.token_key)
        if token and token != get_token(self.store.get_state()):
            self.store.dispatch(storage_changed(StorageEvent(TOKEN_KEY, None, token)))
        return token

    def _on_store_change(self) -> None:
        token = get_token(self.store.get_state())
        if token == self._last_token:
            return
        self._last_token = token
        if token:
            self.storage.set_item(self.token_key, token, source=self)
        else:
            self.storage.remove_item(self.token_key, source=self)

    def _on_storage_event(self, event: StorageEvent) -> None:
        if event.key is not None and event.key != self.token_key:
            return
        # storage_changed only knows the default key name
        self.store.dispatch(storage_changed(StorageEvent(TOKEN_KEY, event.old_value, event.new_value)))

    def close(self) -> None:
        self._unsubscribe_store()
        self._unsubscribe_storage()


__all__ = ["StorageEvent", "TokenStorage", "FileTokenStorage", "SessionSync"]
