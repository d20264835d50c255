"""Key-value store backends.

All tracker state is persisted as JSON text under string keys. Two
backends share one interface:

* :class:`MemoryKeyValueStore` keeps everything in a dict (tests, demos)
* :class:`SqliteKeyValueStore` keeps a single ``kv_store`` table on disk

Every write publishes a :class:`StorageEvent` to subscribers other than the
session that made the write, which is how one session learns that another
one changed a shared record. Bound-method subscribers are held weakly, so
a session that is garbage collected drops out of the listener list.
"""

from __future__ import annotations

import sqlite3
import threading
import weakref
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union

from .config import STORE_PATH, ensure_data_directories
from .exceptions import StorageError


@dataclass(frozen=True)
class StorageEvent:
    """A change to one key. ``new_value`` is ``None`` for removals."""
    key: str
    old_value: Optional[str]
    new_value: Optional[str]
    origin: Optional[str] = None


Listener = Callable[[StorageEvent], None]


class KeyValueStore(ABC):
    """Interface shared by store backends, plus change notification."""

    def __init__(self) -> None:
        self._listeners: List[Tuple[Optional[str], Callable[[], Optional[Listener]]]] = []
        self._listener_lock = threading.RLock()

    # -- backend hooks ------------------------------------------------------

    @abstractmethod
    def _read(self, key: str) -> Optional[str]:
        """Return the stored value or ``None``."""

    @abstractmethod
    def _write(self, key: str, value: str) -> None:
        """Insert or replace one value."""

    @abstractmethod
    def _delete(self, key: str) -> None:
        """Remove one key; missing keys are ignored."""

    @abstractmethod
    def _all_keys(self) -> List[str]:
        """Every stored key, in any order."""

    # -- public API ---------------------------------------------------------

    def get_item(self, key: str) -> Optional[str]:
        return self._read(key)

    def set_item(self, key: str, value: str, origin: Optional[str] = None) -> None:
        old_value = self._read(key)
        self._write(key, value)
        self._publish(StorageEvent(key, old_value, value, origin))

    def remove_item(self, key: str, origin: Optional[str] = None) -> None:
        old_value = self._read(key)
        if old_value is None:
            return
        self._delete(key)
        self._publish(StorageEvent(key, old_value, None, origin))

    def keys(self, prefix: str = '') -> List[str]:
        return sorted(key for key in self._all_keys() if key.startswith(prefix))

    @property
    def listener_count(self) -> int:
        """Subscriptions whose listener is still alive."""
        with self._listener_lock:
            return sum(1 for _, ref in self._listeners if ref() is not None)

    def subscribe(self, listener: Listener, session_id: Optional[str] = None) -> Callable[[], None]:
        """Register ``listener`` for writes made by other sessions.

        Bound methods are referenced weakly: once their object is collected
        the subscription disappears on its own. Plain functions are kept
        alive until unsubscribed.

        Returns a callable that removes the subscription.
        """
        def unsubscribe(_ref=None) -> None:
            with self._listener_lock:
                if entry in self._listeners:
                    self._listeners.remove(entry)

        if hasattr(listener, '__self__') and hasattr(listener, '__func__'):
            ref = weakref.WeakMethod(listener, unsubscribe)
        else:
            ref = lambda: listener  # noqa: E731
        entry = (session_id, ref)
        with self._listener_lock:
            self._listeners.append(entry)
        return unsubscribe

    def _publish(self, event: StorageEvent) -> None:
        with self._listener_lock:
            listeners = list(self._listeners)
        for session_id, ref in listeners:
            if event.origin is not None and session_id == event.origin:
                continue
            listener = ref()
            if listener is not None:
                listener(event)


class MemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__()
        self._data: Dict[str, str] = dict(initial or {})

    def _read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def _write(self, key: str, value: str) -> None:
        self._data[key] = value

    def _delete(self, key: str) -> None:
        self._data.pop(key, None)

    def _all_keys(self) -> List[str]:
        return list(self._data)


SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;

CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT
);
"""


class SqliteKeyValueStore(KeyValueStore):
    """SQLite-backed store holding one row per key.

    sqlite3 errors are re-raised as :class:`StorageError` so callers only
    deal with the tracker's own exception types.
    """

    def __init__(self, db_path: Union[str, Path, None] = None):
        super().__init__()
        self.db_path = Path(db_path) if db_path else STORE_PATH
        self._init_db()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        if self.db_path == STORE_PATH:
            ensure_data_directories()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as e:
            raise StorageError(f"Failed to open store at {self.db_path}: {e}") from e
        try:
            yield conn
        finally:
            conn.close()

    def _init_db(self) -> None:
        try:
            with self.connect() as conn:
                conn.executescript(SCHEMA_SQL)
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to initialise store at {self.db_path}: {e}") from e

    def _read(self, key: str) -> Optional[str]:
        try:
            with self.connect() as conn:
                row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read {key}: {e}", key=key) from e
        return row[0] if row else None

    def _write(self, key: str, value: str) -> None:
        stamp = datetime.now(timezone.utc).isoformat()
        try:
            with self.connect() as conn:
                conn.execute(
                    "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
                    (key, value, stamp),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to write {key}: {e}", key=key) from e

    def _delete(self, key: str) -> None:
        try:
            with self.connect() as conn:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to delete {key}: {e}", key=key) from e

    def _all_keys(self) -> List[str]:
        try:
            with self.connect() as conn:
                rows = conn.execute("SELECT key FROM kv_store").fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to list keys: {e}") from e
        return [row[0] for row in rows]
