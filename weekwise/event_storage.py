"""
Persistent Event Storage for Weekwise.

Abstract base class and implementations for storing event rows on disk.
Rows are plain dicts with the columns of the events table; times are UTC
text in DB_TIME_FORMAT so that string order is time order.
"""

import json
import os
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .debug_log import debug_print
from .errors import PersistenceError


DB_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

EVENT_COLUMNS = (
    "id", "name", "description", "location", "time",
    "duration", "frequency", "occurrence", "color",
)


def _debug_print(msg: str) -> None:
    debug_print("STORAGE", msg)


def _matches_text(row: dict, needle: str) -> bool:
    return any(needle in (row.get(column) or "").lower()
               for column in ("name", "description", "location"))


class EventStorageBackend(ABC):
    """
    Abstract base class for event storage backends.

    Implementations must serialize access themselves: the store is shared by
    the main control flow and a read-only background poller.
    """

    @abstractmethod
    def insert(self, row: dict) -> int:
        """Insert a new row and return its store-assigned id."""
        pass

    @abstractmethod
    def restore(self, row: dict) -> None:
        """Re-insert a row with its existing id."""
        pass

    @abstractmethod
    def fetch(self, event_id: int) -> Optional[dict]:
        """Get a single row by id."""
        pass

    @abstractmethod
    def fetch_all(self) -> list[dict]:
        """All rows ordered by time."""
        pass

    @abstractmethod
    def fetch_between(self, start: str, end: str, include_end: bool = False) -> list[dict]:
        """Rows with start <= time < end (or <= end), ordered by time."""
        pass

    @abstractmethod
    def fetch_by_name(self, name: str) -> list[dict]:
        """Rows whose name matches exactly, ordered by time."""
        pass

    @abstractmethod
    def search(self, needle: str, start: Optional[str] = None, end: Optional[str] = None) -> list[dict]:
        """
        Rows whose lowercased name/description/location contains `needle`
        (skipped when empty) and whose time lies in the inclusive range.
        """
        pass

    @abstractmethod
    def update(self, event_id: int, row: dict) -> bool:
        """Replace all columns of a row. Returns False if the id is unknown."""
        pass

    @abstractmethod
    def delete(self, event_id: int) -> bool:
        """Delete a row. Returns False if the id is unknown."""
        pass

    @abstractmethod
    def delete_by_name(self, name: str) -> int:
        """Delete all rows with this exact name; returns the count."""
        pass

    @abstractmethod
    def save_note(self, content: str, updated_at: str) -> None:
        """Replace the single stored note."""
        pass

    @abstractmethod
    def load_note(self) -> Optional[str]:
        """The stored note, or None if there is none."""
        pass

    @abstractmethod
    def close(self) -> None:
        pass


class SqliteEventStorage(EventStorageBackend):
    """
    SQLite event storage.

    One connection shared across threads; every statement runs under a lock.
    """

    def __init__(self, path: str = ":memory:"):
        self.path = str(path)
        self._lock = threading.Lock()
        try:
            if self.path != ":memory:":
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.create_function("PYLOWER", 1, lambda v: (v or "").lower(), deterministic=True)
            self._create_tables()
        except (sqlite3.Error, OSError) as e:
            raise PersistenceError(f"Cannot open database {self.path}", detail=str(e)) from e
        _debug_print(f"Initialized SQLite storage at {self.path}")

    def _create_tables(self) -> None:
        with self._conn:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    location TEXT NOT NULL DEFAULT '',
                    time TEXT NOT NULL,
                    duration REAL NOT NULL,
                    frequency INTEGER NOT NULL DEFAULT 0,
                    occurrence INTEGER NOT NULL DEFAULT 1,
                    color INTEGER NOT NULL DEFAULT 0
                )""")
            self._conn.execute("CREATE INDEX IF NOT EXISTS idx_events_time ON events (time)")
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS notes (
                    id INTEGER PRIMARY KEY,
                    content TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )""")

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Serialized access; commits on success, wraps sqlite errors."""
        with self._lock:
            try:
                with self._conn:
                    yield self._conn
            except sqlite3.Error as e:
                raise PersistenceError("Database operation failed", detail=str(e)) from e

    def _query(self, sql: str, params: tuple = ()) -> list[dict]:
        with self._transaction() as conn:
            return [dict(r) for r in conn.execute(sql, params).fetchall()]

    def insert(self, row: dict) -> int:
        with self._transaction() as conn:
            cursor = conn.execute(
                """INSERT INTO events (
                    name, description, location, time, duration, frequency, occurrence, color
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                tuple(row[c] for c in EVENT_COLUMNS[1:]),
            )
            return cursor.lastrowid

    def restore(self, row: dict) -> None:
        with self._transaction() as conn:
            conn.execute(
                f"INSERT INTO events ({', '.join(EVENT_COLUMNS)}) VALUES ({', '.join('?' * len(EVENT_COLUMNS))})",
                tuple(row[c] for c in EVENT_COLUMNS),
            )

    def fetch(self, event_id: int) -> Optional[dict]:
        rows = self._query("SELECT * FROM events WHERE id = ?", (event_id,))
        return rows[0] if rows else None

    def fetch_all(self) -> list[dict]:
        return self._query("SELECT * FROM events ORDER BY time ASC, id ASC")

    def fetch_between(self, start: str, end: str, include_end: bool = False) -> list[dict]:
        op = "<=" if include_end else "<"
        return self._query(
            f"SELECT * FROM events WHERE time >= ? AND time {op} ? ORDER BY time ASC, id ASC",
            (start, end),
        )

    def fetch_by_name(self, name: str) -> list[dict]:
        return self._query("SELECT * FROM events WHERE name = ? ORDER BY time ASC, id ASC", (name,))

    def search(self, needle: str, start: Optional[str] = None, end: Optional[str] = None) -> list[dict]:
        clauses = []
        params: list = []
        if needle:
            clauses.append(
                "(instr(PYLOWER(name), ?) > 0 OR instr(PYLOWER(description), ?) > 0"
                " OR instr(PYLOWER(location), ?) > 0)"
            )
            params.extend([needle] * 3)
        if start is not None:
            clauses.append("time >= ?")
            params.append(start)
        if end is not None:
            clauses.append("time <= ?")
            params.append(end)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return self._query(f"SELECT * FROM events {where} ORDER BY time ASC, id ASC", tuple(params))

    def update(self, event_id: int, row: dict) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                """UPDATE events SET
                    name = ?, description = ?, location = ?, time = ?,
                    duration = ?, frequency = ?, occurrence = ?, color = ?
                WHERE id = ?""",
                tuple(row[c] for c in EVENT_COLUMNS[1:]) + (event_id,),
            )
            return cursor.rowcount > 0

    def delete(self, event_id: int) -> bool:
        with self._transaction() as conn:
            return conn.execute("DELETE FROM events WHERE id = ?", (event_id,)).rowcount > 0

    def delete_by_name(self, name: str) -> int:
        with self._transaction() as conn:
            return conn.execute("DELETE FROM events WHERE name = ?", (name,)).rowcount

    def save_note(self, content: str, updated_at: str) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM notes")
            conn.execute("INSERT INTO notes (content, updated_at) VALUES (?, ?)", (content, updated_at))

    def load_note(self) -> Optional[str]:
        rows = self._query("SELECT content FROM notes ORDER BY updated_at DESC LIMIT 1")
        return rows[0]["content"] if rows else None

    def close(self) -> None:
        with self._lock:
            self._conn.close()


class JsonEventStorage(EventStorageBackend):
    """
    JSON file-based event storage.

    The whole document lives in memory and is rewritten on every mutation:
    {"next_id": N, "events": [...], "note": {"content": ..., "updated_at": ...}}
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._data = self._load()
        _debug_print(f"Initialized JSON storage at {self.path}")

    def _load(self) -> dict:
        if not self.path.exists():
            return {"next_id": 1, "events": [], "note": None}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Cannot read event file {self.path}", detail=str(e)) from e
        data.setdefault("events", [])
        data.setdefault("note", None)
        # Never hand out an id that is already in the file
        highest = max((row["id"] for row in data["events"]), default=0)
        data["next_id"] = max(data.get("next_id", 1), highest + 1)
        _debug_print(f"Loaded {len(data['events'])} events from {self.path}")
        return data

    def _commit(self, data: dict) -> None:
        """Write `data` to disk, then make it the in-memory document."""
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PersistenceError(f"Cannot write event file {self.path}", detail=str(e)) from e
        self._data = data

    def _with_events(self, events: list[dict], **changes) -> dict:
        return {**self._data, "events": events, **changes}

    def _sorted(self, rows) -> list[dict]:
        return [dict(r) for r in sorted(rows, key=lambda r: (r["time"], r["id"]))]

    def _index_of(self, event_id: int) -> Optional[int]:
        for i, row in enumerate(self._data["events"]):
            if row["id"] == event_id:
                return i
        return None

    def insert(self, row: dict) -> int:
        with self._lock:
            event_id = self._data["next_id"]
            events = self._data["events"] + [{**row, "id": event_id}]
            self._commit(self._with_events(events, next_id=event_id + 1))
            return event_id

    def restore(self, row: dict) -> None:
        with self._lock:
            if self._index_of(row["id"]) is not None:
                raise PersistenceError(f"Event id {row['id']} already exists")
            events = self._data["events"] + [dict(row)]
            self._commit(self._with_events(events, next_id=max(self._data["next_id"], row["id"] + 1)))

    def fetch(self, event_id: int) -> Optional[dict]:
        with self._lock:
            index = self._index_of(event_id)
            return dict(self._data["events"][index]) if index is not None else None

    def fetch_all(self) -> list[dict]:
        with self._lock:
            return self._sorted(self._data["events"])

    def fetch_between(self, start: str, end: str, include_end: bool = False) -> list[dict]:
        with self._lock:
            return self._sorted(
                r for r in self._data["events"]
                if r["time"] >= start and (r["time"] <= end if include_end else r["time"] < end)
            )

    def fetch_by_name(self, name: str) -> list[dict]:
        with self._lock:
            return self._sorted(r for r in self._data["events"] if r["name"] == name)

    def search(self, needle: str, start: Optional[str] = None, end: Optional[str] = None) -> list[dict]:
        with self._lock:
            return self._sorted(
                r for r in self._data["events"]
                if (not needle or _matches_text(r, needle))
                and (start is None or r["time"] >= start)
                and (end is None or r["time"] <= end)
            )

    def update(self, event_id: int, row: dict) -> bool:
        with self._lock:
            index = self._index_of(event_id)
            if index is None:
                return False
            events = list(self._data["events"])
            events[index] = {**row, "id": event_id}
            self._commit(self._with_events(events))
            return True

    def delete(self, event_id: int) -> bool:
        with self._lock:
            index = self._index_of(event_id)
            if index is None:
                return False
            events = list(self._data["events"])
            del events[index]
            self._commit(self._with_events(events))
            return True

    def delete_by_name(self, name: str) -> int:
        with self._lock:
            events = [r for r in self._data["events"] if r["name"] != name]
            removed = len(self._data["events"]) - len(events)
            if removed:
                self._commit(self._with_events(events))
            return removed

    def save_note(self, content: str, updated_at: str) -> None:
        with self._lock:
            self._commit({**self._data, "note": {"content": content, "updated_at": updated_at}})

    def load_note(self) -> Optional[str]:
        with self._lock:
            note = self._data.get("note")
            return note["content"] if note else None

    def close(self) -> None:
        pass


def get_default_storage_path() -> Path:
    """Get the default database path respecting XDG."""
    xdg_data = os.environ.get('XDG_DATA_HOME', os.path.expanduser('~/.local/share'))
    return Path(xdg_data) / 'weekwise' / 'events.db'


def create_storage_backend(path: Optional[Path] = None) -> EventStorageBackend:
    """Factory: JSON for a .json path, SQLite otherwise (":memory:" included)."""
    if path is None:
        path = get_default_storage_path()
    if str(path) != ":memory:" and Path(path).suffix.lower() == ".json":
        return JsonEventStorage(Path(path))
    return SqliteEventStorage(str(path))
