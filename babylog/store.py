"""
SQLite event store.

Each event is one row: eventType and timestamp get their own columns (for
ordering and filtering), every other field goes into a JSON `data` column.
Row ids are the surrogate event ids; any `id` sent by a client is replaced.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List

from .errors import EventNotFoundError
from .timestamps import coerce_timestamp, iso_to_dt, json_default

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event_type TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    data TEXT NOT NULL,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_events_timestamp ON events(timestamp);
CREATE INDEX IF NOT EXISTS idx_events_type ON events(event_type);
"""


def _utc_iso(value: Any) -> str:
    # One fixed format so TEXT ordering matches time ordering
    return coerce_timestamp(value).astimezone(timezone.utc).isoformat(timespec="milliseconds")


def _split(event: Dict[str, Any]) -> tuple[str, str, str]:
    rest = {k: v for k, v in event.items() if k not in ("id", "eventType", "timestamp")}
    event_type = str(event.get("eventType") or "")
    if not event_type:
        raise ValueError("eventType is required")
    return event_type, _utc_iso(event.get("timestamp")), json.dumps(rest, default=json_default)


def _row_to_event(row: sqlite3.Row) -> Dict[str, Any]:
    try:
        extra = json.loads(row["data"])
    except ValueError:
        logger.warning("Event %s has unreadable data column", row["id"])
        extra = {}
    if not isinstance(extra, dict):
        extra = {}
    return {
        "id": row["id"],
        "eventType": row["event_type"],
        "timestamp": iso_to_dt(row["timestamp"]),
        **extra,
    }


class EventStore:
    """Create/list/update/delete/replace-all over a single SQLite file."""

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self.init_db()

    def _get_conn(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        conn = self._get_conn()
        try:
            conn.executescript(SCHEMA)
            conn.commit()
        finally:
            conn.close()
        logger.info("Event database ready at %s", self.db_path)

    def list_events(self) -> List[Dict[str, Any]]:
        """All events, newest first."""
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT id, event_type, timestamp, data FROM events ORDER BY timestamp DESC, id DESC"
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_event(r) for r in rows]

    def _insert_all(self, conn: sqlite3.Connection, events: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        inserted: List[Dict[str, Any]] = []
        for e in events:
            event_type, ts, data = _split(e)
            cur = conn.execute(
                "INSERT INTO events (event_type, timestamp, data) VALUES (?, ?, ?)",
                (event_type, ts, data),
            )
            rest = {k: v for k, v in e.items() if k not in ("id", "eventType", "timestamp")}
            inserted.append({"id": cur.lastrowid, "eventType": event_type, "timestamp": iso_to_dt(ts), **rest})
        return inserted

    def add_events(self, events: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Insert one or more events in a single transaction; returns them with their new ids."""
        conn = self._get_conn()
        try:
            with conn:
                return self._insert_all(conn, events)
        finally:
            conn.close()

    def update_event(self, event_id: int, event: Dict[str, Any]) -> Dict[str, Any]:
        event_type, ts, data = _split(event)
        conn = self._get_conn()
        try:
            with conn:
                cur = conn.execute(
                    "UPDATE events SET event_type = ?, timestamp = ?, data = ? WHERE id = ?",
                    (event_type, ts, data, event_id),
                )
        finally:
            conn.close()
        if cur.rowcount == 0:
            raise EventNotFoundError(f"Event {event_id} not found")
        rest = {k: v for k, v in event.items() if k not in ("id", "eventType", "timestamp")}
        return {"id": event_id, "eventType": event_type, "timestamp": iso_to_dt(ts), **rest}

    def delete_event(self, event_id: int) -> None:
        conn = self._get_conn()
        try:
            with conn:
                cur = conn.execute("DELETE FROM events WHERE id = ?", (event_id,))
        finally:
            conn.close()
        if cur.rowcount == 0:
            raise EventNotFoundError(f"Event {event_id} not found")

    def sync_events(self, events: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Replace the whole table with `events` atomically."""
        conn = self._get_conn()
        try:
            with conn:
                conn.execute("DELETE FROM events")
                inserted = self._insert_all(conn, events)
        finally:
            conn.close()
        logger.info("Synced %s events", len(inserted))
        return inserted
