"""CSV export of the event log."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pandas as pd

from .timestamps import coerce_timestamp, dt_to_iso

EMPTY_EXPORT = "No events to export"

LEADING_FIELDS = ["id", "eventType", "timestamp"]

HEADER_MAP = {
    "id": "ID",
    "eventType": "Event Type",
    "timestamp": "Timestamp",
    "type": "Type",
    "amount": "Amount (ml)",
    "consistency": "Consistency",
    "notes": "Notes",
}


def _header(field: str) -> str:
    return HEADER_MAP.get(field) or field[:1].upper() + field[1:]


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def events_to_csv(events: Optional[List[Dict[str, Any]]]) -> str:
    """Columns: id, eventType, timestamp, then every other field in first-seen order."""
    if not events:
        return EMPTY_EXPORT

    fields = list(LEADING_FIELDS)
    for e in events:
        for key in e:
            if key not in fields:
                fields.append(key)

    rows = []
    for e in events:
        row = {f: _cell(e.get(f)) for f in fields}
        row["timestamp"] = dt_to_iso(coerce_timestamp(e.get("timestamp")))
        rows.append(row)

    df = pd.DataFrame(rows, columns=fields).rename(columns=_header)
    return df.to_csv(index=False, lineterminator="\n").rstrip("\n")
