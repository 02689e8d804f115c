import csv
import io
from datetime import datetime, timezone

from babylog.csv_export import EMPTY_EXPORT, events_to_csv


def test_empty():
    assert events_to_csv([]) == EMPTY_EXPORT
    assert events_to_csv(None) == EMPTY_EXPORT


def test_headers_and_escaping():
    events = [
        {"id": 1, "eventType": "feeding", "timestamp": datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc),
         "type": "formula", "amount": 120},
        {"id": 2, "eventType": "pooping", "timestamp": datetime(2024, 1, 15, 11, 0, tzinfo=timezone.utc),
         "consistency": 'soft, "seedy"', "color": "yellow"},
    ]
    text = events_to_csv(events)
    rows = list(csv.reader(io.StringIO(text)))

    assert rows[0] == ["ID", "Event Type", "Timestamp", "Type", "Amount (ml)", "Consistency", "Color"]
    assert rows[1][:2] == ["1", "feeding"]
    assert datetime.fromisoformat(rows[1][2]) == events[0]["timestamp"]
    assert rows[1][5] == ""
    assert rows[2][5] == 'soft, "seedy"'
    assert '"soft, ""seedy"""' in text


def test_blank_and_boolean_cells():
    events = [
        {"id": None, "eventType": "peeing", "timestamp": datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc), "wet": True},
        {"id": 4, "eventType": "peeing", "timestamp": datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc), "wet": False},
    ]
    rows = list(csv.reader(io.StringIO(events_to_csv(events))))

    assert rows[0] == ["ID", "Event Type", "Timestamp", "Wet"]
    assert rows[1][0] == "" and rows[1][3] == "true"
    assert rows[2][0] == "4" and rows[2][3] == "false"
    assert len(rows) == 3
