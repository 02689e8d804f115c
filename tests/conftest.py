from datetime import datetime, time, timedelta

import pytest


@pytest.fixture
def now():
    """Fixed local 'now' at mid-afternoon so today/yesterday windows are unambiguous."""
    today = datetime.now().astimezone().date()
    return datetime.combine(today, time(15, 7, 42, 123456)).astimezone()


@pytest.fixture
def old_day(now):
    return now.date() - timedelta(days=3)


def make_event(event_type, ts, **fields):
    e = {"eventType": event_type, "timestamp": ts}
    e.update(fields)
    return e
