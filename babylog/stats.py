"""
Statistics and chart data.

All day boundaries are local calendar days.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

import pandas as pd

from .summaries import SUMMARY_MARKER
from .timestamps import coerce_timestamp, local_now

DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


@dataclass
class FeedInterval:
    average_minutes: Optional[float]
    formatted: str


def format_time_interval(minutes: float) -> str:
    """45 -> "45m", 120 -> "2h", 150 -> "2h 30m"."""
    if minutes < 60:
        return f"{round(minutes)}m"
    hours = int(minutes // 60)
    mins = round(minutes % 60)
    if mins == 60:
        hours, mins = hours + 1, 0
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"


def _ts(e: Dict[str, Any]) -> datetime:
    return coerce_timestamp(e.get("timestamp"))


def average_time_between_feeds(events: Optional[List[Dict[str, Any]]]) -> FeedInterval:
    feeds = sorted(_ts(e) for e in (events or []) if e.get("eventType") == "feeding")
    if len(feeds) < 2:
        return FeedInterval(None, "N/A (need at least 2 feeds)")

    gaps = [(b - a).total_seconds() / 60 for a, b in zip(feeds, feeds[1:])]
    avg = sum(gaps) / len(gaps)
    return FeedInterval(avg, format_time_interval(avg))


def calculate_statistics(events: Optional[List[Dict[str, Any]]]) -> Dict[str, Any]:
    return {
        "averageTimeBetweenFeeds": average_time_between_feeds(events),
    }


# =============================================================================
# Chart data
# =============================================================================
def filter_today_events(events: Optional[List[Dict[str, Any]]], now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    if not events:
        return []
    today = local_now(now).date()
    return [e for e in events if _ts(e).astimezone().date() == today]


def day_label(day: date, days_ago: int) -> str:
    if days_ago == 0:
        return "Today"
    if days_ago == 1:
        return "Yesterday"
    return f"{DAY_NAMES[day.weekday()]} {day.month}/{day.day}"


def group_events_by_day(events: Optional[List[Dict[str, Any]]], now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Last 7 rolling days, oldest first, with per-type counts."""
    if not events:
        return []

    today = local_now(now).date()
    by_day: Dict[Any, List[Dict[str, Any]]] = {}
    for e in events:
        by_day.setdefault(_ts(e).astimezone().date(), []).append(e)

    days: List[Dict[str, Any]] = []
    for i in range(6, -1, -1):
        d = today - timedelta(days=i)
        day_events = by_day.get(d, [])
        days.append(
            {
                "date": d,
                "dateKey": d.isoformat(),
                "label": day_label(d, i),
                "feeds": sum(1 for e in day_events if e.get("eventType") == "feeding"),
                "pees": sum(1 for e in day_events if e.get("eventType") == "peeing"),
                "poops": sum(1 for e in day_events if e.get("eventType") == "pooping"),
                "events": day_events,
            }
        )
    return days


def hour_of_day(timestamp: Any) -> float:
    """Local hour including the minute fraction, e.g. 14:30 -> 14.5."""
    dt = coerce_timestamp(timestamp).astimezone()
    return dt.hour + dt.minute / 60


def events_to_frame(events: Optional[List[Dict[str, Any]]]) -> pd.DataFrame:
    """One row per event: time (local, tz-naive), day, hour, eventType, amount, fromSummary."""
    rows = []
    for e in events or []:
        dt = _ts(e).astimezone().replace(tzinfo=None)
        amount = e.get("amount")
        try:
            amount = float(amount) if amount is not None and amount != "" else None
        except (TypeError, ValueError):
            amount = None
        rows.append(
            {
                "time": dt,
                "day": dt.date(),
                "hour": dt.hour + dt.minute / 60,
                "eventType": str(e.get("eventType") or ""),
                "type": e.get("type"),
                "amount": amount,
                "fromSummary": bool(e.get(SUMMARY_MARKER, False)),
            }
        )
    cols = ["time", "day", "hour", "eventType", "type", "amount", "fromSummary"]
    return pd.DataFrame(rows, columns=cols)
