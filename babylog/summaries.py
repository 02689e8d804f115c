"""
Old-event summarization.

Events from today and yesterday are kept individually. Anything older is
folded into per-day counters, which expand back into approximate events on
decode. Folding is lossy: per-event times and optional fields are gone, and
event types without a counter are not counted at all.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from .timestamps import coerce_timestamp, date_key, local_noon, local_now

SUMMARY_MARKER = "_fromSummary"

# eventType -> DaySummary counter
COUNTER_FOR_TYPE: Dict[str, str] = {
    "feeding": "feeds",
    "peeing": "pees",
    "pooping": "poops",
}

# counter -> (eventType, spacing between synthesized events)
EXPANSION: Dict[str, tuple[str, timedelta]] = {
    "feeds": ("feeding", timedelta(hours=1)),
    "pees": ("peeing", timedelta(hours=2)),
    "poops": ("pooping", timedelta(hours=3)),
}

# Synthesized events live between noon and midnight of their own day.
EXPANSION_WINDOW = timedelta(hours=12)

# Upper bound per counter when expanding; summaries come from untrusted links.
MAX_SUMMARY_COUNT = 200


def _summary_count(summary: Dict[str, Any], counter: str) -> int:
    count = int(summary.get(counter) or 0)
    return max(0, min(count, MAX_SUMMARY_COUNT))


@dataclass
class CompressedEvents:
    recent: List[Dict[str, Any]] = field(default_factory=list)
    summaries: List[Dict[str, Any]] = field(default_factory=list)


def is_recent(ts: datetime, now: Optional[datetime] = None) -> bool:
    """True when ts falls on today or yesterday (local calendar), or later."""
    yesterday = local_now(now).date() - timedelta(days=1)
    return ts.astimezone().date() >= yesterday


def compress_events(events: List[Dict[str, Any]], now: Optional[datetime] = None) -> CompressedEvents:
    recent: List[Dict[str, Any]] = []
    by_date: Dict[str, Dict[str, Any]] = {}

    for e in events:
        ts = coerce_timestamp(e.get("timestamp"), now)
        if is_recent(ts, now):
            recent.append({**e, "timestamp": ts})
            continue

        key = date_key(ts)
        summary = by_date.get(key)
        if summary is None:
            summary = {"date": key, "feeds": 0, "pees": 0, "poops": 0}
            by_date[key] = summary

        counter = COUNTER_FOR_TYPE.get(str(e.get("eventType") or ""))
        if counter:
            summary[counter] += 1

    return CompressedEvents(recent=recent, summaries=list(by_date.values()))


def expand_summary(summary: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Synthesize approximate events for one DaySummary, starting at local noon."""
    noon = local_noon(date.fromisoformat(str(summary["date"])))
    out: List[Dict[str, Any]] = []
    for counter, (event_type, spacing) in EXPANSION.items():
        for i in range(_summary_count(summary, counter)):
            out.append(
                {
                    "eventType": event_type,
                    "timestamp": noon + (i * spacing) % EXPANSION_WINDOW,
                    SUMMARY_MARKER: True,
                }
            )
    return out


def _sort_key(e: Dict[str, Any]) -> datetime:
    return e["timestamp"]


def decompress_events(compressed: CompressedEvents) -> List[Dict[str, Any]]:
    """
    Recent events plus events rebuilt from summaries, sorted by timestamp.

    `compressed.recent` must already carry datetime timestamps.
    """
    events = list(compressed.recent)
    for summary in compressed.summaries:
        events.extend(expand_summary(summary))
    events.sort(key=_sort_key)
    return events


def merge_compressed_events(
    compressed: CompressedEvents,
    new_events: List[Dict[str, Any]],
    now: Optional[datetime] = None,
) -> CompressedEvents:
    """Add new events to already-compressed data; recent events that aged out get folded."""
    folded = compress_events([*compressed.recent, *new_events], now)

    merged: Dict[str, Dict[str, Any]] = {}
    for summary in [*compressed.summaries, *folded.summaries]:
        key = str(summary["date"])
        cur = merged.setdefault(key, {"date": key, "feeds": 0, "pees": 0, "poops": 0})
        for counter in EXPANSION:
            cur[counter] += int(summary.get(counter) or 0)

    return CompressedEvents(recent=folded.recent, summaries=list(merged.values()))
