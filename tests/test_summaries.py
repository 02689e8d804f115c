from datetime import datetime, time, timedelta

from babylog.summaries import (
    SUMMARY_MARKER,
    MAX_SUMMARY_COUNT,
    CompressedEvents,
    compress_events,
    decompress_events,
    expand_summary,
    is_recent,
    merge_compressed_events,
)

from conftest import make_event


def _at(day, h, m=0):
    return datetime.combine(day, time(h, m)).astimezone()


class TestCompressEvents:
    def test_recent_window(self, now):
        today = now.date()
        assert is_recent(_at(today, 0), now)
        assert is_recent(_at(today - timedelta(days=1), 0), now)
        assert not is_recent(_at(today - timedelta(days=2), 23, 59), now)
        assert is_recent(_at(today + timedelta(days=1), 9), now)

    def test_counts_per_day(self, now, old_day):
        events = [
            make_event("feeding", _at(old_day, 1)),
            make_event("feeding", _at(old_day, 5)),
            make_event("pooping", _at(old_day, 6)),
            make_event("peeing", _at(old_day - timedelta(days=1), 7)),
            make_event("feeding", now),
        ]
        compressed = compress_events(events, now)

        assert len(compressed.recent) == 1
        assert compressed.summaries == [
            {"date": old_day.isoformat(), "feeds": 2, "pees": 0, "poops": 1},
            {"date": (old_day - timedelta(days=1)).isoformat(), "feeds": 0, "pees": 1, "poops": 0},
        ]

    def test_unknown_type_still_creates_day(self, now, old_day):
        compressed = compress_events([make_event("bath", _at(old_day, 19))], now)
        assert compressed.summaries == [{"date": old_day.isoformat(), "feeds": 0, "pees": 0, "poops": 0}]


class TestExpandSummary:
    def test_spacing_per_type(self, old_day):
        events = expand_summary({"date": old_day.isoformat(), "feeds": 3, "pees": 2, "poops": 2})
        noon = _at(old_day, 12)

        feeds = [e["timestamp"] - noon for e in events if e["eventType"] == "feeding"]
        pees = [e["timestamp"] - noon for e in events if e["eventType"] == "peeing"]
        poops = [e["timestamp"] - noon for e in events if e["eventType"] == "pooping"]

        assert feeds == [timedelta(hours=0), timedelta(hours=1), timedelta(hours=2)]
        assert pees == [timedelta(hours=0), timedelta(hours=2)]
        assert poops == [timedelta(hours=0), timedelta(hours=3)]
        assert all(e[SUMMARY_MARKER] for e in events)

    def test_large_counts_stay_on_the_same_day(self, old_day):
        events = expand_summary({"date": old_day.isoformat(), "feeds": 30, "pees": 15, "poops": 10})

        assert len(events) == 55
        assert {e["timestamp"].astimezone().date() for e in events} == {old_day}

    def test_counts_are_clamped(self, old_day):
        events = expand_summary({"date": old_day.isoformat(), "feeds": 10**9, "pees": -5, "poops": 2})

        assert len(events) == MAX_SUMMARY_COUNT + 2
        assert {e["timestamp"].astimezone().date() for e in events} == {old_day}

    def test_missing_counters_are_zero(self, old_day):
        assert expand_summary({"date": old_day.isoformat()}) == []


class TestDecompressAndMerge:
    def test_decompress_sorts(self, now, old_day):
        recent = [make_event("peeing", now)]
        summaries = [{"date": old_day.isoformat(), "feeds": 1, "pees": 0, "poops": 0}]
        events = decompress_events(CompressedEvents(recent=recent, summaries=summaries))

        assert [e["eventType"] for e in events] == ["feeding", "peeing"]

    def test_merge_folds_aged_events_into_existing_days(self, now, old_day):
        existing = CompressedEvents(
            recent=[make_event("feeding", _at(old_day, 9))],
            summaries=[{"date": old_day.isoformat(), "feeds": 2, "pees": 1, "poops": 0}],
        )
        merged = merge_compressed_events(existing, [make_event("peeing", now)], now)

        assert [e["eventType"] for e in merged.recent] == ["peeing"]
        assert merged.summaries == [{"date": old_day.isoformat(), "feeds": 3, "pees": 1, "poops": 0}]
