from datetime import datetime, time, timedelta

import pytest

from babylog.stats import (
    average_time_between_feeds,
    calculate_statistics,
    events_to_frame,
    filter_today_events,
    format_time_interval,
    group_events_by_day,
    hour_of_day,
)

from conftest import make_event


def _at(day, h, m=0):
    return datetime.combine(day, time(h, m)).astimezone()


class TestFeedIntervals:
    def test_needs_two_feeds(self, now):
        result = average_time_between_feeds([make_event("feeding", now), make_event("peeing", now)])
        assert result.average_minutes is None
        assert result.formatted == "N/A (need at least 2 feeds)"

    def test_average_ignores_order_and_other_types(self, now):
        day = now.date()
        events = [
            make_event("feeding", _at(day, 14)),
            make_event("peeing", _at(day, 9)),
            make_event("feeding", _at(day, 8)),
            make_event("feeding", _at(day, 11)),
        ]
        result = average_time_between_feeds(events)

        assert result.average_minutes == pytest.approx(180)
        assert result.formatted == "3h"

    def test_iso_strings_are_accepted(self):
        events = [
            {"eventType": "feeding", "timestamp": "2024-01-15T10:00:00Z"},
            {"eventType": "feeding", "timestamp": "2024-01-15T12:30:00Z"},
        ]
        assert calculate_statistics(events)["averageTimeBetweenFeeds"].formatted == "2h 30m"

    @pytest.mark.parametrize("minutes,text", [(45, "45m"), (60, "1h"), (150, "2h 30m"), (119.8, "2h")])
    def test_format(self, minutes, text):
        assert format_time_interval(minutes) == text


class TestChartData:
    def test_filter_today(self, now):
        today = now.date()
        events = [
            make_event("feeding", _at(today, 0, 1)),
            make_event("feeding", _at(today - timedelta(days=1), 23, 59)),
            make_event("peeing", _at(today, 23, 30)),
        ]
        assert [e["timestamp"].hour for e in filter_today_events(events, now)] == [0, 23]
        assert filter_today_events([], now) == []

    def test_group_by_day(self, now):
        today = now.date()
        events = [
            make_event("feeding", _at(today, 8)),
            make_event("feeding", _at(today, 11)),
            make_event("pooping", _at(today - timedelta(days=1), 9)),
            make_event("peeing", _at(today - timedelta(days=6), 9)),
            make_event("peeing", _at(today - timedelta(days=7), 9)),
        ]
        days = group_events_by_day(events, now)

        assert len(days) == 7
        assert [d["label"] for d in days][-2:] == ["Yesterday", "Today"]
        assert days[-1]["feeds"] == 2
        assert days[-2]["poops"] == 1
        assert days[0]["pees"] == 1
        assert days[0]["dateKey"] == (today - timedelta(days=6)).isoformat()
        assert sum(d["pees"] for d in days) == 1

    def test_group_by_day_empty(self, now):
        assert group_events_by_day([], now) == []

    def test_hour_of_day(self, now):
        assert hour_of_day(_at(now.date(), 14, 30)) == 14.5

    def test_frame(self, now):
        df = events_to_frame(
            [
                make_event("feeding", _at(now.date(), 9, 15), amount="120"),
                make_event("peeing", _at(now.date(), 10), _fromSummary=True),
            ]
        )
        assert list(df["eventType"]) == ["feeding", "peeing"]
        assert df["amount"].iloc[0] == 120.0
        assert df["hour"].iloc[0] == 9.25
        assert list(df["fromSummary"]) == [False, True]

    def test_empty_frame_has_columns(self):
        assert "eventType" in events_to_frame([]).columns
