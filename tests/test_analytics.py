from datetime import datetime, timedelta, timezone

import pytest

from analytics import (
    by_country, country_flag, format_date, location_label, recent, relative_time, truncate,
)
from schemas import ClickEvent

NOW = datetime(2026, 10, 19, 20, 0, 0, tzinfo=timezone.utc)


def _ev(country=None, ts="2026-10-19T20:00:00.000Z", **kw) -> ClickEvent:
    return ClickEvent(timestamp=ts, country=country, **kw)


def test_by_country_counts_and_percentages():
    stats = by_country([_ev("US"), _ev("US"), _ev(None)])
    assert [(s.country, s.count) for s in stats] == [("US", 2), ("Unknown", 1)]
    assert stats[0].percentage == pytest.approx(66.7, abs=0.05)
    assert stats[1].percentage == pytest.approx(33.3, abs=0.05)


def test_by_country_empty():
    assert by_country([]) == []


def test_by_country_ties_keep_first_seen_order():
    stats = by_country([_ev("DE"), _ev("FR"), _ev("JP"), _ev("FR"), _ev("DE")])
    assert [s.country for s in stats] == ["DE", "FR", "JP"]


def test_by_country_keeps_top_ten():
    events = [_ev(f"C{i}") for i in range(12) for _ in range(12 - i)]
    stats = by_country(events)
    assert len(stats) == 10
    assert stats[0].country == "C0"
    assert stats[-1].country == "C9"
    assert sum(s.percentage for s in stats) < 100


def test_recent_is_newest_first_and_bounded():
    events = [_ev(city=str(i)) for i in range(25)]
    latest = recent(events)
    assert len(latest) == 20
    assert latest[0].city == "24"
    assert latest[-1].city == "5"
    assert [e.city for e in recent(events, 2)] == ["24", "23"]
    assert recent([], 5) == []


@pytest.mark.parametrize("offset, expected", [
    (0, "just now"),
    (30, "just now"),
    (59, "just now"),
    (60, "1m ago"),
    (90, "1m ago"),
    (3599, "59m ago"),
    (3600, "1h ago"),
    (7200, "2h ago"),
    (86399, "23h ago"),
    (86400, "1d ago"),
    (172800, "2d ago"),
])
def test_relative_time_buckets(offset, expected):
    assert relative_time(NOW - timedelta(seconds=offset), NOW) == expected


def test_relative_time_accepts_iso_strings():
    assert relative_time("2026-10-19T19:58:00.000Z", NOW) == "2m ago"


def test_country_flag():
    assert country_flag("US") == "\U0001F1FA\U0001F1F8"
    assert country_flag("gb") == "\U0001F1EC\U0001F1E7"
    assert country_flag(None) == "\U0001F30D"
    assert country_flag("") == "\U0001F30D"
    assert country_flag("Unknown") == "\U0001F30D"


def test_country_flag_is_total_over_letters():
    # not a real country, still a regional-indicator pair
    assert country_flag("ZZ") == chr(127397 + ord("Z")) * 2
    for letter in "ABCDEFGHIJKLMNOPQRSTUVWXYZ":
        assert country_flag(letter * 2) == chr(127397 + ord(letter)) * 2


def test_format_date():
    assert format_date("2026-10-19T20:05:00.000Z") == "Oct 19, 2026, 08:05 PM"


def test_truncate():
    assert truncate("abcdef", 3) == "abc..."
    assert truncate("abc", 3) == "abc"
    assert truncate(None, 3) == ""


def test_location_label():
    assert location_label(_ev("DE", city="Berlin", region="Berlin")) == "Berlin, Berlin, DE"
    assert location_label(_ev(None, city="Nowhere")) == "Nowhere, Unknown"
    assert location_label(_ev("FR")) == "FR"
