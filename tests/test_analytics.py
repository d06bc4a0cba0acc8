from datetime import datetime, timedelta, timezone

import pytest

from analytics import aggregate, bucket_labels, to_millis

NOW = datetime(2024, 5, 10, 15, 30, tzinfo=timezone.utc)


def event(kind, at, **fields):
    return {"type": kind, "timestamp": to_millis(at), **fields}


@pytest.mark.parametrize("time_range,count", [("24h", 12), ("7d", 7), ("30d", 30)])
def test_bucket_counts(time_range, count):
    dash = aggregate([], time_range, now=NOW)
    assert len(dash.activity_timeline) == count
    assert len(set(bucket_labels(time_range, NOW))) == count


def test_hourly_labels_run_oldest_first():
    labels = bucket_labels("24h", NOW)
    assert labels[0] == "04:00"
    assert labels[-1] == "15:00"


def test_daily_labels_use_day_and_month():
    labels = bucket_labels("7d", NOW)
    assert labels == ["04.05", "05.05", "06.05", "07.05", "08.05", "09.05", "10.05"]


def test_each_event_lands_in_at_most_one_bucket():
    events = [
        event("view_product", NOW - timedelta(minutes=20), product_name="Kask"),
        event("view_product", NOW - timedelta(hours=3), product_name="Kask"),
        # inside the 24h window, but older than the 12 charted hours
        event("add_to_cart", NOW - timedelta(hours=13), product_name="Mont"),
        # outside the window entirely
        event("add_to_cart", NOW - timedelta(hours=30), product_name="Mont"),
    ]
    dash = aggregate(events, "24h", now=NOW)
    timeline = {p.label: p.value for p in dash.activity_timeline}

    assert timeline["15:00"] == 1
    assert timeline["12:00"] == 1
    assert sum(timeline.values()) == 2
    assert dash.total_product_views == 2
    assert dash.total_add_to_cart == 1


def test_same_hour_yesterday_is_not_charted_as_current_hour():
    yesterday = NOW - timedelta(hours=23, minutes=45)  # 09.05 15:45
    dash = aggregate([event("view_product", yesterday, product_name="Kask")], "24h", now=NOW)
    timeline = {p.label: p.value for p in dash.activity_timeline}

    assert dash.total_product_views == 1
    assert timeline["15:00"] == 0
    assert sum(timeline.values()) == 0


def test_day_before_first_bucket_is_counted_but_not_charted():
    early = NOW - timedelta(days=6, hours=23)  # 03.05 16:30, still inside 7d
    dash = aggregate([event("checkout_start", early)], "7d", now=NOW)

    assert dash.total_checkouts == 1
    assert sum(p.value for p in dash.activity_timeline) == 0


def test_top_products_by_name_with_first_seen_tiebreak():
    names = ["A", "B", "C", "D", "D", "E", "F", "A", "A"]
    events = [event("view_product", NOW - timedelta(minutes=i), product_name=n) for i, n in enumerate(names)]
    dash = aggregate(events, "7d", now=NOW)

    assert [(p.name, p.count) for p in dash.top_viewed_products] == [
        ("A", 3), ("D", 2), ("B", 1), ("C", 1), ("E", 1),
    ]


def test_products_with_same_name_are_tallied_together():
    events = [
        event("add_to_cart", NOW, product_id="1", product_name="Kask"),
        event("add_to_cart", NOW, product_id="2", product_name="Kask"),
    ]
    dash = aggregate(events, "7d", now=NOW)
    assert [(p.name, p.count) for p in dash.top_added_products] == [("Kask", 2)]


def test_average_session_duration_rounds_half_up():
    events = [
        event("session_duration", NOW, duration=10),
        event("session_duration", NOW, duration=11),
    ]
    assert aggregate(events, "24h", now=NOW).avg_session_duration == 11
    assert aggregate([], "24h", now=NOW).avg_session_duration == 0


def test_unknown_range_rejected():
    with pytest.raises(ValueError):
        aggregate([], "1y", now=NOW)
