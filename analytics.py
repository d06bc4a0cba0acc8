"""
Analytics aggregation: turns append-only events into dashboard numbers.

Events are filtered to the requested window, tallied per type, grouped by
product name for the top lists and counted into hour or day buckets for the
activity chart.
"""

import math
from collections import Counter
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Iterable, List, Optional, Union

from schemas import AnalyticsDashboard, AnalyticsEvent, NamedCount, TimelinePoint

RANGE_SPANS = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}
HOURLY_BUCKETS = 12
TOP_N = 5


def to_millis(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def _aware(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def cutoff(time_range: str, now: Optional[datetime] = None) -> datetime:
    """Oldest instant (inclusive) that still belongs to the window."""
    try:
        span = RANGE_SPANS[time_range]
    except KeyError:
        raise ValueError(f"Unknown time range: {time_range}")
    return _aware(now) - span


def hour_label(dt) -> str:
    return f"{dt.hour:02d}:00"


def day_label(dt) -> str:
    return f"{dt.day:02d}.{dt.month:02d}"


def bucket_key(time_range: str, dt: datetime) -> Union[datetime, date]:
    """Start of the bucket `dt` falls in: its hour for 24h, its day otherwise."""
    if time_range == "24h":
        return dt.replace(minute=0, second=0, microsecond=0)
    return dt.date()


def bucket_starts(time_range: str, now: Optional[datetime] = None,
                  tz: tzinfo = timezone.utc) -> List[Union[datetime, date]]:
    """Chart buckets, oldest first."""
    if time_range not in RANGE_SPANS:
        raise ValueError(f"Unknown time range: {time_range}")
    current = bucket_key(time_range, _aware(now).astimezone(tz))
    if time_range == "24h":
        return [current - timedelta(hours=i) for i in range(HOURLY_BUCKETS - 1, -1, -1)]
    days = RANGE_SPANS[time_range].days
    return [current - timedelta(days=i) for i in range(days - 1, -1, -1)]


def bucket_labels(time_range: str, now: Optional[datetime] = None,
                  tz: tzinfo = timezone.utc) -> List[str]:
    label_of = hour_label if time_range == "24h" else day_label
    return [label_of(start) for start in bucket_starts(time_range, now, tz)]


def _top(counter: Counter) -> List[NamedCount]:
    # most_common keeps first-seen order among equal counts
    return [NamedCount(name=name, count=count) for name, count in counter.most_common(TOP_N)]


def aggregate(events: Iterable[Union[AnalyticsEvent, dict]], time_range: str = "7d",
              now: Optional[datetime] = None, tz: tzinfo = timezone.utc) -> AnalyticsDashboard:
    now = _aware(now)
    start = to_millis(cutoff(time_range, now))
    parsed = [e if isinstance(e, AnalyticsEvent) else AnalyticsEvent.model_validate(e) for e in events]
    window = [e for e in parsed if e.timestamp >= start]

    label_of = hour_label if time_range == "24h" else day_label
    # keyed by bucket start; a 15:00 from yesterday is not today's 15:00
    timeline = dict.fromkeys(bucket_starts(time_range, now, tz), 0)

    views: Counter = Counter()
    adds: Counter = Counter()
    checkouts = 0
    durations = []

    for event in window:
        key = bucket_key(time_range, datetime.fromtimestamp(event.timestamp / 1000, tz))
        if key in timeline:
            timeline[key] += 1

        if event.type == "view_product":
            if event.product_name:
                views[event.product_name] += 1
        elif event.type == "add_to_cart":
            if event.product_name:
                adds[event.product_name] += 1
        elif event.type == "checkout_start":
            checkouts += 1
        elif event.type == "session_duration" and event.duration is not None:
            durations.append(event.duration)

    avg = math.floor(sum(durations) / len(durations) + 0.5) if durations else 0

    return AnalyticsDashboard(
        total_product_views=sum(1 for e in window if e.type == "view_product"),
        total_add_to_cart=sum(1 for e in window if e.type == "add_to_cart"),
        total_checkouts=checkouts,
        avg_session_duration=avg,
        top_viewed_products=_top(views),
        top_added_products=_top(adds),
        activity_timeline=[TimelinePoint(label=label_of(k), value=v) for k, v in timeline.items()],
    )
