from __future__ import annotations

from prometheus_client import Counter, Histogram


LAUNCHES = Counter(
    "launcher_launches_total",
    "Projectile launches by terminal outcome",
    labelnames=("outcome",),
)

LAUNCH_DURATION = Histogram(
    "launcher_launch_duration_seconds",
    "Wall time of a projectile launch",
    buckets=(1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0),
)

EVENTS_PUBLISHED = Counter(
    "launcher_events_published_total",
    "Status events published to the broker",
    labelnames=("kind",),
)

EVENTS_DROPPED = Counter(
    "launcher_events_dropped_total",
    "Status events dropped because a subscriber queue was full",
)
