"""Prometheus counters, exposed at /metrics."""

from prometheus_client import Counter

TRADE_TRANSITIONS = Counter(
    "barter_trade_transitions_total",
    "Trade status changes, by resulting status",
    ["status"],
)

FEED_RELOADS = Counter(
    "barter_feed_reloads_total",
    "Listing feed snapshot reloads, by trigger",
    ["trigger"],
)

CHANGE_EVENTS = Counter(
    "barter_change_events_total",
    "Change notifications published, by collection and type",
    ["collection", "type"],
)
