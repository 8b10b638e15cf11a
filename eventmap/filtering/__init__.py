"""Filter modes and the predicates behind them."""

from .engine import (
    FilterMode,
    EMPTY_LABELS,
    matches,
    filter_events,
    count,
    badge_counts,
    empty_label,
    today_window,
    weekend_window,
)

__all__ = [
    "FilterMode",
    "EMPTY_LABELS",
    "matches",
    "filter_events",
    "count",
    "badge_counts",
    "empty_label",
    "today_window",
    "weekend_window",
]
