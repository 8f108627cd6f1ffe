"""Date bucketing and numeric-safety helpers."""

from ops_insight.aggregation.buckets import (
    daily_series,
    filter_by_date,
    group_by_week,
    month_key,
    observed_range,
    span_days,
    week_key,
    week_label,
    weekly_rates,
)
from ops_insight.aggregation.numeric import (
    UNBOUNDED_DAYS,
    WelfordAccumulator,
    clamp,
    coefficient_of_variation,
    days_of_cover,
    pct,
    round_half_up,
    safe_div,
)

__all__ = [
    "UNBOUNDED_DAYS",
    "WelfordAccumulator",
    "clamp",
    "coefficient_of_variation",
    "daily_series",
    "days_of_cover",
    "filter_by_date",
    "group_by_week",
    "month_key",
    "observed_range",
    "pct",
    "round_half_up",
    "safe_div",
    "span_days",
    "week_key",
    "week_label",
    "weekly_rates",
]
