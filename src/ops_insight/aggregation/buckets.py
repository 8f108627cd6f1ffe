"""
Date bucketing for daily business records.

Weeks run Monday to Sunday and are keyed by the Monday's ISO date; months
are keyed ``YYYY-MM``. Missing days inside an observed range are treated as
zero activity.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import date, timedelta
from typing import Any, TypeVar

import pandas as pd

T = TypeVar("T")


def month_key(day: date) -> str:
    return day.isoformat()[:7]


def week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def week_key(day: date) -> str:
    """ISO date of the Monday starting the week that contains ``day``."""
    return week_start(day).isoformat()


def week_label(key: str) -> str:
    """``2024-01-01`` -> ``01/01~01/07``."""
    monday = date.fromisoformat(key)
    sunday = monday + timedelta(days=6)
    return f"{monday:%m/%d}~{sunday:%m/%d}"


def filter_by_date(
    records: Iterable[T], start: date | None = None, end: date | None = None
) -> list[T]:
    """Keep records whose ``date`` lies in [start, end]; either bound may be open."""
    out = []
    for r in records:
        d = r.date  # type: ignore[attr-defined]
        if start is not None and d < start:
            continue
        if end is not None and d > end:
            continue
        out.append(r)
    return out


def observed_range(*collections: Iterable[Any]) -> tuple[date, date] | None:
    """First and last date across all dated records, or None when empty."""
    dates = [r.date for coll in collections for r in coll]
    if not dates:
        return None
    return min(dates), max(dates)


def span_days(first: date, last: date) -> int:
    """Inclusive number of days between two dates (at least 1)."""
    return max((last - first).days + 1, 1)


def date_index(first: date, last: date) -> pd.DatetimeIndex:
    return pd.date_range(first, last, freq="D")


def daily_series(
    pairs: Iterable[tuple[date, float]], first: date, last: date
) -> pd.Series:
    """
    Sum (date, value) pairs per day over [first, last].

    Every day in the range is present; days without observations are 0.
    Pairs outside the range are dropped.
    """
    index = date_index(first, last)
    rows = list(pairs)
    if not rows:
        return pd.Series(0.0, index=index, dtype="float64")
    frame = pd.DataFrame(rows, columns=["date", "value"])
    frame["date"] = pd.to_datetime(frame["date"])
    summed = frame.groupby("date")["value"].sum()
    return summed.reindex(index, fill_value=0.0).astype("float64")


def weekly_rates(series: pd.Series, min_full_weeks: int = 2) -> pd.Series:
    """
    Per-day rate of each Monday-keyed week: the week's total over the number
    of its days present in ``series``.

    Partial weeks at the edges are dropped when at least ``min_full_weeks``
    full weeks remain.
    """
    if series.empty:
        return series
    keys = [week_key(ts.date()) for ts in series.index]
    grouped = series.groupby(keys, sort=True)
    totals = grouped.sum()
    days = grouped.size()
    full = days == 7
    if int(full.sum()) >= min_full_weeks:
        totals, days = totals[full], days[full]
    return totals / days


def group_by(records: Iterable[T], key: Callable[[T], str]) -> dict[str, list[T]]:
    """Group records by a key function, keys in sorted order."""
    grouped: dict[str, list[T]] = {}
    for r in records:
        grouped.setdefault(key(r), []).append(r)
    return dict(sorted(grouped.items()))


def group_by_week(records: Iterable[T]) -> dict[str, list[T]]:
    return group_by(records, lambda r: week_key(r.date))  # type: ignore[attr-defined]
