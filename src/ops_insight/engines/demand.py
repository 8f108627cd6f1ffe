"""Daily demand statistics per product, derived from purchase history."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

import numpy as np
import pandas as pd

from ops_insight.aggregation.buckets import daily_series, observed_range, weekly_rates
from ops_insight.aggregation.numeric import (
    WelfordAccumulator,
    coefficient_of_variation,
    safe_div,
)
from ops_insight.records.core import PurchaseRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DemandStats:
    product_code: str
    product_name: str
    unit_price: float  # last positive unit price seen
    total_quantity: float
    total_spend: float
    mean_daily: float
    std_daily: float  # population std, missing days counted as zero
    purchase_events: int  # distinct purchase days
    mean_lot_size: float  # average quantity per purchase line
    first_purchase: date
    last_purchase: date
    weekly_cv: float | None

    @property
    def annual_demand(self) -> float:
        return self.mean_daily * 365.0


def compute_demand_stats(
    purchases: Sequence[PurchaseRecord],
    window: tuple[date, date] | None = None,
) -> dict[str, DemandStats]:
    """
    Per-product demand statistics over the observed purchase range.

    Every day in ``window`` (default: first to last purchase date overall) is
    a sample; days without purchases count as zero demand.
    """
    usable = [p for p in purchases if p.product_code and p.quantity != 0]
    if window is None:
        window = observed_range(usable)
    if window is None:
        return {}
    first, last = window

    grouped: dict[str, list[PurchaseRecord]] = {}
    for p in usable:
        grouped.setdefault(p.product_code, []).append(p)

    stats: dict[str, DemandStats] = {}
    for code, lines in sorted(grouped.items()):
        series: pd.Series = daily_series(((p.date, p.quantity) for p in lines), first, last)
        daily = WelfordAccumulator().extend(series.to_numpy(dtype=np.float64))
        unit_price = 0.0
        for p in sorted(lines, key=lambda r: r.date):
            if p.unit_price > 0:
                unit_price = p.unit_price
        dates = sorted({p.date for p in lines})
        total_qty = float(sum(p.quantity for p in lines))
        stats[code] = DemandStats(
            product_code=code,
            product_name=lines[0].product_name,
            unit_price=unit_price,
            total_quantity=total_qty,
            total_spend=float(sum(p.total for p in lines)),
            mean_daily=daily.mean,
            std_daily=daily.population_std_dev,
            purchase_events=len(dates),
            mean_lot_size=safe_div(total_qty, len(lines)),
            first_purchase=dates[0],
            last_purchase=dates[-1],
            weekly_cv=weekly_cv(series) if len(dates) > 1 else None,
        )

    logger.debug(
        "Demand stats: %d products over %s..%s", len(stats), first, last
    )
    return stats


def weekly_cv(series: pd.Series) -> float | None:
    """CV of per-day rates of Monday-keyed weeks; None when undefined."""
    return coefficient_of_variation(weekly_rates(series).to_numpy(dtype=np.float64))
