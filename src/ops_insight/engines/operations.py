"""Plant-floor insights: utility cost, waste and production volume."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ops_insight.aggregation.buckets import month_key
from ops_insight.aggregation.numeric import round_half_up, safe_div
from ops_insight.config.business import BusinessConfig
from ops_insight.records.core import ProductionRecord, UtilityRecord

logger = logging.getLogger(__name__)

PRODUCTION_CATEGORIES = ("normal", "preprocess", "frozen", "sauce", "bibimbap")


# =============================================================================
# Utilities
# =============================================================================


@dataclass(frozen=True)
class MonthlyUtilityCost:
    month: str
    electricity: float
    water: float
    gas: float
    total: float
    per_unit: float  # cost per produced unit, 0 without production


@dataclass(frozen=True)
class UtilityCostInsight:
    monthly: tuple[MonthlyUtilityCost, ...]
    total_cost: float


def compute_utility_costs(
    utilities: Sequence[UtilityRecord], production: Sequence[ProductionRecord]
) -> UtilityCostInsight:
    months: dict[str, list[float]] = {}
    for u in utilities:
        entry = months.setdefault(month_key(u.date), [0.0, 0.0, 0.0, 0.0])
        entry[0] += u.elec_cost
        entry[1] += u.water_cost
        entry[2] += u.gas_cost
    # Production only counts toward months that have utility data
    for p in production:
        entry = months.get(month_key(p.date))
        if entry is not None:
            entry[3] += p.qty_total

    monthly = []
    for month, (elec, water, gas, produced) in sorted(months.items()):
        total = elec + water + gas
        monthly.append(
            MonthlyUtilityCost(
                month=month,
                electricity=elec,
                water=water,
                gas=gas,
                total=total,
                per_unit=round_half_up(safe_div(total, produced)),
            )
        )
    return UtilityCostInsight(
        monthly=tuple(monthly), total_cost=sum(m.total for m in monthly)
    )


# =============================================================================
# Waste
# =============================================================================


@dataclass(frozen=True)
class DailyWaste:
    date: str
    waste_finished_pct: float
    waste_semi_pct: float
    waste_finished_ea: float
    production_qty: float
    estimated_cost: float


@dataclass(frozen=True)
class HighWasteDay:
    date: str
    rate: float
    qty: float


@dataclass(frozen=True)
class WasteAnalysisInsight:
    daily: tuple[DailyWaste, ...]
    avg_waste_rate: float  # over producing days only
    high_waste_days: tuple[HighWasteDay, ...]  # worst first
    total_estimated_cost: float


def compute_waste_analysis(
    production: Sequence[ProductionRecord], config: BusinessConfig
) -> WasteAnalysisInsight:
    daily = [
        DailyWaste(
            date=p.date.isoformat(),
            waste_finished_pct=p.waste_finished_pct,
            waste_semi_pct=p.waste_semi_pct,
            waste_finished_ea=p.waste_finished_ea,
            production_qty=p.qty_total,
            estimated_cost=p.waste_finished_ea * config.waste_unit_cost,
        )
        for p in sorted(production, key=lambda r: r.date)
    ]
    producing = [d for d in daily if d.production_qty > 0]
    avg_rate = round_half_up(
        safe_div(sum(d.waste_finished_pct for d in producing), len(producing)), 1
    )
    high = sorted(
        (d for d in daily if d.waste_finished_pct > config.waste_threshold_pct),
        key=lambda d: (-d.waste_finished_pct, d.date),
    )
    logger.debug("Waste: %d days, %d above threshold", len(daily), len(high))
    return WasteAnalysisInsight(
        daily=tuple(daily),
        avg_waste_rate=avg_rate,
        high_waste_days=tuple(
            HighWasteDay(d.date, d.waste_finished_pct, d.waste_finished_ea) for d in high
        ),
        total_estimated_cost=sum(d.estimated_cost for d in daily),
    )


# =============================================================================
# Production efficiency
# =============================================================================


@dataclass(frozen=True)
class CategoryStats:
    category: str
    total: float
    avg: float
    max: float
    max_date: str


@dataclass(frozen=True)
class DataRange:
    start: str
    end: str
    days: int


@dataclass(frozen=True)
class ProductionEfficiencyInsight:
    category_stats: tuple[CategoryStats, ...]
    total_production: float
    avg_daily: float
    max_day_date: str
    max_day_qty: float
    data_range: DataRange


def compute_production_efficiency(
    production: Sequence[ProductionRecord],
) -> ProductionEfficiencyInsight:
    ordered = sorted(production, key=lambda r: r.date)
    n = len(ordered)

    stats = []
    for category in PRODUCTION_CATEGORIES:
        values = [getattr(p, f"qty_{category}") for p in ordered]
        total = sum(values)
        best = max(values, default=0.0)
        best_date = ""
        if values and best > 0:
            best_date = ordered[values.index(best)].date.isoformat()
        stats.append(
            CategoryStats(
                category=category,
                total=total,
                avg=round_half_up(safe_div(total, n)),
                max=best,
                max_date=best_date,
            )
        )

    total_production = sum(p.qty_total for p in ordered)
    max_day = max(ordered, key=lambda p: p.qty_total, default=None)
    dates = sorted({p.date for p in ordered})

    return ProductionEfficiencyInsight(
        category_stats=tuple(stats),
        total_production=total_production,
        avg_daily=round_half_up(safe_div(total_production, n)),
        max_day_date=max_day.date.isoformat() if max_day is not None else "",
        max_day_qty=max_day.qty_total if max_day is not None else 0.0,
        data_range=DataRange(
            start=dates[0].isoformat() if dates else "",
            end=dates[-1].isoformat() if dates else "",
            days=len(dates),
        ),
    )
