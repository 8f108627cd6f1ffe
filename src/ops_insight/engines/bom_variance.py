"""
BOM Variance & Yield Analyzer.

Variance: the observed purchase range is split at its midpoint day. The first
half sets the standard price and quantity per material, the second half is
the actual:

    price variance = (actual price - standard price) * actual qty
    qty variance   = (actual qty - standard qty) * standard price

The standard qty is flexed to the second half before comparing: by the
production volume ratio of the halves when both recorded production, else by
their day-count ratio (odd-length ranges give a longer second half).

Positive totals are unfavorable, negative favorable.

Yield: ``(production - waste) / production`` per day and per week, compared
with a standard yield taken from the BOM stage yields when they are recorded.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, timedelta

from ops_insight.aggregation.buckets import (
    group_by_week,
    observed_range,
    span_days,
    week_label,
)
from ops_insight.aggregation.numeric import round_half_up, safe_div
from ops_insight.config.business import BusinessConfig
from ops_insight.records.core import BomLine, ProductionRecord, PurchaseRecord

logger = logging.getLogger(__name__)

FULL_YIELD = 100.0


# =============================================================================
# Standard vs actual variance
# =============================================================================


@dataclass(frozen=True)
class BomVarianceItem:
    material_code: str
    material_name: str
    standard_price: float
    actual_price: float
    standard_qty: float
    actual_qty: float
    price_variance: float
    qty_variance: float
    total_variance: float

    @property
    def favorable(self) -> bool:
        return self.total_variance < 0


@dataclass(frozen=True)
class BomVarianceInsight:
    items: tuple[BomVarianceItem, ...]
    split_date: date
    production_ratio: float  # second-half / first-half volume, 1.0 when unknown
    flex_ratio: float  # factor applied to the standard qty
    total_price_variance: float
    total_qty_variance: float
    total_variance: float
    favorable_count: int
    unfavorable_count: int


def _half_totals(lines: Sequence[PurchaseRecord]) -> tuple[float, float]:
    qty = sum(p.quantity for p in lines)
    spend = sum(p.total for p in lines)
    return qty, spend


def compute_bom_variance(
    purchases: Sequence[PurchaseRecord],
    production: Sequence[ProductionRecord],
    bom: Sequence[BomLine],
) -> BomVarianceInsight | None:
    """
    Split-half price/quantity variance per material.

    Returns None when the purchase range covers a single day, since no
    standard period exists.
    """
    span = observed_range(purchases)
    if span is None:
        return None
    first, last = span
    days = span_days(first, last)
    if days < 2:
        logger.debug("BOM variance: single-day range, no standard period")
        return None
    first_days = days // 2
    split = first + timedelta(days=first_days)

    bom_materials = {line.material_code for line in bom if line.material_code}

    first_prod = sum(p.qty_total for p in production if p.date < split)
    second_prod = sum(p.qty_total for p in production if p.date >= split)
    if first_prod > 0 and second_prod > 0:
        ratio = second_prod / first_prod
        flex = ratio
    else:
        ratio = 1.0
        flex = (days - first_days) / first_days

    halves: dict[str, tuple[list[PurchaseRecord], list[PurchaseRecord]]] = {}
    names: dict[str, str] = {}
    for p in purchases:
        if not p.product_code:
            continue
        if bom_materials and p.product_code not in bom_materials:
            continue
        before, after = halves.setdefault(p.product_code, ([], []))
        (before if p.date < split else after).append(p)
        names.setdefault(p.product_code, p.product_name)

    items: list[BomVarianceItem] = []
    for code, (before, after) in sorted(halves.items()):
        std_qty, std_spend = _half_totals(before)
        act_qty, act_spend = _half_totals(after)
        if std_qty <= 0 or act_qty <= 0:
            continue
        std_price = std_spend / std_qty
        act_price = act_spend / act_qty
        flexed_qty = std_qty * flex

        price_var = round_half_up((act_price - std_price) * act_qty)
        qty_var = round_half_up((act_qty - flexed_qty) * std_price)
        items.append(
            BomVarianceItem(
                material_code=code,
                material_name=names[code],
                standard_price=round_half_up(std_price, 2),
                actual_price=round_half_up(act_price, 2),
                standard_qty=round_half_up(flexed_qty, 2),
                actual_qty=act_qty,
                price_variance=price_var,
                qty_variance=qty_var,
                total_variance=price_var + qty_var,
            )
        )

    items.sort(key=lambda i: (-abs(i.total_variance), i.material_code))
    total_price = sum(i.price_variance for i in items)
    total_qty = sum(i.qty_variance for i in items)

    logger.debug(
        "BOM variance: %d materials, split at %s, production ratio %.3f, flex %.3f",
        len(items),
        split,
        ratio,
        flex,
    )

    return BomVarianceInsight(
        items=tuple(items),
        split_date=split,
        production_ratio=ratio,
        flex_ratio=flex,
        total_price_variance=total_price,
        total_qty_variance=total_qty,
        total_variance=total_price + total_qty,
        favorable_count=sum(1 for i in items if i.total_variance < 0),
        unfavorable_count=sum(1 for i in items if i.total_variance > 0),
    )


# =============================================================================
# Yield tracking
# =============================================================================


@dataclass(frozen=True)
class YieldPoint:
    label: str  # ISO date for daily points, "MM/DD~MM/DD" for weekly
    production_qty: float
    waste_qty: float
    yield_rate: float
    yield_gap: float
    adjusted_unit_cost: float
    cost_impact: float
    cumulative_cost_impact: float
    has_data: bool
    below_standard: bool


@dataclass(frozen=True)
class YieldInsight:
    daily: tuple[YieldPoint, ...]
    weekly: tuple[YieldPoint, ...]
    standard_yield: float
    standard_source: str  # "bom" | "config"
    unit_cost: float
    avg_yield: float
    total_cost_impact: float
    low_yield_days: tuple[str, ...]


def yield_rate(production_qty: float, waste_qty: float) -> tuple[float, bool]:
    """Yield % and whether the day had any production to measure."""
    if production_qty <= 0:
        return FULL_YIELD, False
    return (production_qty - waste_qty) / production_qty * 100.0, True


def adjusted_unit_cost(unit_cost: float, yield_pct: float) -> float:
    """Unit cost grossed up for yield loss; 0 when nothing was yielded."""
    if yield_pct <= 0:
        return 0.0
    return unit_cost / (yield_pct / 100.0)


def standard_yield(bom: Sequence[BomLine], config: BusinessConfig) -> tuple[float, str]:
    stage_yields = [line.stage_yield for line in bom if 0 < line.stage_yield < 1]
    if stage_yields:
        return sum(stage_yields) / len(stage_yields) * 100.0, "bom"
    return config.standard_yield_pct, "config"


def _series(
    rows: Sequence[tuple[str, float, float]],
    standard: float,
    unit_cost: float,
    tolerance: float,
) -> list[YieldPoint]:
    points = []
    cumulative = 0.0
    for label, prod, waste in rows:
        rate, has_data = yield_rate(prod, waste)
        impact = max(standard - rate, 0.0) / 100.0 * prod * unit_cost
        cumulative += impact
        points.append(
            YieldPoint(
                label=label,
                production_qty=prod,
                waste_qty=waste,
                yield_rate=round_half_up(rate, 1),
                yield_gap=round_half_up(rate - standard, 1),
                adjusted_unit_cost=round_half_up(adjusted_unit_cost(unit_cost, rate)),
                cost_impact=round_half_up(impact),
                cumulative_cost_impact=round_half_up(cumulative),
                has_data=has_data,
                below_standard=has_data and rate < standard - tolerance,
            )
        )
    return points


def compute_yield(
    production: Sequence[ProductionRecord],
    bom: Sequence[BomLine],
    material_cost: float,
    config: BusinessConfig,
) -> YieldInsight | None:
    if not production:
        return None
    standard, source = standard_yield(bom, config)
    total_prod = sum(p.qty_total for p in production)
    unit_cost = safe_div(material_cost, total_prod)

    by_day: dict[date, list[float]] = {}
    for p in production:
        entry = by_day.setdefault(p.date, [0.0, 0.0])
        entry[0] += p.qty_total
        entry[1] += p.waste_finished_ea
    daily_rows = [(d.isoformat(), prod, waste) for d, (prod, waste) in sorted(by_day.items())]

    # Weekly yield is computed from summed volumes, not averaged daily rates
    weekly_rows = [
        (
            week_label(key),
            sum(p.qty_total for p in records),
            sum(p.waste_finished_ea for p in records),
        )
        for key, records in group_by_week(production).items()
    ]

    daily = _series(daily_rows, standard, unit_cost, config.yield_drop_tolerance)
    weekly = _series(weekly_rows, standard, unit_cost, config.yield_drop_tolerance)

    measured = [p.yield_rate for p in daily if p.has_data]
    avg_yield = round_half_up(safe_div(sum(measured), len(measured), FULL_YIELD), 1)

    logger.debug(
        "Yield: %d days, standard %.1f%% (%s), average %.1f%%",
        len(daily),
        standard,
        source,
        avg_yield,
    )

    return YieldInsight(
        daily=tuple(daily),
        weekly=tuple(weekly),
        standard_yield=round_half_up(standard, 1),
        standard_source=source,
        unit_cost=round_half_up(unit_cost, 2),
        avg_yield=avg_yield,
        total_cost_impact=daily[-1].cumulative_cost_impact if daily else 0.0,
        low_yield_days=tuple(p.label for p in daily if p.below_standard),
    )
