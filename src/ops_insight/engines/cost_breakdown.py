"""
Cost Breakdown Engine: decomposes spend into raw material, sub material,
labor and overhead, per month and in total.

Labor uses recorded pay when any labor records exist, else it is estimated
from ``labor_cost_ratio``. Overhead is utilities plus either a configured
fixed/variable overhead or ``overhead_ratio`` of material spend.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

from ops_insight.aggregation.buckets import month_key, observed_range, span_days
from ops_insight.aggregation.numeric import pct, round_half_up, safe_div
from ops_insight.config.business import BusinessConfig
from ops_insight.records.core import (
    InventoryAdjustment,
    LaborRecord,
    ProductionRecord,
    PurchaseRecord,
    UtilityRecord,
)

logger = logging.getLogger(__name__)

WEEKS_PER_MONTH = 4.33


@dataclass(frozen=True)
class MonthlyCost:
    month: str
    raw_material: float
    sub_material: float
    labor: float
    overhead: float
    total: float


@dataclass(frozen=True)
class CompositionSlice:
    name: str
    value: float
    rate: float  # % of grand total


@dataclass(frozen=True)
class MaterialDetailItem:
    product_code: str
    product_name: str
    total_spent: float
    quantity: float
    avg_unit_price: float


@dataclass(frozen=True)
class MaterialDetail:
    items: tuple[MaterialDetailItem, ...]
    total: float
    purchased: float  # before inventory adjustment


@dataclass(frozen=True)
class LaborDetail:
    amount: float
    basis: str  # "actual" | "estimated"
    total_hours: float
    note: str


@dataclass(frozen=True)
class OverheadDetail:
    utilities: float
    other: float
    total: float
    basis: str  # "fixed" | "ratio"


@dataclass(frozen=True)
class CostBreakdownInsight:
    monthly: tuple[MonthlyCost, ...]
    composition: tuple[CompositionSlice, ...]
    raw_material_detail: MaterialDetail
    sub_material_detail: MaterialDetail
    labor_detail: LaborDetail
    overhead_detail: OverheadDetail
    total_cost: float
    inventory_adjusted: bool

    @property
    def material_cost(self) -> float:
        return self.raw_material_detail.total + self.sub_material_detail.total


def is_sub_material(product_name: str, product_code: str, config: BusinessConfig) -> bool:
    """Packaging/label/consumable lines, by code prefix first, then name keyword."""
    code = (product_code or "").strip()
    if any(code.startswith(prefix) for prefix in config.sub_material_code_prefixes):
        return True
    name = (product_name or "").lower()
    return any(kw.lower() in name for kw in config.sub_material_keywords)


def consumption_basis(purchased: float, beginning: float, ending: float) -> float:
    """Convert purchase flow into consumption flow, floored at zero."""
    return max(purchased + beginning - ending, 0.0)


def _material_detail(lines: list[PurchaseRecord], total: float) -> MaterialDetail:
    agg: dict[str, list[float]] = {}
    names: dict[str, str] = {}
    for p in lines:
        spent_qty = agg.setdefault(p.product_code, [0.0, 0.0])
        spent_qty[0] += p.total
        spent_qty[1] += p.quantity
        names.setdefault(p.product_code, p.product_name)
    items = [
        MaterialDetailItem(
            product_code=code,
            product_name=names[code],
            total_spent=spent,
            quantity=qty,
            avg_unit_price=round_half_up(safe_div(spent, qty)),
        )
        for code, (spent, qty) in agg.items()
    ]
    items.sort(key=lambda i: (-i.total_spent, i.product_code))
    return MaterialDetail(
        items=tuple(items), total=total, purchased=sum(p.total for p in lines)
    )


def _days_per_month(first: date, last: date) -> dict[str, int]:
    """Days of the observed range falling in each month."""
    counts: dict[str, int] = {}
    for offset in range(span_days(first, last)):
        day = date.fromordinal(first.toordinal() + offset)
        key = month_key(day)
        counts[key] = counts.get(key, 0) + 1
    return counts


def compute_cost_breakdown(
    purchases: Sequence[PurchaseRecord],
    utilities: Sequence[UtilityRecord],
    production: Sequence[ProductionRecord],
    labor: Sequence[LaborRecord],
    config: BusinessConfig,
    adjustment: InventoryAdjustment | None = None,
) -> CostBreakdownInsight:
    raw_lines: list[PurchaseRecord] = []
    sub_lines: list[PurchaseRecord] = []
    for p in purchases:
        if is_sub_material(p.product_name, p.product_code, config):
            sub_lines.append(p)
        else:
            raw_lines.append(p)

    # 1. Monthly accumulation
    months: dict[str, dict[str, float]] = {}

    def bucket(day: date) -> dict[str, float]:
        return months.setdefault(
            month_key(day),
            {"raw": 0.0, "sub": 0.0, "utility": 0.0, "labor": 0.0, "production": 0.0},
        )

    for p in raw_lines:
        bucket(p.date)["raw"] += p.total
    for p in sub_lines:
        bucket(p.date)["sub"] += p.total
    for u in utilities:
        bucket(u.date)["utility"] += u.total_cost
    for lab in labor:
        bucket(lab.date)["labor"] += lab.total_pay
    for prod in production:
        bucket(prod.date)["production"] += prod.qty_total

    # 2. Consumption basis (purchases + beginning - ending)
    purchased_raw = sum(p.total for p in raw_lines)
    purchased_sub = sum(p.total for p in sub_lines)
    total_raw, total_sub = purchased_raw, purchased_sub
    if adjustment is not None:
        total_raw = consumption_basis(
            purchased_raw, adjustment.beginning_raw, adjustment.ending_raw
        )
        total_sub = consumption_basis(
            purchased_sub, adjustment.beginning_sub, adjustment.ending_sub
        )
        _distribute_adjustment(months, "raw", purchased_raw, total_raw)
        _distribute_adjustment(months, "sub", purchased_sub, total_sub)
        logger.debug(
            "Inventory adjustment: raw %.0f -> %.0f, sub %.0f -> %.0f",
            purchased_raw,
            total_raw,
            purchased_sub,
            total_sub,
        )

    # 3. Labor / overhead per month
    has_labor = len(labor) > 0
    fixed_configured = config.monthly_fixed_overhead > 0
    span = observed_range(purchases, utilities, production, labor)
    days_in_month = _days_per_month(*span) if span else {}

    monthly: list[MonthlyCost] = []
    for month, data in sorted(months.items()):
        raw, sub, utility = data["raw"], data["sub"], data["utility"]
        if has_labor:
            labor_cost = data["labor"]
        else:
            labor_cost = round_half_up((raw + sub + utility) * config.labor_cost_ratio)

        if fixed_configured:
            weeks = days_in_month.get(month, 0) / 7.0
            other = round_half_up(
                config.monthly_fixed_overhead / WEEKS_PER_MONTH * weeks
                + config.variable_overhead_per_unit * data["production"]
            )
        else:
            other = round_half_up((raw + sub) * config.overhead_ratio)
        overhead = utility + other
        monthly.append(
            MonthlyCost(
                month=month,
                raw_material=raw,
                sub_material=sub,
                labor=labor_cost,
                overhead=overhead,
                total=raw + sub + labor_cost + overhead,
            )
        )

    total_utility = sum(u.total_cost for u in utilities)
    total_labor = sum(m.labor for m in monthly)
    total_overhead = sum(m.overhead for m in monthly)
    other_overhead = total_overhead - total_utility
    grand_total = total_raw + total_sub + total_labor + total_overhead

    composition = tuple(
        CompositionSlice(name, value, pct(value, grand_total))
        for name, value in (
            ("raw_material", total_raw),
            ("sub_material", total_sub),
            ("labor", total_labor),
            ("overhead", total_overhead),
        )
    )

    if has_labor:
        labor_note = f"Recorded pay from {len(labor)} labor records"
    else:
        labor_note = (
            f"Estimated at {round_half_up(config.labor_cost_ratio * 100)}% of "
            "material and utility cost"
        )

    logger.debug(
        "Cost breakdown: %d months, total=%.0f, labor=%s, overhead=%s",
        len(monthly),
        grand_total,
        "actual" if has_labor else "estimated",
        "fixed" if fixed_configured else "ratio",
    )

    return CostBreakdownInsight(
        monthly=tuple(monthly),
        composition=composition,
        raw_material_detail=_material_detail(raw_lines, total_raw),
        sub_material_detail=_material_detail(sub_lines, total_sub),
        labor_detail=LaborDetail(
            amount=total_labor,
            basis="actual" if has_labor else "estimated",
            total_hours=sum(lab.total_hours for lab in labor),
            note=labor_note,
        ),
        overhead_detail=OverheadDetail(
            utilities=total_utility,
            other=other_overhead,
            total=total_overhead,
            basis="fixed" if fixed_configured else "ratio",
        ),
        total_cost=grand_total,
        inventory_adjusted=adjustment is not None,
    )


def _distribute_adjustment(
    months: dict[str, dict[str, float]], key: str, purchased: float, consumed: float
) -> None:
    """Scale monthly purchases so they sum to the consumption-basis total."""
    if not months:
        return
    if purchased > 0:
        factor = safe_div(consumed, purchased, default=1.0)
        for data in months.values():
            data[key] *= factor
    elif consumed > 0:
        # Nothing purchased: the drawdown lands in the last observed month
        months[max(months)][key] += consumed
