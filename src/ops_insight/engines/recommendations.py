"""Rule-based cost-saving recommendations drawn from the other insights."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from ops_insight.aggregation.numeric import round_half_up, safe_div
from ops_insight.config.business import BusinessConfig
from ops_insight.engines.material_prices import MaterialPriceInsight
from ops_insight.engines.operations import UtilityCostInsight, WasteAnalysisInsight
from ops_insight.engines.revenue import ProductProfitInsight

logger = logging.getLogger(__name__)

# Share of a price rise assumed recoverable by re-sourcing
PRICE_RECOVERY_SHARE = 0.1
HIGH_WASTE_DAYS_FOR_HIGH_PRIORITY = 5
UTILITY_INCREASE_HIGH_PCT = 20.0
LOW_MARGIN_PCT = 20.0
VERY_LOW_MARGIN_PCT = 10.0
MAX_MARGIN_RECOMMENDATIONS = 3


class Priority(enum.IntEnum):
    HIGH = 0
    MEDIUM = 1
    LOW = 2


@dataclass(frozen=True)
class CostRecommendation:
    id: str
    type: str  # "material" | "waste" | "utility" | "margin"
    priority: Priority
    title: str
    description: str
    estimated_saving: float
    evidence: str


def _material_recs(prices: MaterialPriceInsight, config: BusinessConfig) -> list[dict]:
    recs = []
    threshold = config.price_increase_threshold
    for m in prices.items:
        if m.change_rate < threshold:
            continue
        bought_units = safe_div(m.total_spent, m.avg_price or 1.0)
        recs.append(
            dict(
                type="material",
                priority=Priority.HIGH if m.change_rate >= 2 * threshold else Priority.MEDIUM,
                title=f"{m.product_name} unit price up {m.change_rate:.1f}%",
                description=(
                    "Review alternative suppliers or forward buying. Current price "
                    f"{m.current_price:,.0f}, up {abs(m.price_change):,.0f} from first purchase."
                ),
                estimated_saving=round_half_up(
                    abs(m.price_change) * bought_units * PRICE_RECOVERY_SHARE
                ),
                evidence=f"Spent {m.total_spent:,.0f} in range, price change {m.change_rate:.1f}%",
            )
        )
    return recs


def _waste_recs(waste: WasteAnalysisInsight, config: BusinessConfig) -> list[dict]:
    days = waste.high_waste_days
    if not days:
        return []
    cost = sum(d.qty * config.waste_unit_cost for d in days)
    worst = days[0]
    return [
        dict(
            type="waste",
            priority=Priority.HIGH
            if len(days) >= HIGH_WASTE_DAYS_FOR_HIGH_PRIORITY
            else Priority.MEDIUM,
            title=f"Waste above {config.waste_threshold_pct}% on {len(days)} days",
            description=f"Inspect the process on those days. Worst: {worst.rate:.1f}% on {worst.date}.",
            estimated_saving=cost,
            evidence=f"Estimated waste cost {cost:,.0f} at {config.waste_unit_cost:,.0f} per unit",
        )
    ]


def _utility_recs(utilities: UtilityCostInsight) -> list[dict]:
    if len(utilities.monthly) < 2:
        return []
    prev, last = utilities.monthly[-2], utilities.monthly[-1]
    if not (last.per_unit > prev.per_unit > 0):
        return []
    increase = round_half_up((last.per_unit - prev.per_unit) / prev.per_unit * 100.0)
    units = safe_div(last.total, last.per_unit or 1.0)
    return [
        dict(
            type="utility",
            priority=Priority.HIGH if increase >= UTILITY_INCREASE_HIGH_PCT else Priority.LOW,
            title=f"Energy cost per unit up {increase:.0f}%",
            description=(
                f"Review energy efficiency. Cost per unit {prev.per_unit:,.0f} -> "
                f"{last.per_unit:,.0f}."
            ),
            estimated_saving=round_half_up((last.per_unit - prev.per_unit) * units),
            evidence=f"{last.month} vs {prev.month} cost per unit",
        )
    ]


def _margin_recs(profit: ProductProfitInsight, config: BusinessConfig) -> list[dict]:
    low = [
        p
        for p in profit.items
        if p.revenue > 0 and p.margin > 0 and p.margin_rate < LOW_MARGIN_PCT
    ]
    return [
        dict(
            type="margin",
            priority=Priority.HIGH if p.margin_rate < VERY_LOW_MARGIN_PCT else Priority.MEDIUM,
            title=f"{p.product_name} margin only {p.margin_rate:.1f}%",
            description="Low margin on sales. Renegotiate price or reduce cost.",
            estimated_saving=round_half_up(p.revenue * config.overhead_ratio),
            evidence=f"Revenue {p.revenue:,.0f}, cost {p.cost:,.0f}, margin {p.margin:,.0f}",
        )
        for p in low[:MAX_MARGIN_RECOMMENDATIONS]
    ]


def generate_recommendations(
    config: BusinessConfig,
    material_prices: MaterialPriceInsight | None = None,
    waste: WasteAnalysisInsight | None = None,
    utilities: UtilityCostInsight | None = None,
    product_profit: ProductProfitInsight | None = None,
) -> tuple[CostRecommendation, ...]:
    raw: list[dict] = []
    if material_prices is not None:
        raw.extend(_material_recs(material_prices, config))
    if waste is not None:
        raw.extend(_waste_recs(waste, config))
    if utilities is not None:
        raw.extend(_utility_recs(utilities))
    if product_profit is not None:
        raw.extend(_margin_recs(product_profit, config))

    recs = [CostRecommendation(id=f"rec-{n}", **fields) for n, fields in enumerate(raw, 1)]
    recs.sort(key=lambda r: (r.priority, -r.estimated_saving))
    logger.debug("Recommendations: %d generated", len(recs))
    return tuple(recs)
