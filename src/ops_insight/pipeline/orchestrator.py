"""
Single entry point that runs every insight engine over one set of records.

Cost breakdown and material price statistics run first since several
downstream engines consume them. Every engine is a pure function, so two
calls with the same inputs return equal results.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import TypeVar

from ops_insight.aggregation.buckets import filter_by_date, observed_range
from ops_insight.config.business import DEFAULT_BUSINESS_CONFIG, BusinessConfig
from ops_insight.engines.abc_xyz import AbcXyzInsight, classify_abc_xyz
from ops_insight.engines.bom_anomaly import (
    BomAnomalyInsight,
    ConsumptionVarianceInsight,
    compute_consumption_variance,
    detect_bom_anomalies,
)
from ops_insight.engines.bom_health import BomHealthInsight, compute_bom_health
from ops_insight.engines.bom_variance import (
    BomVarianceInsight,
    YieldInsight,
    compute_bom_variance,
    compute_yield,
)
from ops_insight.engines.cost_breakdown import CostBreakdownInsight, compute_cost_breakdown
from ops_insight.engines.demand import compute_demand_stats
from ops_insight.engines.freshness import FreshnessInsight, compute_freshness
from ops_insight.engines.inventory_cost import InventoryCostInsight, compute_inventory_cost
from ops_insight.engines.inventory_sources import InventorySource, resolve_inventory
from ops_insight.engines.material_prices import MaterialPriceInsight, compute_material_prices
from ops_insight.engines.operations import (
    ProductionEfficiencyInsight,
    UtilityCostInsight,
    WasteAnalysisInsight,
    compute_production_efficiency,
    compute_utility_costs,
    compute_waste_analysis,
)
from ops_insight.engines.profit_center import ProfitCenterInsight, compute_profit_center
from ops_insight.engines.recommendations import CostRecommendation, generate_recommendations
from ops_insight.engines.revenue import (
    ChannelRevenueInsight,
    ProductProfitInsight,
    RevenueTrendInsight,
    compute_channel_revenue,
    compute_product_profit,
    compute_revenue_trend,
)
from ops_insight.engines.statistical_order import (
    StatisticalOrderInsight,
    compute_statistical_order,
)
from ops_insight.errors import InsufficientData
from ops_insight.records.core import (
    BomLine,
    DailySalesRecord,
    InventoryAdjustment,
    InventorySafetyItem,
    InventorySnapshotRecord,
    LaborRecord,
    MaterialMasterItem,
    ProductionRecord,
    PurchaseRecord,
    SalesDetailRecord,
    UtilityRecord,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class InsightInputs:
    """Already-parsed record collections for one computation pass."""

    purchases: tuple[PurchaseRecord, ...] = ()
    production: tuple[ProductionRecord, ...] = ()
    utilities: tuple[UtilityRecord, ...] = ()
    labor: tuple[LaborRecord, ...] = ()
    bom: tuple[BomLine, ...] = ()
    material_master: tuple[MaterialMasterItem, ...] = ()
    inventory_snapshots: tuple[InventorySnapshotRecord, ...] = ()
    safety_items: tuple[InventorySafetyItem, ...] = ()
    daily_sales: tuple[DailySalesRecord, ...] = ()
    sales_detail: tuple[SalesDetailRecord, ...] = ()
    adjustment: InventoryAdjustment | None = None

    def within(self, start: date | None, end: date | None) -> InsightInputs:
        """Copy with every dated collection restricted to [start, end]."""
        if start is None and end is None:
            return self
        return InsightInputs(
            purchases=tuple(filter_by_date(self.purchases, start, end)),
            production=tuple(filter_by_date(self.production, start, end)),
            utilities=tuple(filter_by_date(self.utilities, start, end)),
            labor=tuple(filter_by_date(self.labor, start, end)),
            bom=self.bom,
            material_master=self.material_master,
            inventory_snapshots=tuple(filter_by_date(self.inventory_snapshots, start, end)),
            safety_items=self.safety_items,
            daily_sales=tuple(filter_by_date(self.daily_sales, start, end)),
            sales_detail=tuple(filter_by_date(self.sales_detail, start, end)),
            adjustment=self.adjustment,
        )


@dataclass(frozen=True)
class DashboardInsights:
    inventory_source: InventorySource
    period: tuple[date, date] | None
    cost_breakdown: CostBreakdownInsight
    material_prices: MaterialPriceInsight | None
    statistical_order: StatisticalOrderInsight | None
    abc_xyz: AbcXyzInsight | None
    freshness: FreshnessInsight | None
    bom_variance: BomVarianceInsight | None
    yield_analysis: YieldInsight | None
    bom_anomaly: BomAnomalyInsight | None
    consumption_variance: ConsumptionVarianceInsight | None
    bom_health: BomHealthInsight | None
    inventory_cost: InventoryCostInsight | None
    profit_center: ProfitCenterInsight | None
    channel_revenue: ChannelRevenueInsight | None
    revenue_trend: RevenueTrendInsight | None
    product_profit: ProductProfitInsight | None
    utility_costs: UtilityCostInsight | None
    waste_analysis: WasteAnalysisInsight | None
    production_efficiency: ProductionEfficiencyInsight | None
    recommendations: tuple[CostRecommendation, ...]


def _guarded(name: str, compute: Callable[[], T | None]) -> T | None:
    """Run one engine; a sample too small to analyse yields None for that engine only."""
    try:
        result = compute()
    except InsufficientData as exc:
        logger.debug("%s skipped: %s", name, exc)
        return None
    logger.debug("%s: %s", name, "done" if result is not None else "no input")
    return result


def compute_all_insights(
    inputs: InsightInputs,
    config: BusinessConfig | None = None,
    service_level: float | None = None,
    start: date | None = None,
    end: date | None = None,
) -> DashboardInsights:
    """
    Compute every dashboard insight for the records within [start, end].

    Raises:
        InvalidConfiguration: when ``config`` or ``service_level`` is unusable.
    """
    # 1. Configuration and period
    config = config if config is not None else DEFAULT_BUSINESS_CONFIG
    config.validate()
    if service_level is not None:
        config.z_score(service_level)
    data = inputs.within(start, end)

    purchases = data.purchases
    production = data.production

    # 2. Inventory fallback chain
    inventory = resolve_inventory(
        config, data.safety_items, data.inventory_snapshots, purchases
    )

    # 3. Upstream engines
    material_prices = compute_material_prices(purchases) if purchases else None
    cost_breakdown = compute_cost_breakdown(
        purchases, data.utilities, production, data.labor, config, data.adjustment
    )
    demand = compute_demand_stats(purchases)
    purchase_span = observed_range(purchases)

    # 4. Inventory policy
    statistical_order = _guarded(
        "statistical_order",
        lambda: compute_statistical_order(inventory.items, demand, config, service_level)
        if demand
        else None,
    )
    abc_xyz = _guarded(
        "abc_xyz", lambda: classify_abc_xyz(demand, config) if demand else None
    )
    freshness = _guarded(
        "freshness",
        lambda: compute_freshness(
            inventory.items,
            demand,
            config,
            purchase_span[1] if purchase_span else None,
        )
        if inventory.items
        else None,
    )

    # 5. Plant floor
    utility_costs = compute_utility_costs(data.utilities, production) if data.utilities else None
    waste_analysis = compute_waste_analysis(production, config) if production else None
    production_efficiency = compute_production_efficiency(production) if production else None

    # 6. Recipes
    bom_variance = _guarded(
        "bom_variance", lambda: compute_bom_variance(purchases, production, data.bom)
    )
    yield_analysis = _guarded(
        "yield",
        lambda: compute_yield(production, data.bom, cost_breakdown.material_cost, config),
    )
    bom_anomaly = _guarded(
        "bom_anomaly",
        lambda: detect_bom_anomalies(
            data.bom,
            purchases,
            material_prices,
            config,
            data.sales_detail,
            data.material_master,
        )
        if data.bom and material_prices is not None
        else None,
    )
    consumption_variance = _guarded(
        "consumption_variance",
        lambda: compute_consumption_variance(
            data.bom, purchases, data.sales_detail, data.material_master
        )
        if data.bom
        else None,
    )
    bom_health = _guarded(
        "bom_health",
        lambda: compute_bom_health(
            data.bom, data.sales_detail, purchases, bom_variance, bom_anomaly
        )
        if data.bom
        else None,
    )

    # 7. Cost of holding inventory
    inventory_cost = _guarded(
        "inventory_cost",
        lambda: compute_inventory_cost(
            statistical_order,
            demand,
            config,
            abc_xyz,
            waste_analysis.total_estimated_cost if waste_analysis is not None else 0.0,
        )
        if statistical_order is not None
        else None,
    )

    # 8. Revenue side
    channel_revenue = compute_channel_revenue(data.daily_sales) if data.daily_sales else None
    revenue_trend = compute_revenue_trend(data.daily_sales, config) if data.daily_sales else None
    product_profit = (
        compute_product_profit(data.sales_detail, purchases) if data.sales_detail else None
    )
    profit_center = _guarded(
        "profit_center",
        lambda: compute_profit_center(
            data.daily_sales,
            purchases,
            data.utilities,
            data.labor,
            production,
            config,
            cost_breakdown,
        ),
    )
    recommendations = generate_recommendations(
        config, material_prices, waste_analysis, utility_costs, product_profit
    )

    period = observed_range(
        purchases, production, data.utilities, data.labor, data.daily_sales, data.sales_detail
    )
    logger.info(
        "Insights computed for %s: %d purchases, %d production days, inventory from %s",
        f"{period[0]}..{period[1]}" if period else "empty range",
        len(purchases),
        len(production),
        inventory.source.value,
    )

    # 9. Assemble
    return DashboardInsights(
        inventory_source=inventory.source,
        period=period,
        cost_breakdown=cost_breakdown,
        material_prices=material_prices,
        statistical_order=statistical_order,
        abc_xyz=abc_xyz,
        freshness=freshness,
        bom_variance=bom_variance,
        yield_analysis=yield_analysis,
        bom_anomaly=bom_anomaly,
        consumption_variance=consumption_variance,
        bom_health=bom_health,
        inventory_cost=inventory_cost,
        profit_center=profit_center,
        channel_revenue=channel_revenue,
        revenue_trend=revenue_trend,
        product_profit=product_profit,
        utility_costs=utility_costs,
        waste_analysis=waste_analysis,
        production_efficiency=production_efficiency,
        recommendations=recommendations,
    )
