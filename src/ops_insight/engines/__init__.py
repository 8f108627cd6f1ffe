"""Insight engines: one pure function per dashboard insight."""

from ops_insight.engines.abc_xyz import classify_abc_xyz
from ops_insight.engines.bom_anomaly import compute_consumption_variance, detect_bom_anomalies
from ops_insight.engines.bom_health import compute_bom_health
from ops_insight.engines.bom_variance import compute_bom_variance, compute_yield
from ops_insight.engines.cost_breakdown import compute_cost_breakdown
from ops_insight.engines.demand import compute_demand_stats
from ops_insight.engines.freshness import compute_freshness
from ops_insight.engines.inventory_cost import compute_inventory_cost
from ops_insight.engines.inventory_sources import InventorySource, resolve_inventory
from ops_insight.engines.material_prices import compute_material_prices
from ops_insight.engines.operations import (
    compute_production_efficiency,
    compute_utility_costs,
    compute_waste_analysis,
)
from ops_insight.engines.profit_center import compute_profit_center
from ops_insight.engines.recommendations import generate_recommendations
from ops_insight.engines.revenue import (
    compute_channel_revenue,
    compute_product_profit,
    compute_revenue_trend,
)
from ops_insight.engines.statistical_order import compute_statistical_order

__all__ = [
    "InventorySource",
    "classify_abc_xyz",
    "compute_bom_health",
    "compute_bom_variance",
    "compute_channel_revenue",
    "compute_consumption_variance",
    "compute_cost_breakdown",
    "compute_demand_stats",
    "compute_freshness",
    "compute_inventory_cost",
    "compute_material_prices",
    "compute_product_profit",
    "compute_production_efficiency",
    "compute_profit_center",
    "compute_revenue_trend",
    "compute_statistical_order",
    "compute_utility_costs",
    "compute_waste_analysis",
    "compute_yield",
    "detect_bom_anomalies",
    "generate_recommendations",
    "resolve_inventory",
]
