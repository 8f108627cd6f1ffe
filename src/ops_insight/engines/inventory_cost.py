"""
Inventory Cost Optimizer.

Annual holding, ordering and stockout cost per item under the current lot
size, compared with the cost at the economic order quantity:

    holding  = (lot / 2 + SS) * unit_price * holding_rate
    ordering = annual_demand / lot * order_cost
    stockout = risk * daily_demand * unit_price * lead_time * multiplier
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from ops_insight.aggregation.numeric import round_half_up, safe_div
from ops_insight.config.business import BusinessConfig
from ops_insight.engines.abc_xyz import ABC_CLASSES, AbcXyzInsight
from ops_insight.engines.demand import DemandStats
from ops_insight.engines.statistical_order import (
    OrderStatus,
    StatisticalOrderInsight,
    StatisticalOrderItem,
)

logger = logging.getLogger(__name__)

UNCLASSIFIED = "N/A"
STRATEGY_CLASSES = (*ABC_CLASSES, UNCLASSIFIED)


@dataclass(frozen=True)
class InventoryCostItem:
    product_code: str
    product_name: str
    abc_class: str
    status: OrderStatus
    unit_price: float
    annual_demand: float
    current_lot: float
    eoq: float
    holding_cost: float
    ordering_cost: float
    stockout_cost: float
    total_cost: float
    eoq_total_cost: float
    eoq_saving: float


@dataclass(frozen=True)
class AbcStrategy:
    abc_class: str
    item_count: int
    holding_cost: float
    ordering_cost: float
    stockout_cost: float
    total_cost: float
    eoq_saving: float
    strategy: str


@dataclass(frozen=True)
class InventoryCostInsight:
    items: tuple[InventoryCostItem, ...]
    strategies: tuple[AbcStrategy, ...]
    total_holding_cost: float
    total_ordering_cost: float
    total_stockout_cost: float
    waste_cost: float
    waste_included: bool
    total_cost: float
    total_eoq_saving: float


def holding_cost(lot: float, safety: float, unit_price: float, rate: float) -> float:
    return (max(lot, 0.0) / 2.0 + safety) * unit_price * rate


def ordering_cost(annual_demand: float, lot: float, order_cost: float) -> float:
    if lot <= 0:
        return 0.0
    return annual_demand / lot * order_cost


def stockout_risk(status: OrderStatus, config: BusinessConfig) -> float:
    if config.stockout_risk_by_status is not None:
        return float(config.stockout_risk_by_status.get(status.value, 0.0))
    return 1.0 if status is OrderStatus.SHORTAGE else 0.0


def _cost_item(
    order: StatisticalOrderItem,
    stats: DemandStats | None,
    abc_class: str,
    config: BusinessConfig,
) -> InventoryCostItem:
    mean_daily = stats.mean_daily if stats is not None else 0.0
    annual = mean_daily * 365.0
    lot = stats.mean_lot_size if stats is not None else 0.0
    price = order.unit_price
    rate = config.holding_cost_rate

    holding = holding_cost(lot, order.safety_stock, price, rate)
    ordering = ordering_cost(annual, lot, config.order_cost)
    stockout = (
        stockout_risk(order.status, config)
        * mean_daily
        * price
        * order.lead_time
        * config.stockout_cost_multiplier
    )

    current = holding + ordering
    if order.eoq > 0:
        optimal = holding_cost(order.eoq, order.safety_stock, price, rate) + ordering_cost(
            annual, order.eoq, config.order_cost
        )
    else:
        optimal = current

    return InventoryCostItem(
        product_code=order.product_code,
        product_name=order.product_name,
        abc_class=abc_class,
        status=order.status,
        unit_price=price,
        annual_demand=round_half_up(annual, 1),
        current_lot=round_half_up(lot, 1),
        eoq=order.eoq,
        holding_cost=round_half_up(holding),
        ordering_cost=round_half_up(ordering),
        stockout_cost=round_half_up(stockout),
        total_cost=round_half_up(holding + ordering + stockout),
        eoq_total_cost=round_half_up(optimal),
        eoq_saving=round_half_up(max(current - optimal, 0.0)),
    )


def compute_inventory_cost(
    orders: StatisticalOrderInsight,
    demand: Mapping[str, DemandStats],
    config: BusinessConfig,
    abc: AbcXyzInsight | None = None,
    waste_cost: float = 0.0,
) -> InventoryCostInsight:
    items = []
    for order in orders.items:
        cls = abc.class_of(order.product_code) if abc is not None else None
        items.append(
            _cost_item(order, demand.get(order.product_code), cls or UNCLASSIFIED, config)
        )
    items.sort(key=lambda i: (-i.total_cost, i.product_code))

    strategies = []
    for cls in STRATEGY_CLASSES:
        group = [i for i in items if i.abc_class == cls]
        strategies.append(
            AbcStrategy(
                abc_class=cls,
                item_count=len(group),
                holding_cost=sum(i.holding_cost for i in group),
                ordering_cost=sum(i.ordering_cost for i in group),
                stockout_cost=sum(i.stockout_cost for i in group),
                total_cost=sum(i.total_cost for i in group),
                eoq_saving=sum(i.eoq_saving for i in group),
                strategy=config.abc_strategy_notes.get(cls, ""),
            )
        )

    total_holding = sum(i.holding_cost for i in items)
    total_ordering = sum(i.ordering_cost for i in items)
    total_stockout = sum(i.stockout_cost for i in items)
    waste_included = config.include_waste_in_total_cost
    total = total_holding + total_ordering + total_stockout
    if waste_included:
        total += waste_cost

    logger.debug(
        "Inventory cost: %d items, total=%.0f, eoq saving=%.0f (avg %.0f/item)",
        len(items),
        total,
        sum(i.eoq_saving for i in items),
        safe_div(sum(i.eoq_saving for i in items), len(items)),
    )

    return InventoryCostInsight(
        items=tuple(items),
        strategies=tuple(strategies),
        total_holding_cost=total_holding,
        total_ordering_cost=total_ordering,
        total_stockout_cost=total_stockout,
        waste_cost=waste_cost,
        waste_included=waste_included,
        total_cost=total,
        total_eoq_saving=sum(i.eoq_saving for i in items),
    )
