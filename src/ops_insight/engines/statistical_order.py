"""
Statistical Order Engine: safety stock, reorder point and EOQ per item.

    SS  = Z * sqrt(L * sigma_d^2 + mu_d^2 * sigma_L^2)   (= Z * sigma_d * sqrt(L) when sigma_L = 0)
    ROP = mu_d * L + SS
    EOQ = sqrt(2 * D * S / (unit_price * h))
"""

from __future__ import annotations

import enum
import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from ops_insight.aggregation.numeric import days_of_cover, round_half_up
from ops_insight.config.business import BusinessConfig
from ops_insight.engines.demand import DemandStats
from ops_insight.errors import InvalidConfiguration
from ops_insight.records.core import InventorySafetyItem

logger = logging.getLogger(__name__)


class OrderStatus(enum.Enum):
    SHORTAGE = "shortage"
    URGENT = "urgent"
    NORMAL = "normal"
    OVERSTOCK = "overstock"


_STATUS_ORDER = {
    OrderStatus.SHORTAGE: 0,
    OrderStatus.URGENT: 1,
    OrderStatus.NORMAL: 2,
    OrderStatus.OVERSTOCK: 3,
}


@dataclass(frozen=True)
class StatisticalOrderItem:
    product_code: str
    product_name: str
    current_stock: float
    avg_daily_demand: float
    std_dev_demand: float
    lead_time: float
    unit_price: float
    safety_stock: float
    rop: float
    eoq: float
    status: OrderStatus
    days_of_stock: float
    suggested_order_qty: float
    low_stock_warning: bool = False  # cover inside the warning band, not yet urgent


@dataclass(frozen=True)
class StatisticalOrderInsight:
    items: tuple[StatisticalOrderItem, ...]
    service_level: float
    z_score: float
    total_items: int
    shortage_count: int
    urgent_count: int
    normal_count: int
    overstock_count: int
    warning_count: int = 0

    def by_code(self) -> dict[str, StatisticalOrderItem]:
        return {item.product_code: item for item in self.items}


def safety_stock(
    z: float, std_daily: float, mean_daily: float, lead_time: float, lead_time_std: float = 0.0
) -> float:
    variance = lead_time * std_daily**2 + mean_daily**2 * lead_time_std**2
    return float(round_half_up(z * math.sqrt(variance)))


def reorder_point(mean_daily: float, lead_time: float, safety: float) -> float:
    return float(round_half_up(mean_daily * lead_time + safety))


def economic_order_quantity(
    annual_demand: float, order_cost: float, unit_price: float, holding_rate: float
) -> float:
    """EOQ rounded up to whole units; 0 when holding cost or demand is zero."""
    holding_cost = unit_price * holding_rate
    if holding_cost <= 0 or annual_demand <= 0:
        return 0.0
    return float(math.ceil(math.sqrt(2.0 * annual_demand * order_cost / holding_cost)))


def classify_status(
    current: float,
    safety: float,
    days_of_stock: float,
    mean_daily: float,
    config: BusinessConfig,
) -> OrderStatus:
    if current < safety or (current <= 0 and mean_daily > 0):
        return OrderStatus.SHORTAGE
    if days_of_stock < config.stock_days_urgent:
        return OrderStatus.URGENT
    if safety > 0 and current > config.overstock_multiplier * safety:
        return OrderStatus.OVERSTOCK
    return OrderStatus.NORMAL


def in_warning_band(days_of_stock: float, config: BusinessConfig) -> bool:
    """Days of cover below the warning line but not yet below the urgent line."""
    return config.stock_days_urgent <= days_of_stock < config.stock_days_warning


def suggested_order_quantity(rop: float, current: float, eoq: float) -> float:
    """Shortfall to the reorder point, rounded up to whole EOQ lots."""
    shortfall = max(rop - current, 0.0)
    if shortfall > 0 and eoq > 0:
        return math.ceil(shortfall / eoq) * eoq
    return shortfall


def stock_lookup(
    inventory: Sequence[InventorySafetyItem],
) -> tuple[dict[str, float], dict[str, float]]:
    """Current stock indexed by sku and by display name."""
    by_sku: dict[str, float] = {}
    by_name: dict[str, float] = {}
    for item in inventory:
        by_sku[item.sku] = by_sku.get(item.sku, 0.0) + item.current_stock
        if item.name:
            by_name[item.name] = by_name.get(item.name, 0.0) + item.current_stock
    return by_sku, by_name


def compute_statistical_order(
    inventory: Sequence[InventorySafetyItem],
    demand: Mapping[str, DemandStats],
    config: BusinessConfig,
    service_level: float | None = None,
) -> StatisticalOrderInsight:
    level = config.default_service_level if service_level is None else service_level
    z = config.z_score(level)
    lead_time = config.default_lead_time
    if lead_time <= 0:
        raise InvalidConfiguration(f"Lead time must be positive, got {lead_time}")

    by_sku, by_name = stock_lookup(inventory)

    items: list[StatisticalOrderItem] = []
    for code, stats in demand.items():
        current = by_sku.get(code, by_name.get(stats.product_name, 0.0))
        ss = safety_stock(
            z, stats.std_daily, stats.mean_daily, lead_time, config.lead_time_std_dev
        )
        rop = reorder_point(stats.mean_daily, lead_time, ss)
        eoq = economic_order_quantity(
            stats.annual_demand, config.order_cost, stats.unit_price, config.holding_cost_rate
        )
        dos = days_of_cover(current, stats.mean_daily)
        items.append(
            StatisticalOrderItem(
                product_code=code,
                product_name=stats.product_name,
                current_stock=current,
                avg_daily_demand=round_half_up(stats.mean_daily, 1),
                std_dev_demand=round_half_up(stats.std_daily, 1),
                lead_time=lead_time,
                unit_price=stats.unit_price,
                safety_stock=ss,
                rop=rop,
                eoq=eoq,
                status=classify_status(current, ss, dos, stats.mean_daily, config),
                days_of_stock=dos,
                suggested_order_qty=suggested_order_quantity(rop, current, eoq),
                low_stock_warning=in_warning_band(dos, config),
            )
        )

    items.sort(key=lambda i: (_STATUS_ORDER[i.status], i.days_of_stock, i.product_code))

    counts = {status: 0 for status in OrderStatus}
    for item in items:
        counts[item.status] += 1

    logger.debug(
        "Statistical order: %d items at %s%% (z=%.3f), %d shortage, %d urgent",
        len(items),
        level,
        z,
        counts[OrderStatus.SHORTAGE],
        counts[OrderStatus.URGENT],
    )

    return StatisticalOrderInsight(
        items=tuple(items),
        service_level=level,
        z_score=z,
        total_items=len(items),
        shortage_count=counts[OrderStatus.SHORTAGE],
        urgent_count=counts[OrderStatus.URGENT],
        normal_count=counts[OrderStatus.NORMAL],
        overstock_count=counts[OrderStatus.OVERSTOCK],
        warning_count=sum(1 for item in items if item.low_stock_warning),
    )
