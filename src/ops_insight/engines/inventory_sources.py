"""
Inventory fallback chain.

Engines that need current stock get it from exactly one source, chosen once
per pass in this order:

1. explicit safety items supplied by the warehouse system
2. latest balance per code from inventory snapshots
3. an estimate derived from purchase history
4. nothing
"""

from __future__ import annotations

import enum
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from ops_insight.aggregation.buckets import observed_range, span_days
from ops_insight.aggregation.numeric import round_half_up, safe_div
from ops_insight.config.business import BusinessConfig
from ops_insight.records.core import (
    InventorySafetyItem,
    InventorySnapshotRecord,
    PurchaseRecord,
    StockStatus,
)

logger = logging.getLogger(__name__)


class InventorySource(enum.Enum):
    SAFETY_ITEMS = "safety_items"
    SNAPSHOTS = "snapshots"
    PURCHASES = "purchases"
    NONE = "none"


@dataclass(frozen=True)
class InventoryResolution:
    items: tuple[InventorySafetyItem, ...]
    source: InventorySource


def stock_status(current: float, safety: float, config: BusinessConfig) -> StockStatus:
    if current < safety:
        return StockStatus.SHORTAGE
    if safety > 0 and current > safety * config.overstock_multiplier:
        return StockStatus.OVERSTOCK
    return StockStatus.NORMAL


def _usage_by_code(
    purchases: Sequence[PurchaseRecord],
) -> tuple[dict[str, float], dict[str, str], int]:
    qty: dict[str, float] = {}
    names: dict[str, str] = {}
    for p in purchases:
        if p.product_code:
            qty[p.product_code] = qty.get(p.product_code, 0.0) + p.quantity
            names.setdefault(p.product_code, p.product_name)
    span = observed_range(purchases)
    days = span_days(*span) if span else 1
    return qty, names, days


def _derived_item(
    code: str,
    name: str,
    current: float,
    period_qty: float,
    days: int,
    config: BusinessConfig,
) -> InventorySafetyItem:
    daily = period_qty / days
    safety = float(math.ceil(daily * config.fallback_safety_days))
    return InventorySafetyItem(
        sku=code,
        name=name,
        current_stock=current,
        safety_stock=safety,
        # Times the stock turned over during the observed period
        turnover_rate=round_half_up(safe_div(period_qty, current), 1),
        status=stock_status(current, safety, config),
    )


def from_snapshots(
    snapshots: Sequence[InventorySnapshotRecord],
    purchases: Sequence[PurchaseRecord],
    config: BusinessConfig,
) -> list[InventorySafetyItem]:
    latest: dict[str, InventorySnapshotRecord] = {}
    for snap in snapshots:
        seen = latest.get(snap.code)
        if seen is None or snap.date >= seen.date:
            latest[snap.code] = snap
    qty, _, days = _usage_by_code(purchases)
    return [
        _derived_item(code, snap.name, snap.balance, qty.get(code, 0.0), days, config)
        for code, snap in sorted(latest.items())
    ]


def from_purchases(
    purchases: Sequence[PurchaseRecord], config: BusinessConfig
) -> list[InventorySafetyItem]:
    """On-hand stock estimated as ``fallback_stock_ratio`` of the period's purchases."""
    qty, names, days = _usage_by_code(purchases)
    return [
        _derived_item(
            code,
            names[code],
            float(math.ceil(total * config.fallback_stock_ratio)),
            total,
            days,
            config,
        )
        for code, total in sorted(qty.items())
        if total > 0
    ]


def resolve_inventory(
    config: BusinessConfig,
    safety_items: Sequence[InventorySafetyItem] = (),
    snapshots: Sequence[InventorySnapshotRecord] = (),
    purchases: Sequence[PurchaseRecord] = (),
) -> InventoryResolution:
    if safety_items:
        items, source = list(safety_items), InventorySource.SAFETY_ITEMS
    elif snapshots:
        items, source = from_snapshots(snapshots, purchases, config), InventorySource.SNAPSHOTS
    elif purchases:
        items, source = from_purchases(purchases, config), InventorySource.PURCHASES
    else:
        items, source = [], InventorySource.NONE
    if not items:
        source = InventorySource.NONE
    logger.debug("Inventory resolved from %s: %d items", source.value, len(items))
    return InventoryResolution(items=tuple(items), source=source)
