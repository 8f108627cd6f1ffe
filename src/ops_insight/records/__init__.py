"""Typed input records consumed by the insight engines."""

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
    StockStatus,
    UtilityRecord,
)

__all__ = [
    "BomLine",
    "DailySalesRecord",
    "InventoryAdjustment",
    "InventorySafetyItem",
    "InventorySnapshotRecord",
    "LaborRecord",
    "MaterialMasterItem",
    "ProductionRecord",
    "PurchaseRecord",
    "SalesDetailRecord",
    "StockStatus",
    "UtilityRecord",
]
