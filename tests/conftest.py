import pytest
from factories import day, purchase

from ops_insight.pipeline.orchestrator import InsightInputs
from ops_insight.records.core import (
    BomLine,
    DailySalesRecord,
    InventorySafetyItem,
    LaborRecord,
    MaterialMasterItem,
    ProductionRecord,
    SalesDetailRecord,
    UtilityRecord,
)


@pytest.fixture
def sample_inputs() -> InsightInputs:
    """Four weeks of a small kitchen: two raw materials, one packaging line, one product."""
    purchases = []
    for offset in range(0, 28, 2):
        purchases.append(purchase(offset, "RM-ONION", 40 + (offset % 4) * 5, 1200, "Onion"))
        purchases.append(purchase(offset, "RM-BEEF", 10, 15000 + offset * 100, "Beef"))
    for offset in range(0, 28, 7):
        purchases.append(purchase(offset, "PK-BOX", 200, 150, "Outer box"))

    production = [
        ProductionRecord(
            date=day(offset),
            qty_normal=300,
            qty_frozen=100,
            qty_total=400,
            waste_finished_ea=8 if offset % 5 else 20,
            waste_finished_pct=2.0 if offset % 5 else 5.0,
        )
        for offset in range(28)
        if day(offset).weekday() < 5
    ]
    utilities = [
        UtilityRecord(date=day(offset), elec_cost=30000, water_cost=5000, gas_cost=10000)
        for offset in range(28)
    ]
    labor = [
        LaborRecord(
            date=day(offset),
            department="kitchen",
            headcount=6,
            weekday_regular_hours=48,
            weekday_regular_pay=600000,
        )
        for offset in range(28)
        if day(offset).weekday() < 5
    ]
    bom = (
        BomLine("FG-BULGOGI", "RM-ONION", production_qty=100, consumption_qty=5,
                product_name="Bulgogi", material_name="Onion"),
        BomLine("FG-BULGOGI", "RM-BEEF", production_qty=100, consumption_qty=2,
                product_name="Bulgogi", material_name="Beef", cooling_yield=0.98),
        BomLine("FG-BULGOGI", "PK-BOX", production_qty=100, consumption_qty=100,
                product_name="Bulgogi", material_name="Outer box"),
    )
    daily_sales = [
        DailySalesRecord(date=day(offset), channel_revenue={"own": 900000, "coupang": 600000})
        for offset in range(28)
    ]
    sales_detail = [
        SalesDetailRecord(date=day(offset), product_code="FG-BULGOGI", quantity=100,
                          total=1500000, product_name="Bulgogi")
        for offset in range(28)
    ]
    safety_items = (
        InventorySafetyItem(sku="RM-ONION", name="Onion", current_stock=120, turnover_rate=3.0),
        InventorySafetyItem(sku="RM-BEEF", name="Beef", current_stock=4, turnover_rate=6.0),
        InventorySafetyItem(sku="PK-BOX", name="Outer box", current_stock=900, turnover_rate=1.0),
    )
    return InsightInputs(
        purchases=tuple(purchases),
        production=tuple(production),
        utilities=tuple(utilities),
        labor=tuple(labor),
        bom=bom,
        material_master=(
            MaterialMasterItem("RM-ONION", 1200, "Onion"),
            MaterialMasterItem("RM-BEEF", 15000, "Beef"),
        ),
        safety_items=safety_items,
        daily_sales=tuple(daily_sales),
        sales_detail=tuple(sales_detail),
    )
