import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date


class StockStatus(enum.Enum):
    SHORTAGE = "Shortage"
    NORMAL = "Normal"
    OVERSTOCK = "Overstock"


@dataclass(frozen=True)
class PurchaseRecord:
    """
    One purchase line from the ERP ledger.

    ``total`` is taken as ground truth for spend; it is not reconciled
    against quantity x unit price.
    """

    date: date
    product_code: str
    product_name: str
    quantity: float
    unit_price: float
    supply_amount: float = 0.0
    vat: float = 0.0
    total: float = 0.0
    supplier_name: str = ""


@dataclass(frozen=True)
class ProductionRecord:
    """Daily production totals by line category (count and mass units)."""

    date: date

    # Counts (EA)
    qty_normal: float = 0.0
    qty_preprocess: float = 0.0
    qty_frozen: float = 0.0
    qty_sauce: float = 0.0
    qty_bibimbap: float = 0.0
    qty_total: float = 0.0

    # Mass (kg)
    kg_normal: float = 0.0
    kg_preprocess: float = 0.0
    kg_frozen: float = 0.0
    kg_sauce: float = 0.0
    kg_bibimbap: float = 0.0
    kg_total: float = 0.0

    # Waste
    waste_finished_ea: float = 0.0
    waste_finished_pct: float = 0.0
    waste_semi_kg: float = 0.0
    waste_semi_pct: float = 0.0


@dataclass(frozen=True)
class UtilityRecord:
    date: date
    elec_cost: float = 0.0
    water_cost: float = 0.0
    gas_cost: float = 0.0
    elec_usage: float = 0.0
    water_usage: float = 0.0
    gas_usage: float = 0.0

    @property
    def total_cost(self) -> float:
        return self.elec_cost + self.water_cost + self.gas_cost


@dataclass(frozen=True)
class LaborRecord:
    """Daily labor by department, split by (weekday/holiday) x (regular/overtime/night)."""

    date: date
    department: str
    headcount: int = 0

    weekday_regular_hours: float = 0.0
    weekday_overtime_hours: float = 0.0
    weekday_night_hours: float = 0.0
    holiday_regular_hours: float = 0.0
    holiday_overtime_hours: float = 0.0
    holiday_night_hours: float = 0.0

    weekday_regular_pay: float = 0.0
    weekday_overtime_pay: float = 0.0
    weekday_night_pay: float = 0.0
    holiday_regular_pay: float = 0.0
    holiday_overtime_pay: float = 0.0
    holiday_night_pay: float = 0.0

    @property
    def total_hours(self) -> float:
        return (
            self.weekday_regular_hours
            + self.weekday_overtime_hours
            + self.weekday_night_hours
            + self.holiday_regular_hours
            + self.holiday_overtime_hours
            + self.holiday_night_hours
        )

    @property
    def total_pay(self) -> float:
        return (
            self.weekday_regular_pay
            + self.weekday_overtime_pay
            + self.weekday_night_pay
            + self.holiday_regular_pay
            + self.holiday_overtime_pay
            + self.holiday_night_pay
        )


@dataclass(frozen=True)
class BomLine:
    """
    One material line of a Bill of Materials.

    ``consumption_qty`` of the material is used to make ``production_qty``
    units of the finished product (one batch). Stage yields are fractions.
    """

    product_code: str
    material_code: str
    production_qty: float
    consumption_qty: float
    product_name: str = ""
    material_name: str = ""
    bom_version: str = ""
    packaging_yield: float = 1.0
    cooling_yield: float = 1.0
    raw_material_yield: float = 1.0

    @property
    def stage_yield(self) -> float:
        return self.packaging_yield * self.cooling_yield * self.raw_material_yield


@dataclass(frozen=True)
class MaterialMasterItem:
    material_code: str
    unit_price: float
    material_name: str = ""


@dataclass(frozen=True)
class InventorySnapshotRecord:
    date: date
    code: str
    balance: float
    name: str = ""


@dataclass(frozen=True)
class InventorySafetyItem:
    """Inventory position precomputed by the warehouse system."""

    sku: str
    current_stock: float
    safety_stock: float = 0.0
    turnover_rate: float = 0.0
    status: StockStatus = StockStatus.NORMAL
    name: str = ""
    warehouse: str = ""
    category: str = ""

    @property
    def display_name(self) -> str:
        return self.name or self.sku


@dataclass(frozen=True)
class InventoryAdjustment:
    """Beginning/ending material inventory values for the analysed period."""

    beginning_raw: float = 0.0
    ending_raw: float = 0.0
    beginning_sub: float = 0.0
    ending_sub: float = 0.0


@dataclass(frozen=True)
class DailySalesRecord:
    date: date
    # Channel name -> gross revenue for the day
    channel_revenue: Mapping[str, float] = field(default_factory=dict)

    @property
    def total_revenue(self) -> float:
        return float(sum(self.channel_revenue.values()))


@dataclass(frozen=True)
class SalesDetailRecord:
    date: date
    product_code: str
    quantity: float
    total: float = 0.0
    product_name: str = ""
