import pytest
from factories import day, purchase

from ops_insight.config.business import BusinessConfig
from ops_insight.engines.cost_breakdown import compute_cost_breakdown, is_sub_material
from ops_insight.records.core import (
    InventoryAdjustment,
    LaborRecord,
    ProductionRecord,
    UtilityRecord,
)


@pytest.fixture
def config() -> BusinessConfig:
    return BusinessConfig()


class TestSubMaterialHeuristic:
    def test_keyword_match(self, config) -> None:
        assert is_sub_material("포장 박스 대", "RM-100", config)
        assert is_sub_material("Label roll 50mm", "RM-101", config)

    def test_code_prefix_match(self, config) -> None:
        assert is_sub_material("Film", "ZIP_S_0042", config)

    def test_raw_material(self, config) -> None:
        assert not is_sub_material("Onion", "RM-200", config)


def test_empty_input_is_all_zero(config):
    """No records at all: zero totals and guarded 0% composition."""
    result = compute_cost_breakdown([], [], [], [], config)

    assert result.total_cost == 0
    assert result.monthly == ()
    assert [s.rate for s in result.composition] == [0.0, 0.0, 0.0, 0.0]
    assert [s.value for s in result.composition] == [0, 0, 0, 0]
    assert result.raw_material_detail.items == ()
    assert result.labor_detail.amount == 0
    assert result.overhead_detail.total == 0


class TestMonthlyCost:
    """Labor and overhead fall back to configured ratios."""

    def test_estimated_labor_and_ratio_overhead(self, config) -> None:
        purchases = [
            purchase(4, "RM-1", 100, 10, "Onion"),
            purchase(5, "PK-1", 20, 10, "Gift box"),
        ]
        utilities = [UtilityRecord(date=day(4), elec_cost=200, water_cost=50, gas_cost=50)]

        result = compute_cost_breakdown(purchases, utilities, [], [], config)

        (month,) = result.monthly
        assert month.month == "2024-01"
        assert month.raw_material == 1000
        assert month.sub_material == 200
        assert month.labor == 375  # (1000 + 200 + 300) * 0.25
        assert month.overhead == 360  # 300 utilities + 1200 * 0.05
        assert month.total == 1935
        assert result.total_cost == 1935
        assert result.labor_detail.basis == "estimated"
        assert result.overhead_detail.basis == "ratio"
        assert result.overhead_detail.utilities == 300
        assert result.overhead_detail.other == 60
        assert sum(s.value for s in result.composition) == result.total_cost

    def test_actual_labor_when_recorded(self, config) -> None:
        purchases = [purchase(0, "RM-1", 100, 10)]
        labor = [
            LaborRecord(date=day(1), department="kitchen", weekday_regular_pay=400,
                        weekday_overtime_pay=100, weekday_regular_hours=8)
        ]
        result = compute_cost_breakdown(purchases, [], [], labor, config)

        assert result.monthly[0].labor == 500
        assert result.labor_detail.basis == "actual"
        assert result.labor_detail.total_hours == 8

    def test_fixed_overhead_prorated_by_weeks(self, config) -> None:
        config = config.replace(monthly_fixed_overhead=4330, variable_overhead_per_unit=2)
        purchases = [purchase(0, "RM-1", 10, 10), purchase(6, "RM-1", 10, 10)]
        production = [ProductionRecord(date=day(3), qty_total=50)]

        result = compute_cost_breakdown(purchases, [], production, [], config)

        # one observed week of 4330 / 4.33 plus 50 units * 2
        assert result.overhead_detail.other == 1100
        assert result.overhead_detail.basis == "fixed"

    def test_months_split(self, config) -> None:
        purchases = [purchase(10, "RM-1", 10, 10), purchase(40, "RM-1", 30, 10)]
        result = compute_cost_breakdown(purchases, [], [], [], config)
        assert [m.month for m in result.monthly] == ["2024-01", "2024-02"]
        assert [m.raw_material for m in result.monthly] == [100, 300]


class TestInventoryAdjustment:
    def test_consumption_basis(self, config) -> None:
        purchases = [purchase(10, "RM-1", 100, 10), purchase(40, "RM-1", 100, 10)]
        adjustment = InventoryAdjustment(beginning_raw=500, ending_raw=1500)

        result = compute_cost_breakdown(purchases, [], [], [], config, adjustment)

        assert result.inventory_adjusted
        assert result.raw_material_detail.total == 1000
        assert result.raw_material_detail.purchased == 2000
        assert [m.raw_material for m in result.monthly] == [500, 500]

    def test_floored_at_zero(self, config) -> None:
        purchases = [purchase(1, "RM-1", 10, 10)]
        adjustment = InventoryAdjustment(beginning_raw=0, ending_raw=10_000)
        result = compute_cost_breakdown(purchases, [], [], [], config, adjustment)
        assert result.raw_material_detail.total == 0
        assert result.monthly[0].raw_material == 0


def test_material_detail_sorted_by_spend(config):
    purchases = [
        purchase(0, "RM-1", 10, 10, "Garlic"),
        purchase(1, "RM-2", 10, 50, "Beef"),
        purchase(2, "RM-1", 10, 12, "Garlic"),
    ]
    detail = compute_cost_breakdown(purchases, [], [], [], config).raw_material_detail
    assert [i.product_code for i in detail.items] == ["RM-2", "RM-1"]
    assert detail.items[1].avg_unit_price == 11
    assert detail.total == 720
