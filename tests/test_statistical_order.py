import pytest
from factories import purchase

from ops_insight.aggregation.numeric import UNBOUNDED_DAYS
from ops_insight.config.business import BusinessConfig
from ops_insight.engines.demand import compute_demand_stats
from ops_insight.engines.statistical_order import (
    OrderStatus,
    classify_status,
    compute_statistical_order,
    economic_order_quantity,
    in_warning_band,
    reorder_point,
    safety_stock,
    suggested_order_quantity,
)
from ops_insight.errors import InvalidConfiguration
from ops_insight.records.core import InventorySafetyItem


@pytest.fixture
def alternating_purchases():
    """Ten days alternating 80 / 120 units: mean 100, population std 20."""
    return [purchase(i, "RM-1", 80 if i % 2 == 0 else 120, 1000, "Onion") for i in range(10)]


class TestFormulas:
    def test_safety_stock_scenario(self) -> None:
        ss = safety_stock(1.645, 20.0, 100.0, 4.0)
        assert ss == 66
        assert reorder_point(100.0, 4.0, ss) == 466

    def test_lead_time_variability_increases_safety_stock(self) -> None:
        assert safety_stock(1.645, 20.0, 100.0, 4.0, lead_time_std=1.0) > 66

    def test_eoq(self) -> None:
        # sqrt(2 * 1000 * 50 / 1) = 316.2 -> 317
        assert economic_order_quantity(1000, 50, 10, 0.1) == 317

    def test_eoq_zero_holding_cost(self) -> None:
        assert economic_order_quantity(1000, 50, 0, 0.2) == 0
        assert economic_order_quantity(0, 50, 10, 0.2) == 0

    def test_suggested_quantity_rounds_to_eoq_lots(self) -> None:
        assert suggested_order_quantity(466, 100, 200) == 400
        assert suggested_order_quantity(466, 100, 0) == 366
        assert suggested_order_quantity(466, 500, 200) == 0


class TestClassifyStatus:
    config = BusinessConfig()

    def test_shortage_below_safety_stock(self) -> None:
        assert classify_status(50, 66, 0.5, 100, self.config) is OrderStatus.SHORTAGE

    def test_empty_shelf_with_demand_is_shortage(self) -> None:
        assert classify_status(0, 0, 0.0, 5, self.config) is OrderStatus.SHORTAGE

    def test_urgent(self) -> None:
        assert classify_status(200, 66, 2.0, 100, self.config) is OrderStatus.URGENT

    def test_overstock(self) -> None:
        assert classify_status(500, 66, 5.0, 100, self.config) is OrderStatus.OVERSTOCK

    def test_normal(self) -> None:
        assert classify_status(150, 66, 5.0, 30, self.config) is OrderStatus.NORMAL

    def test_no_overstock_without_safety_stock(self) -> None:
        assert classify_status(500, 0, UNBOUNDED_DAYS, 0, self.config) is OrderStatus.NORMAL

    @pytest.mark.parametrize(
        "dos, expected", [(2.9, False), (3.0, True), (6.9, True), (7.0, False)]
    )
    def test_warning_band(self, dos, expected) -> None:
        assert in_warning_band(dos, self.config) is expected


class TestComputeStatisticalOrder:
    def test_scenario_end_to_end(self, alternating_purchases) -> None:
        config = BusinessConfig(default_lead_time=4)
        demand = compute_demand_stats(alternating_purchases)
        inventory = [InventorySafetyItem(sku="RM-1", current_stock=150, name="Onion")]

        result = compute_statistical_order(inventory, demand, config, service_level=95)

        (item,) = result.items
        assert item.avg_daily_demand == 100
        assert item.std_dev_demand == 20
        assert item.safety_stock == 66
        assert item.rop == 466
        assert item.days_of_stock == 1.5
        assert item.status is OrderStatus.URGENT
        # shortfall of 316 rounds up to one EOQ lot
        assert item.suggested_order_qty == item.eoq
        assert result.z_score == 1.645
        assert result.urgent_count == 1

    def test_unsupported_service_level(self, alternating_purchases) -> None:
        demand = compute_demand_stats(alternating_purchases)
        with pytest.raises(InvalidConfiguration):
            compute_statistical_order([], demand, BusinessConfig(), service_level=80)

    def test_stock_matched_by_name(self, alternating_purchases) -> None:
        demand = compute_demand_stats(alternating_purchases)
        inventory = [InventorySafetyItem(sku="WH-77", current_stock=1000, name="Onion")]
        result = compute_statistical_order(inventory, demand, BusinessConfig())
        assert result.items[0].current_stock == 1000

    def test_missing_stock_is_shortage(self, alternating_purchases) -> None:
        demand = compute_demand_stats(alternating_purchases)
        result = compute_statistical_order([], demand, BusinessConfig())
        assert result.items[0].current_stock == 0
        assert result.items[0].status is OrderStatus.SHORTAGE
        assert result.shortage_count == 1

    def test_sorted_by_urgency(self) -> None:
        purchases = [purchase(i, code, 10, 100) for i in range(6) for code in ("A", "B", "C")]
        inventory = [
            InventorySafetyItem(sku="A", current_stock=1000),
            InventorySafetyItem(sku="B", current_stock=0),
            InventorySafetyItem(sku="C", current_stock=20),
        ]
        result = compute_statistical_order(
            inventory, compute_demand_stats(purchases), BusinessConfig()
        )
        assert [i.product_code for i in result.items] == ["B", "C", "A"]
        assert [i.status for i in result.items] == [
            OrderStatus.SHORTAGE,
            OrderStatus.URGENT,
            OrderStatus.NORMAL,
        ]

    def test_warning_band_between_urgent_and_warning_days(self) -> None:
        purchases = [purchase(i, code, 10, 100) for i in range(6) for code in ("LOW", "OK", "URG")]
        inventory = [
            InventorySafetyItem(sku="LOW", current_stock=50),
            InventorySafetyItem(sku="OK", current_stock=100),
            InventorySafetyItem(sku="URG", current_stock=20),
        ]
        result = compute_statistical_order(
            inventory, compute_demand_stats(purchases), BusinessConfig()
        )

        by_code = result.by_code()
        assert by_code["LOW"].days_of_stock == 5.0
        assert by_code["LOW"].status is OrderStatus.NORMAL
        assert by_code["LOW"].low_stock_warning
        assert not by_code["OK"].low_stock_warning
        assert by_code["URG"].status is OrderStatus.URGENT
        assert not by_code["URG"].low_stock_warning
        assert result.warning_count == 1

    def test_values_non_negative(self, alternating_purchases) -> None:
        demand = compute_demand_stats(alternating_purchases)
        inventory = [InventorySafetyItem(sku="RM-1", current_stock=5000)]
        for level in (90, 95, 97, 99):
            result = compute_statistical_order(inventory, demand, BusinessConfig(), level)
            for item in result.items:
                assert item.safety_stock >= 0
                assert item.eoq >= 0
                assert item.suggested_order_qty >= 0


def test_demand_counts_missing_days_as_zero():
    purchases = [purchase(0, "A", 30, 10), purchase(2, "A", 30, 10), purchase(2, "B", 5, 10)]
    demand = compute_demand_stats(purchases)
    assert demand["A"].mean_daily == pytest.approx(20.0)
    assert demand["B"].mean_daily == pytest.approx(5 / 3)
    assert demand["A"].purchase_events == 2
    assert demand["A"].mean_lot_size == 30
    assert demand["A"].unit_price == 10
