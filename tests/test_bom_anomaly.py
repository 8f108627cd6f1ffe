import pytest
from factories import day, purchase

from ops_insight.config.business import BusinessConfig
from ops_insight.engines.bom_anomaly import (
    AnomalyType,
    Severity,
    classify_anomaly,
    compute_consumption_variance,
    detect_bom_anomalies,
    expected_consumption,
    product_output,
    severity_for,
)
from ops_insight.engines.material_prices import compute_material_prices
from ops_insight.records.core import BomLine, MaterialMasterItem, SalesDetailRecord

MATERIALS = ("M1", "M2", "M3", "M4")


@pytest.fixture
def bom():
    """One unit of each material per ten units of FG-1."""
    return [
        BomLine("FG-1", code, production_qty=10, consumption_qty=1, material_name=f"Mat {code}")
        for code in MATERIALS
    ]


@pytest.fixture
def sales():
    return [SalesDetailRecord(date=day(0), product_code="FG-1", quantity=1000)]


@pytest.fixture
def master():
    return [
        MaterialMasterItem("M1", 10),
        MaterialMasterItem("M2", 5),
        MaterialMasterItem("M3", 5),
        MaterialMasterItem("M4", 10),
    ]


@pytest.fixture
def purchases():
    return [
        purchase(0, "M1", 120, 10),  # 20% over recipe
        purchase(0, "M2", 60, 5),  # 40% under recipe
        purchase(0, "M3", 100, 6.5),  # on recipe, 30% over master price
        purchase(0, "M4", 102, 10),  # within tolerance
    ]


class TestExpectedConsumption:
    def test_scaled_by_sold_quantity(self, bom, sales) -> None:
        output, basis = product_output(bom, sales)
        assert basis == "sales"
        expected = expected_consumption(bom, output)
        assert {c: e.expected_qty for c, e in expected.items()} == {c: 100 for c in MATERIALS}
        assert expected["M1"].contributing_products == ("FG-1",)

    def test_one_batch_without_sales(self, bom) -> None:
        output, basis = product_output(bom, [])
        assert basis == "bom_batch"
        assert output == {"FG-1": 10}
        assert expected_consumption(bom, output)["M1"].expected_qty == 1

    def test_breakdown_per_product(self) -> None:
        bom = [
            BomLine("FG-1", "M1", production_qty=10, consumption_qty=1, product_name="Bulgogi"),
            BomLine("FG-2", "M1", production_qty=10, consumption_qty=2),
        ]
        expected = expected_consumption(bom, {"FG-1": 1000, "FG-2": 500})["M1"]

        assert expected.expected_qty == 200
        assert expected.contributing_products == ("FG-1", "FG-2")
        assert [(b.product_name, b.output_qty, b.expected_qty) for b in expected.breakdown] == [
            ("Bulgogi", 1000, 100),
            ("FG-2", 500, 100),
        ]

    def test_product_without_output_contributes_nothing(self, bom) -> None:
        assert expected_consumption(bom, {"OTHER": 50}) == {}


class TestClassification:
    config = BusinessConfig()

    @pytest.mark.parametrize(
        "magnitude, expected",
        [(30, Severity.HIGH), (29.9, Severity.MEDIUM), (15, Severity.MEDIUM), (14, Severity.LOW)],
    )
    def test_severity(self, magnitude, expected) -> None:
        assert severity_for(magnitude, self.config) is expected

    def test_quantity_takes_precedence(self) -> None:
        assert classify_anomaly(8, 50, True, self.config) is AnomalyType.OVERUSE
        assert classify_anomaly(-8, 50, True, self.config) is AnomalyType.UNDERUSE

    def test_price_requires_master(self) -> None:
        assert classify_anomaly(0, 50, True, self.config) is AnomalyType.PRICE_DEVIATION
        assert classify_anomaly(0, 50, False, self.config) is None
        assert classify_anomaly(5, 10, True, self.config) is None


class TestDetectBomAnomalies:
    def test_flagged_materials(self, bom, sales, master, purchases) -> None:
        result = detect_bom_anomalies(
            bom,
            purchases,
            compute_material_prices(purchases),
            BusinessConfig(),
            sales_detail=sales,
            material_master=master,
        )

        by_code = {i.material_code: i for i in result.items}
        assert set(by_code) == {"M1", "M2", "M3"}

        assert by_code["M1"].anomaly_type is AnomalyType.OVERUSE
        assert by_code["M1"].deviation_pct == 20.0
        assert by_code["M1"].severity is Severity.MEDIUM
        assert by_code["M1"].cost_impact == 200

        assert by_code["M2"].anomaly_type is AnomalyType.UNDERUSE
        assert by_code["M2"].deviation_pct == -40.0
        assert by_code["M2"].severity is Severity.HIGH
        assert by_code["M2"].cost_impact == -200

        assert by_code["M3"].anomaly_type is AnomalyType.PRICE_DEVIATION
        assert by_code["M3"].price_deviation_pct == 30.0
        assert by_code["M3"].severity is Severity.HIGH
        assert by_code["M3"].cost_impact == 150

        assert [i.material_code for i in result.items] == ["M1", "M2", "M3"]
        assert result.summary.analyzed_materials == 4
        assert result.summary.high_severity_count == 2
        assert result.summary.total_cost_impact == 150
        assert result.top_price_deviation == (by_code["M3"],)
        assert result.output_basis == "sales"

    def test_reference_price_defaults_to_actual(self, bom, sales, purchases) -> None:
        result = detect_bom_anomalies(
            bom, purchases, compute_material_prices(purchases), BusinessConfig(), sales
        )
        by_code = {i.material_code: i for i in result.items}
        assert "M3" not in by_code
        assert by_code["M1"].reference_price == 10

    def test_top_n_limit(self, sales, master) -> None:
        codes = [f"M{i}" for i in range(8)]
        bom = [BomLine("FG-1", c, production_qty=10, consumption_qty=1) for c in codes]
        purchases = [purchase(0, c, 150 + i, 10) for i, c in enumerate(codes)]
        config = BusinessConfig(anomaly_top_n=3)
        result = detect_bom_anomalies(
            bom, purchases, compute_material_prices(purchases), config, sales
        )
        assert result.summary.overuse_count == 8
        assert [i.material_code for i in result.top_overuse] == ["M7", "M6", "M5"]

    def test_unpurchased_materials_not_analyzed(self, bom, sales) -> None:
        purchases = [purchase(0, "M1", 100, 10)]
        result = detect_bom_anomalies(
            bom, purchases, compute_material_prices(purchases), BusinessConfig(), sales
        )
        assert result.items == ()
        assert result.summary.analyzed_materials == 1


class TestConsumptionVariance:
    def test_price_and_quantity_split(self, bom, sales, master, purchases) -> None:
        result = compute_consumption_variance(bom, purchases, sales, master)

        by_code = {i.material_code: i for i in result.items}
        assert by_code["M1"].qty_variance == 200
        assert by_code["M1"].price_variance == 0
        assert by_code["M1"].qty_diff_pct == 20.0
        assert by_code["M2"].total_variance == -200
        assert by_code["M2"].favorable
        assert by_code["M3"].price_variance == 150
        assert by_code["M3"].qty_variance == 0
        assert by_code["M3"].price_diff_pct == 30.0
        assert by_code["M4"].total_variance == 20

        assert [i.material_code for i in result.items] == ["M1", "M2", "M3", "M4"]
        assert result.total_price_variance == 150
        assert result.total_qty_variance == 20
        assert result.total_variance == 170
        assert result.favorable_count == 1
        assert result.unfavorable_count == 3
        assert result.analyzed_materials == 4
        assert result.output_basis == "sales"

    def test_breakdown_carried(self, bom, sales, master, purchases) -> None:
        result = compute_consumption_variance(bom, purchases, sales, master)
        (share,) = result.items[0].breakdown
        assert share.product_code == "FG-1"
        assert share.output_qty == 1000
        assert share.expected_qty == 100

    def test_standard_price_falls_back_to_purchases(self, bom, sales, purchases) -> None:
        result = compute_consumption_variance(bom, purchases, sales)
        assert all(i.price_variance == 0 for i in result.items)
        assert all(i.price_source == "purchases" for i in result.items)
        assert result.total_variance == result.total_qty_variance

    def test_master_price_source(self, bom, sales, master, purchases) -> None:
        result = compute_consumption_variance(bom, purchases, sales, master)
        assert {i.price_source for i in result.items} == {"master"}

    def test_unpurchased_material_skipped(self, bom, sales, master) -> None:
        result = compute_consumption_variance(bom, [purchase(0, "M1", 90, 10)], sales, master)
        (item,) = result.items
        assert item.material_code == "M1"
        assert item.qty_variance == -100
        assert result.analyzed_materials == 1

    def test_nothing_to_compare(self, bom, sales, purchases) -> None:
        assert compute_consumption_variance(bom, [], sales) is None
        assert compute_consumption_variance([], purchases, sales) is None
