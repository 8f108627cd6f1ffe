import pytest
from factories import day, purchase

from ops_insight.config.business import BusinessConfig
from ops_insight.engines.cost_breakdown import compute_cost_breakdown
from ops_insight.engines.profit_center import (
    compute_profit_center,
    net_revenue,
    overall_score,
    score_metric,
    select_bracket,
    status_for,
)
from ops_insight.errors import InvalidConfiguration
from ops_insight.records.core import DailySalesRecord, LaborRecord, UtilityRecord


@pytest.fixture
def month_of_sales():
    """30 days at 1,000 a day, starting on a Monday."""
    return [DailySalesRecord(date=day(i), channel_revenue={"own": 1000}) for i in range(30)]


@pytest.fixture
def costs():
    """Costs that hit the base bracket targets exactly, with no waste."""
    purchases = [
        purchase(0, "RM-1", 1200, 10, "Onion"),
        purchase(0, "PK-1", 300, 10, "Gift box"),
    ]
    utilities = [UtilityRecord(date=day(0), elec_cost=1200)]
    labor = [LaborRecord(date=day(0), department="kitchen", weekday_regular_pay=7500)]
    return purchases, utilities, labor


class TestScoring:
    def test_score_metric(self) -> None:
        assert score_metric(30000, 12000, 2.5, 150) == (2.5, 100)
        assert score_metric(30000, 6000, 2.5, 150) == (5.0, 200)
        assert score_metric(0, 12000, 2.5, 150) == (0.0, 0.0)
        assert score_metric(30000, 0, 2.5, 150) == (0.0, 150)
        assert score_metric(30000, 12000, 0.0, 150) == (2.5, 0.0)

    @pytest.mark.parametrize(
        "score, status", [(150, "excellent"), (110, "excellent"), (100, "good"),
                          (90, "warning"), (89, "danger")]
    )
    def test_status(self, score, status) -> None:
        assert status_for(score) == status

    def test_overall_weights(self) -> None:
        scores = {"raw_material": 100, "waste": 150}
        assert overall_score(scores, None) == 125
        assert overall_score(scores, {"raw_material": 3, "waste": 1}) == 113
        with pytest.raises(InvalidConfiguration):
            overall_score(scores, {"raw_material": 0})
        with pytest.raises(InvalidConfiguration):
            overall_score(scores, {"raw_material": -1, "waste": 2})


class TestBrackets:
    goals = BusinessConfig().profit_center_goals

    def test_select_by_monthly_revenue(self) -> None:
        assert select_bracket(5_000_000, self.goals).label == "base"
        assert select_bracket(150_000_000, self.goals).label == "growth"
        assert select_bracket(300_000_000, self.goals).label == "scale"

    def test_below_every_bracket_uses_lowest(self) -> None:
        goals = BusinessConfig().profit_center_goals[1:]
        assert select_bracket(10, goals).label == "growth"

    def test_channel_fees(self) -> None:
        record = DailySalesRecord(date=day(0), channel_revenue={"own": 1000, "coupang": 1000})
        assert net_revenue(record, {"coupang": 0.1}) == pytest.approx(1900)


class TestComputeProfitCenter:
    config = BusinessConfig()

    def test_targets_met(self, month_of_sales, costs) -> None:
        purchases, utilities, labor = costs
        result = compute_profit_center(month_of_sales, purchases, utilities, labor, [], self.config)

        scores = {m.metric: m.score for m in result.metrics}
        assert scores == {
            "raw_material": 100,
            "sub_material": 100,
            "labor": 100,
            "utilities": 100,
            "waste": 150,
        }
        assert result.monthly_revenue == 30000
        assert result.bracket.label == "base"
        assert result.overall_score == 110
        assert result.overall_status == "excellent"
        assert not result.weighted

        raw = result.metrics[0]
        assert raw.target_cost == 12000
        assert raw.surplus == 0

    def test_weighted_overall(self, month_of_sales, costs) -> None:
        config = self.config.replace(profit_metric_weights={"raw_material": 1.0})
        result = compute_profit_center(month_of_sales, *costs, [], config)
        assert result.overall_score == 100
        assert result.weighted

    def test_cost_breakdown_totals_override(self, month_of_sales, costs) -> None:
        purchases, utilities, labor = costs
        breakdown = compute_cost_breakdown(purchases, utilities, [], labor, self.config)
        result = compute_profit_center(
            month_of_sales, purchases, utilities, labor, [], self.config, breakdown
        )
        assert result.overall_score == 110

    def test_weekly_points(self, month_of_sales, costs) -> None:
        result = compute_profit_center(month_of_sales, *costs, [], self.config)
        assert len(result.weekly) == 5
        assert result.weekly[0].label == "01/01~01/07"
        assert result.weekly[0].revenue == 7000
        assert set(result.weekly[0].scores) == {m.metric for m in result.metrics}
        # later weeks carry no costs at all
        assert result.weekly[-1].overall_score == 150

    def test_fee_adjusted_revenue(self, costs) -> None:
        sales = [DailySalesRecord(date=day(i), channel_revenue={"coupang": 1000}) for i in range(30)]
        config = self.config.replace(channel_fee_rates={"coupang": 0.1})
        result = compute_profit_center(sales, *costs, [], config)
        assert result.revenue == pytest.approx(27000)
        assert result.metrics[0].score == 90

    def test_scores_above_cap_when_costs_beat_target(self, month_of_sales, costs) -> None:
        _, utilities, labor = costs
        cheap = [
            purchase(0, "RM-1", 1200, 10, "Onion", total=6000),
            purchase(0, "PK-1", 300, 10, "Gift box", total=1500),
        ]
        result = compute_profit_center(month_of_sales, cheap, utilities, labor, [], self.config)
        scores = {m.metric: m.score for m in result.metrics}
        assert scores["raw_material"] == 200
        assert scores["sub_material"] == 200
        assert scores["waste"] == self.config.profit_score_cap

    def test_no_goals(self, month_of_sales, costs) -> None:
        config = self.config.replace(profit_center_goals=())
        assert compute_profit_center(month_of_sales, *costs, [], config) is None

    def test_no_sales(self, costs) -> None:
        assert compute_profit_center([], *costs, [], self.config) is None

    def test_zero_revenue_scores_zero(self, costs) -> None:
        sales = [DailySalesRecord(date=day(0), channel_revenue={"own": 0})]
        result = compute_profit_center(sales, *costs, [], self.config)
        assert all(m.score == 0 for m in result.metrics)
        assert result.overall_status == "danger"
